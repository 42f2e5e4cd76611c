"""Result image serving.

Results are served through an explicit route rather than a StaticFiles mount
so the app's middleware (CORS, CORP) applies to image responses and missing
files get the JSON error body instead of a bare 404.
"""

import re

from fastapi import APIRouter, Request
from fastapi.responses import FileResponse

from photo_restyle.api.schemas import NotFoundResponse
from photo_restyle.core.exceptions import NotFoundError
from photo_restyle.core.logging import get_logger

logger = get_logger(__name__)

files_router = APIRouter(tags=["results"])

# Result ids are generated as "<uuid hex>.png"; accept nothing with path separators
_SAFE_IMAGE_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+(\.png)?$")


@files_router.get(
    "/result/{image_id}",
    response_class=FileResponse,
    responses={404: {"model": NotFoundResponse, "description": "Result expired or never existed"}},
)
async def get_result(request: Request, image_id: str) -> FileResponse:
    """Serve a generated image by id.

    Raises:
        NotFoundError: Unknown, expired or unsafe image id
    """
    results_dir = request.app.state.settings.results_dir

    if not _SAFE_IMAGE_ID_PATTERN.match(image_id):
        logger.warning("Rejected unsafe result id: %r", image_id)
        raise NotFoundError(image_id)

    # Path traversal protection: is_relative_to, not startswith (prefix collisions)
    try:
        base_dir = results_dir.resolve()
        resolved = (results_dir / image_id).resolve()
        if not resolved.is_relative_to(base_dir):
            logger.warning("Path traversal attempt blocked: %s", image_id)
            raise NotFoundError(image_id)
    except (OSError, ValueError):
        raise NotFoundError(image_id) from None

    if not resolved.is_file():
        logger.info("Result not found: %s", image_id)
        raise NotFoundError(image_id)

    logger.debug("Serving result: %s", resolved)
    return FileResponse(
        path=resolved,
        media_type="image/png",
        headers={
            "Cross-Origin-Resource-Policy": "cross-origin",
            "Cross-Origin-Embedder-Policy": "unsafe-none",
        },
    )
