"""API route handlers for photo restyling.

POST /transform runs the whole transform inside the request:

1. the request is admitted (or rejected with 503 when every slot is taken)
   before any of the body is read
2. the multipart form is parsed, the upload validated and written to the
   upload directory
3. the pipeline normalizes the image, calls the provider and stores the result
4. the slot is released exactly once, on success, failure or timeout
"""

from __future__ import annotations

import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Request
from starlette.datastructures import FormData, UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException

from photo_restyle.api.schemas import (
    CapacityErrorResponse,
    ErrorResponse,
    ProgressResponse,
    StylesResponse,
    TimeoutErrorResponse,
    TransformResponse,
)
from photo_restyle.core.exceptions import RestyleError, ValidationError
from photo_restyle.core.logging import get_logger

if TYPE_CHECKING:
    from photo_restyle.api.lifecycle import RequestTracker
    from photo_restyle.core.config import Settings
    from photo_restyle.pipeline import TransformPipeline

logger = get_logger(__name__)

router = APIRouter()

_UPLOAD_CHUNK_BYTES = 1024 * 1024
# Multipart boundaries, part headers and the style/prompt text fields
_FORM_OVERHEAD_BYTES = 64 * 1024
_MAX_FORM_FIELDS = 8


async def save_upload(image: UploadFile | None, upload_dir: Path, max_bytes: int) -> Path:
    """
    Validate an uploaded image and write it to ``upload_dir``.

    Raises:
        ValidationError: Missing file, non-image content type, empty or oversized file
    """
    if image is None or not image.filename:
        raise ValidationError("Missing image or style/prompt")
    if not (image.content_type or "").startswith("image/"):
        raise ValidationError("Only image files are allowed!")

    suffix = Path(image.filename).suffix.lower()
    if not suffix.isascii() or len(suffix) > 8:
        suffix = ""
    path = upload_dir / f"image-{uuid.uuid4().hex}{suffix}"

    size = 0
    try:
        with path.open("wb") as out:
            while chunk := await image.read(_UPLOAD_CHUNK_BYTES):
                size += len(chunk)
                if size > max_bytes:
                    raise ValidationError(_too_large_message(max_bytes))
                out.write(chunk)
        if size == 0:
            raise ValidationError("Uploaded image is empty")
    except BaseException:
        path.unlink(missing_ok=True)
        raise

    return path


def check_content_length(request: Request, max_upload_bytes: int) -> None:
    """
    Reject a body that announces more than one upload's worth of bytes.

    Bodies without a Content-Length are still capped while the image is copied.

    Raises:
        ValidationError: Declared body size over the limit
    """
    declared = request.headers.get("content-length")
    if declared is None:
        return
    try:
        size = int(declared)
    except ValueError:
        raise ValidationError("Invalid request") from None
    if size > max_upload_bytes + _FORM_OVERHEAD_BYTES:
        raise ValidationError(_too_large_message(max_upload_bytes))


def _too_large_message(max_bytes: int) -> str:
    return f"Image too large (limit {max_bytes / (1024 * 1024):g} MB)"


def _form_text(form: FormData, key: str) -> str | None:
    value = form.get(key)
    return value if isinstance(value, str) else None


_TRANSFORM_BODY = {
    "content": {
        "multipart/form-data": {
            "schema": {
                "type": "object",
                "properties": {
                    "image": {"type": "string", "format": "binary"},
                    "style": {"type": "string", "description": "Catalog key or raw prompt"},
                    "prompt": {"type": "string", "description": "Prompt used without a style"},
                },
                "required": ["image"],
            }
        }
    },
    "required": True,
}


@router.post(
    "/transform",
    openapi_extra={"requestBody": _TRANSFORM_BODY},
    response_model=TransformResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid image, style or prompt"},
        408: {"model": TimeoutErrorResponse, "description": "Request or provider timeout"},
        429: {"model": ErrorResponse, "description": "Provider rate limit"},
        500: {"model": ErrorResponse, "description": "Provider or internal error"},
        503: {"model": CapacityErrorResponse, "description": "Server at capacity"},
    },
)
async def transform(request: Request) -> TransformResponse:
    """Restyle an uploaded photo with a catalog style or a raw prompt.

    The multipart body is read only after the request is admitted, so a
    rejected request never has its upload spooled.
    """
    state = request.app.state
    settings: Settings = state.settings
    tracker: RequestTracker = state.tracker
    pipeline: TransformPipeline = state.pipeline

    async with tracker.admit() as slot:
        try:
            check_content_length(request, settings.max_upload_bytes)
            async with request.form(max_files=1, max_fields=_MAX_FORM_FIELDS) as form:
                image = form.get("image")
                upload = image if isinstance(image, UploadFile) else None
                style = _form_text(form, "style")
                prompt = _form_text(form, "prompt")
                logger.info(
                    "[%s] Transform request: has_file=%s, type=%s, style=%r",
                    slot.request_id,
                    upload is not None,
                    upload.content_type if upload is not None else None,
                    (style or "")[:40],
                )
                upload_path = await save_upload(
                    upload, settings.upload_dir, settings.max_upload_bytes
                )
            result = await tracker.watch(
                slot,
                pipeline.transform(
                    upload_path,
                    style,
                    prompt,
                    on_stage=slot.update_stage,
                    is_abandoned=lambda: slot.released,
                ),
            )
        except StarletteHTTPException as e:
            # Malformed multipart body or too many parts
            logger.warning("[%s] Unreadable form: %s", slot.request_id, e.detail)
            raise ValidationError("Invalid request") from e
        except RestyleError as e:
            logger.warning("[%s] Transform failed: %s", slot.request_id, e)
            raise
        except Exception:
            logger.exception("[%s] Unexpected transform error", slot.request_id)
            # Sanitize error message - don't expose internal details to clients
            raise RestyleError() from None

        logger.info("[%s] Transform completed. Image ID: %s", slot.request_id, result.image_id)
        return TransformResponse(
            image_id=result.image_id,
            request_id=slot.request_id,
            processing_time=slot.processing_time_ms,
        )


@router.get("/styles", response_model=StylesResponse)
async def list_styles(request: Request) -> StylesResponse:
    """List the style keys of the catalog."""
    return StylesResponse(styles=sorted(request.app.state.pipeline.catalog))


@router.get("/health")
async def health(request: Request) -> dict[str, Any]:
    """Health check with capacity figures."""
    admission = request.app.state.tracker.admission
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "activeRequests": admission.active,
        "maxConcurrent": admission.capacity,
        "queueLength": admission.queue_length,
    }


@router.get("/status")
async def status(request: Request) -> dict[str, Any]:
    """Monitoring snapshot."""
    state = request.app.state
    tracker: RequestTracker = state.tracker
    return {
        "server": "photo-restyle",
        "status": "running",
        "activeRequests": tracker.admission.active,
        "maxConcurrent": tracker.admission.capacity,
        "queueLength": tracker.admission.queue_length,
        "activeRequestIds": tracker.active_ids(),
        "styles": len(state.pipeline.catalog),
        "uptime": round(time.time() - state.started_at, 2),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get(
    "/progress/{request_id}",
    response_model=ProgressResponse,
    response_model_exclude_none=True,
    responses={200: {"description": "Processing state (status is not_found when finished)"}},
)
async def progress(request: Request, request_id: str) -> ProgressResponse:
    """Report whether a request is still being processed."""
    tracker: RequestTracker = request.app.state.tracker
    slot = tracker.get(request_id)

    if slot is None:
        return ProgressResponse(
            status="not_found",
            message="Request not found or completed",
            activeRequests=tracker.admission.active,
            maxConcurrent=tracker.admission.capacity,
        )

    return ProgressResponse(
        status="processing",
        message=slot.stage,
        activeRequests=tracker.admission.active,
        maxConcurrent=tracker.admission.capacity,
        elapsedSeconds=round(slot.elapsed_seconds, 2),
    )

