"""Transform orchestration: upload -> normalized PNG -> provider -> result artifact."""

from __future__ import annotations

import asyncio
import time
import uuid
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

from photo_restyle.core.exceptions import RequestTimeoutError, ValidationError
from photo_restyle.core.logging import get_logger
from photo_restyle.core.types import TransformResult
from photo_restyle.generation.imaging import normalize_image

if TYPE_CHECKING:
    from photo_restyle.core.config import Settings
    from photo_restyle.generation.client import ImageEditClient
    from photo_restyle.styles import StyleCatalog

logger = get_logger(__name__)

StageCallback = Callable[[str], None]


def _remove_quietly(path: Path | None) -> None:
    """Delete a file, logging instead of raising on failure."""
    if path is None:
        return
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Failed to cleanup %s: %s", path, e)


class TransformPipeline:
    """Runs one transform end to end.

    Side effects per call:
        - a normalized PNG is written to ``settings.temp_dir`` and always removed
        - the upload file is always removed
        - on success only, the generated image is written to ``settings.results_dir``;
          an abandoned transform never leaves one behind
    """

    def __init__(
        self,
        settings: Settings,
        catalog: StyleCatalog,
        client: ImageEditClient,
    ) -> None:
        self._settings = settings
        self._catalog = catalog
        self._client = client

    @property
    def catalog(self) -> StyleCatalog:
        return self._catalog

    async def transform(
        self,
        upload_path: Path,
        style: str | None,
        prompt: str | None = None,
        *,
        on_stage: StageCallback | None = None,
        is_abandoned: Callable[[], bool] | None = None,
    ) -> TransformResult:
        """
        Restyle an uploaded image.

        Args:
            upload_path: Uploaded image on disk (consumed: deleted on return)
            style: Catalog key, or a raw prompt
            prompt: Raw prompt used when ``style`` is absent
            on_stage: Called with a progress message at each stage
            is_abandoned: Returns True once the caller gave up on this transform
                (request deadline); the provider output is then dropped, not stored

        Returns:
            TransformResult with the id of the stored result artifact

        Raises:
            ValidationError: Missing/empty/undecodable image or missing prompt
            UnknownStyleError: Style unusable and no prompt fallback
            UpstreamError: Provider failure (including its timeout/rate-limit subtypes)
            RequestTimeoutError: The transform was abandoned before its result was stored
        """
        report = on_stage or (lambda _message: None)
        abandoned = is_abandoned or (lambda: False)
        start_time = time.time()
        tmp_png: Path | None = None

        try:
            resolved = self._catalog.resolve(
                style,
                prompt,
                allow_raw=self._settings.allow_raw_prompts,
            )

            try:
                image_bytes = await asyncio.to_thread(upload_path.read_bytes)
            except OSError as e:
                raise ValidationError("Uploaded image is missing") from e
            if not image_bytes:
                raise ValidationError("Uploaded image is empty")

            # 1. Normalize
            report("Preparing image...")
            png = await asyncio.to_thread(normalize_image, image_bytes, self._settings.image_size)

            tmp_png = self._settings.temp_dir / f"{uuid.uuid4().hex}.png"
            await asyncio.to_thread(tmp_png.write_bytes, png)

            # 2. Generate
            report("Generating image...")
            logger.info(
                "Calling image provider (prompt source=%s, style=%s)",
                resolved.source,
                resolved.style,
            )
            output = await self._client.edit(png, resolved.text)

            # 3. Persist, unless nobody is waiting for the result anymore
            if abandoned():
                logger.info("Transform abandoned; dropping provider output")
                raise RequestTimeoutError()
            report("Saving result...")
            image_id = f"{uuid.uuid4().hex}.png"
            out_path = self._settings.results_dir / image_id
            try:
                await asyncio.to_thread(out_path.write_bytes, output)
                # The deadline can fire while the write runs in its thread
                if abandoned():
                    raise RequestTimeoutError()
            except BaseException:
                # No partial result artifact on failure
                _remove_quietly(out_path)
                raise

            elapsed = time.time() - start_time
            logger.info("Saved result %s (%d bytes) in %.1fs", image_id, len(output), elapsed)
            return TransformResult(
                image_id=image_id,
                prompt=resolved,
                size_bytes=len(output),
                elapsed_seconds=elapsed,
            )
        finally:
            _remove_quietly(tmp_png)
            _remove_quietly(upload_path)
