"""Input image normalization.

The provider expects a square RGBA PNG. Uploads arrive in any format Pillow
can read, with arbitrary size and orientation.
"""

from __future__ import annotations

import io

from PIL import Image, ImageOps, UnidentifiedImageError

from photo_restyle.core.exceptions import ValidationError

DEFAULT_IMAGE_SIZE = 1024


def normalize_image(data: bytes, size: int = DEFAULT_IMAGE_SIZE) -> bytes:
    """
    Cover-fit an image to ``size`` x ``size`` and encode it as RGBA PNG.

    EXIF orientation is applied first so phone photos are not sideways.
    The image is scaled to cover the square and center-cropped.

    Args:
        data: Encoded image bytes (JPEG, PNG, WebP, ...)
        size: Edge length of the output square in pixels

    Returns:
        PNG-encoded bytes

    Raises:
        ValidationError: If ``data`` is not a decodable image
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            img = ImageOps.exif_transpose(img)
            fitted = ImageOps.fit(img, (size, size), method=Image.Resampling.LANCZOS)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise ValidationError("Uploaded file is not a valid image") from e

    if fitted.mode != "RGBA":
        fitted = fitted.convert("RGBA")

    out = io.BytesIO()
    fitted.save(out, format="PNG")
    return out.getvalue()
