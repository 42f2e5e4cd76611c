"""Image generation: provider client and input normalization."""

from photo_restyle.generation.client import ImageEditClient
from photo_restyle.generation.imaging import normalize_image

__all__ = [
    "ImageEditClient",
    "normalize_image",
]
