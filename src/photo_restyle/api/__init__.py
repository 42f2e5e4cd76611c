"""HTTP API for photo-restyle."""

from photo_restyle.api.main import app, create_app

__all__ = ["app", "create_app"]
