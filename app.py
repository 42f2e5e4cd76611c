"""Entry point for container deployments.

Equivalent to:
  uvicorn photo_restyle.api.main:app --host 0.0.0.0 --port $PORT
"""

import uvicorn

from photo_restyle.core.config import get_settings
from photo_restyle.core.logging import get_logger, setup_logging

logger = get_logger(__name__)

# Initialize logging
settings = get_settings()
setup_logging(settings.log_level, format_style=settings.log_format)

if __name__ == "__main__":
    # Log startup info for debugging
    logger.info("=" * 60)
    logger.info("STARTUP: photo-restyle (root app.py) on port %d", settings.port)
    logger.info("=" * 60)

    uvicorn.run(
        "photo_restyle.api.main:app",
        host=settings.host,
        port=settings.port,
        workers=1,
    )
