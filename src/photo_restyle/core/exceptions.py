"""Custom exceptions for photo-restyle.

Every error a client can see derives from :class:`RestyleError`, which carries
the HTTP status it maps to and builds the JSON error body.
"""

from __future__ import annotations

from typing import Any


class RestyleError(Exception):
    """Base exception for photo-restyle."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)

    def extra(self) -> dict[str, Any]:
        """Additional fields merged into the error body."""
        return {}

    def to_payload(self) -> dict[str, Any]:
        return {"success": False, "error": self.message, **self.extra()}


class ConfigurationError(RestyleError):
    """Configuration could not be loaded."""

    default_message = "Invalid configuration"


class ValidationError(RestyleError):
    """Client input is missing or malformed."""

    status_code = 400
    default_message = "Missing image or style/prompt"


class UnknownStyleError(ValidationError):
    """A style was given that is neither a catalog key nor a usable prompt."""

    default_message = "Unknown style or empty prompt"

    def __init__(self, style: str | None, message: str | None = None) -> None:
        super().__init__(message)
        self.style = style

    def extra(self) -> dict[str, Any]:
        return {"style": self.style}


class CapacityExceededError(RestyleError):
    """All admission slots are taken."""

    status_code = 503
    default_message = "Server is at capacity. Please try again in a moment."

    def __init__(
        self,
        message: str | None = None,
        *,
        queue_position: int = 1,
        estimated_wait_minutes: int = 0,
    ) -> None:
        super().__init__(message)
        self.queue_position = queue_position
        self.estimated_wait_minutes = estimated_wait_minutes

    def extra(self) -> dict[str, Any]:
        return {
            "queuePosition": self.queue_position,
            "estimatedWaitTime": self.estimated_wait_minutes,
        }


class RequestTimeoutError(RestyleError):
    """The whole request exceeded its deadline."""

    status_code = 408
    default_message = "Request timeout. Please try again."

    def extra(self) -> dict[str, Any]:
        return {"timeout": True}


class UpstreamError(RestyleError):
    """The image-edit provider failed."""

    default_message = "Image provider request failed"


class UpstreamTimeoutError(UpstreamError):
    """The provider call exceeded its own timeout."""

    status_code = 408
    default_message = "Request timeout - please try again"

    def extra(self) -> dict[str, Any]:
        return {"timeout": True}


class UpstreamRateLimitError(UpstreamError):
    """The provider signalled a rate limit."""

    status_code = 429
    default_message = "Rate limit exceeded - please wait a moment"


class NoResultError(UpstreamError):
    """The provider answered without image data or a URL."""

    default_message = "No image data from provider"


class NotFoundError(RestyleError):
    """A result artifact does not exist (or has expired)."""

    status_code = 404
    default_message = "Result not found"

    def __init__(self, image_id: str, message: str | None = None) -> None:
        super().__init__(message)
        self.image_id = image_id

    def extra(self) -> dict[str, Any]:
        return {"imageId": self.image_id}
