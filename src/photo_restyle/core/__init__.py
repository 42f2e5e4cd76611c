"""Core utilities for photo-restyle."""

from photo_restyle.core.config import Settings, settings
from photo_restyle.core.exceptions import (
    CapacityExceededError,
    ConfigurationError,
    NoResultError,
    NotFoundError,
    RequestTimeoutError,
    RestyleError,
    UnknownStyleError,
    UpstreamError,
    UpstreamRateLimitError,
    UpstreamTimeoutError,
    ValidationError,
)
from photo_restyle.core.types import ResolvedPrompt, TransformResult

__all__ = [
    "CapacityExceededError",
    "ConfigurationError",
    "NoResultError",
    "NotFoundError",
    "RequestTimeoutError",
    "ResolvedPrompt",
    "RestyleError",
    "Settings",
    "TransformResult",
    "UnknownStyleError",
    "UpstreamError",
    "UpstreamRateLimitError",
    "UpstreamTimeoutError",
    "ValidationError",
    "settings",
]
