"""Tests for the error taxonomy and its JSON bodies."""

from __future__ import annotations

import pytest

from photo_restyle.core.exceptions import (
    CapacityExceededError,
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


@pytest.mark.parametrize(
    ("error", "status"),
    [
        (ValidationError(), 400),
        (UnknownStyleError("nope"), 400),
        (CapacityExceededError(), 503),
        (RequestTimeoutError(), 408),
        (UpstreamTimeoutError(), 408),
        (UpstreamRateLimitError(), 429),
        (UpstreamError(), 500),
        (NoResultError(), 500),
        (NotFoundError("x.png"), 404),
        (RestyleError(), 500),
    ],
)
def test_status_codes(error: RestyleError, status: int) -> None:
    assert error.status_code == status


def test_every_body_has_success_flag_and_error_string() -> None:
    for error in (ValidationError(), UpstreamError("boom"), NotFoundError("a.png")):
        payload = error.to_payload()
        assert payload["success"] is False
        assert isinstance(payload["error"], str)
        assert payload["error"]


def test_capacity_body_includes_retry_hint() -> None:
    payload = CapacityExceededError(
        "full", queue_position=1, estimated_wait_minutes=3
    ).to_payload()

    assert payload == {
        "success": False,
        "error": "full",
        "queuePosition": 1,
        "estimatedWaitTime": 3,
    }


def test_timeouts_flag_timeout() -> None:
    assert RequestTimeoutError().to_payload()["timeout"] is True
    assert UpstreamTimeoutError().to_payload()["timeout"] is True


def test_not_found_includes_image_id() -> None:
    assert NotFoundError("abc.png").to_payload()["imageId"] == "abc.png"


def test_upstream_subtypes_are_upstream_errors() -> None:
    """Callers catching UpstreamError see every provider failure."""
    for cls in (UpstreamTimeoutError, UpstreamRateLimitError, NoResultError):
        assert issubclass(cls, UpstreamError)
