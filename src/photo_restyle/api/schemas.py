"""Pydantic schemas for API responses."""

from typing import Literal

from pydantic import BaseModel, Field


class TransformResponse(BaseModel):
    """Response for a successful POST /transform."""

    success: Literal[True] = True
    image_id: str = Field(..., description="Id of the result image, fetch via GET /result/{image_id}")
    request_id: str = Field(..., description="Id of the request, usable with GET /progress/{id}")
    processing_time: int = Field(..., ge=0, description="Milliseconds since the request was admitted")


class ErrorResponse(BaseModel):
    """Standard error response body."""

    success: Literal[False] = False
    error: str = Field(..., description="Error description")


class CapacityErrorResponse(ErrorResponse):
    """Error body when every slot is taken (503)."""

    queuePosition: int
    estimatedWaitTime: int = Field(..., description="Estimated wait in minutes")


class TimeoutErrorResponse(ErrorResponse):
    """Error body for request or provider timeouts (408)."""

    timeout: Literal[True] = True


class NotFoundResponse(ErrorResponse):
    """Error body for a missing result (404)."""

    imageId: str


# Progress status type for strong typing
ProgressStatusType = Literal["processing", "not_found"]


class ProgressResponse(BaseModel):
    """Response for GET /progress/{request_id}."""

    status: ProgressStatusType
    message: str
    activeRequests: int
    maxConcurrent: int
    elapsedSeconds: float | None = Field(
        None, description="Seconds since admission (only present while processing)"
    )


class StylesResponse(BaseModel):
    """Response for GET /styles."""

    styles: list[str]
