"""Admission control for transform requests.

The controller keeps a process-wide count of in-flight transforms against a
fixed ceiling. Requests over the ceiling are rejected immediately; nothing is
queued. The rejection still reports a queue position and a wait estimate so
clients can show a sensible retry message.

Both ``try_admit`` and ``release`` are synchronous. The server runs on a single
asyncio event loop, so a method without an ``await`` cannot interleave with
another request: the check and the increment happen as one step.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class Admitted:
    """A slot was granted."""

    active: int
    capacity: int


@dataclass(frozen=True)
class Rejected:
    """No slot available.

    Attributes:
        reason: Human-readable explanation for the client
        queue_position: Position the request would have in a queue
        estimated_wait_minutes: Rough wait before retrying
    """

    reason: str
    queue_position: int
    estimated_wait_minutes: int


Admission = Admitted | Rejected


class AdmissionController:
    """Counts in-flight requests against a fixed ceiling.

    Usage:
        controller = AdmissionController(max_concurrent=20)
        if isinstance(controller.try_admit(), Admitted):
            try:
                ...
            finally:
                controller.release()
    """

    def __init__(self, max_concurrent: int = 20, minutes_per_request: float = 3.0) -> None:
        if max_concurrent < 1:
            raise ValueError(f"max_concurrent must be at least 1, got {max_concurrent}")
        self._capacity = max_concurrent
        self._minutes_per_request = minutes_per_request
        self._active = 0

    @property
    def active(self) -> int:
        return self._active

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def available(self) -> int:
        return self._capacity - self._active

    @property
    def queue_length(self) -> int:
        """Always 0: requests over capacity are rejected, never queued."""
        return 0

    def try_admit(self) -> Admission:
        """Take a slot if one is free."""
        if self._active >= self._capacity:
            position = self.queue_length + 1
            return Rejected(
                reason=(
                    f"Server is at capacity ({self._capacity} users). "
                    "Please try again in a moment."
                ),
                queue_position=position,
                estimated_wait_minutes=math.ceil(position * self._minutes_per_request),
            )

        self._active += 1
        return Admitted(active=self._active, capacity=self._capacity)

    def release(self) -> None:
        """Give a slot back.

        Raises:
            RuntimeError: If no slot is held (release without admission)
        """
        if self._active <= 0:
            raise RuntimeError("release() called with no active slots")
        self._active -= 1
