"""Per-request lifecycle tracking for admitted transforms.

Each admitted request gets a :class:`RequestSlot` with an id and a deadline
timer. The slot is released exactly once, by whichever happens first:

- the request completes normally (``COMPLETED``)
- the request raises (``FAILED``)
- the deadline timer fires (``TIMED_OUT``)

Releasing records the outcome on the slot, cancels the timer, drops the slot
from the registry and gives the capacity slot back to the
:class:`~photo_restyle.api.admission.AdmissionController`. Any later release
attempt sees the recorded outcome and does nothing.

Usage in route handlers::

    async with tracker.admit() as slot:
        result = await tracker.watch(slot, pipeline.transform(...))

When the deadline fires first, ``watch`` raises :class:`RequestTimeoutError`
and the unfinished work is left to run out on its own. Its eventual result is
discarded, so a request never produces two responses.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from collections.abc import AsyncIterator, Awaitable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

from photo_restyle.api.admission import AdmissionController, Rejected
from photo_restyle.core.exceptions import CapacityExceededError, RequestTimeoutError
from photo_restyle.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class SlotOutcome(str, Enum):
    """Terminal state of a request slot."""

    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass
class RequestSlot:
    """Bookkeeping for one admitted request.

    Attributes:
        request_id: Unique request identifier
        timeout: Deadline in seconds, measured from admission
        admitted_at: Epoch seconds at admission
        stage: Human-readable progress message
        outcome: Terminal state, set exactly once on release
    """

    request_id: str
    timeout: float
    admitted_at: float = field(default_factory=time.time)
    stage: str = "Admitted"
    outcome: SlotOutcome | None = None
    _timer: asyncio.TimerHandle | None = field(default=None, repr=False)
    _expired: asyncio.Event = field(default_factory=asyncio.Event, repr=False)

    @property
    def released(self) -> bool:
        return self.outcome is not None

    @property
    def elapsed_seconds(self) -> float:
        return time.time() - self.admitted_at

    @property
    def processing_time_ms(self) -> int:
        return int(self.elapsed_seconds * 1000)

    def update_stage(self, message: str) -> None:
        """Record progress; ignored once the slot is released."""
        if not self.released:
            self.stage = message


def describe_duration(seconds: float) -> str:
    """Format a timeout for client-facing messages."""
    if seconds >= 60 and seconds % 60 == 0:
        minutes = int(seconds // 60)
        return f"{minutes} minute{'s' if minutes != 1 else ''}"
    return f"{seconds:g} seconds"


class RequestTracker:
    """Issues request slots and releases each one exactly once.

    All methods that touch the slot registry or the admission counter are
    synchronous, so they run without interleaving on the event loop.
    """

    def __init__(self, admission: AdmissionController, timeout_seconds: float = 300.0) -> None:
        self._admission = admission
        self._timeout = timeout_seconds
        self._slots: dict[str, RequestSlot] = {}
        self._stragglers: set[asyncio.Task[Any]] = set()

    @property
    def admission(self) -> AdmissionController:
        return self._admission

    @property
    def timeout_seconds(self) -> float:
        return self._timeout

    def begin(self, request_id: str | None = None, timeout: float | None = None) -> RequestSlot:
        """
        Admit a request and arm its deadline timer.

        Must be called from inside the running event loop.

        Raises:
            CapacityExceededError: If every slot is taken
            KeyError: If ``request_id`` is already being tracked
        """
        loop = asyncio.get_running_loop()
        request_id = request_id or uuid.uuid4().hex
        if request_id in self._slots:
            raise KeyError(f"Request already tracked: {request_id}")

        decision = self._admission.try_admit()
        if isinstance(decision, Rejected):
            logger.warning(
                "Rejected request: at capacity (%d/%d)",
                self._admission.active,
                self._admission.capacity,
            )
            raise CapacityExceededError(
                decision.reason,
                queue_position=decision.queue_position,
                estimated_wait_minutes=decision.estimated_wait_minutes,
            )

        slot = RequestSlot(
            request_id=request_id,
            timeout=self._timeout if timeout is None else timeout,
        )
        slot._timer = loop.call_later(slot.timeout, self._expire, slot)
        self._slots[request_id] = slot
        logger.info(
            "[%s] Request started. Active: %d/%d",
            request_id,
            decision.active,
            decision.capacity,
        )
        return slot

    def release(self, slot: RequestSlot, outcome: SlotOutcome = SlotOutcome.COMPLETED) -> bool:
        """
        Release a slot if it has not been released yet.

        Returns:
            True if this call released the slot, False if it was already released
        """
        if slot.outcome is not None:
            return False

        slot.outcome = outcome
        if slot._timer is not None:
            slot._timer.cancel()
            slot._timer = None
        self._slots.pop(slot.request_id, None)
        self._admission.release()

        logger.info(
            "[%s] Request %s in %.2fs. Active: %d/%d",
            slot.request_id,
            outcome.value.replace("_", " "),
            slot.elapsed_seconds,
            self._admission.active,
            self._admission.capacity,
        )
        return True

    def _expire(self, slot: RequestSlot) -> None:
        if self.release(slot, SlotOutcome.TIMED_OUT):
            logger.warning("[%s] Request timeout after %.0fs", slot.request_id, slot.timeout)
            slot._expired.set()

    @asynccontextmanager
    async def admit(
        self,
        request_id: str | None = None,
        timeout: float | None = None,
    ) -> AsyncIterator[RequestSlot]:
        """Hold a slot for the duration of the block and release it on every exit path."""
        slot = self.begin(request_id, timeout)
        try:
            yield slot
        except BaseException:
            self.release(slot, SlotOutcome.FAILED)
            raise
        self.release(slot, SlotOutcome.COMPLETED)

    async def watch(self, slot: RequestSlot, work: Awaitable[T]) -> T:
        """
        Await ``work`` unless the slot's deadline fires first.

        Raises:
            RequestTimeoutError: If the deadline fired before ``work`` finished
        """
        task: asyncio.Future[T] = asyncio.ensure_future(work)
        expiry = asyncio.ensure_future(slot._expired.wait())
        try:
            await asyncio.wait({task, expiry}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            expiry.cancel()

        if slot.outcome is SlotOutcome.TIMED_OUT:
            self._abandon(slot, task)
            raise RequestTimeoutError(
                "Request timeout - image processing took longer than "
                f"{describe_duration(slot.timeout)}. Please try again."
            )
        return task.result()

    def _abandon(self, slot: RequestSlot, task: asyncio.Future[Any]) -> None:
        request_id = slot.request_id

        def discard(finished: asyncio.Future[Any]) -> None:
            self._stragglers.discard(finished)  # type: ignore[arg-type]
            if finished.cancelled():
                return
            exc = finished.exception()
            if exc is not None:
                logger.debug("[%s] Discarding late failure after timeout: %s", request_id, exc)
            else:
                logger.info("[%s] Discarding late result after timeout", request_id)

        if task.done():
            discard(task)
            return
        self._stragglers.add(task)  # type: ignore[arg-type]
        task.add_done_callback(discard)

    def get(self, request_id: str) -> RequestSlot | None:
        return self._slots.get(request_id)

    def active_ids(self) -> list[str]:
        return list(self._slots)

    def shutdown(self) -> None:
        """Cancel abandoned work and release any slots still held."""
        for task in list(self._stragglers):
            task.cancel()
        for slot in list(self._slots.values()):
            self.release(slot, SlotOutcome.FAILED)

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._slots

    def __len__(self) -> int:
        return len(self._slots)
