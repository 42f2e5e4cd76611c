"""Retention sweeper for temporary and result artifacts.

Artifacts are plain files; their modification time is their creation time.
Every tick the sweeper deletes files older than the threshold configured for
their directory. Deletion is best-effort housekeeping: a file that vanished
or cannot be removed is skipped and retried on the next tick.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from photo_restyle.core.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from photo_restyle.core.config import Settings

logger = get_logger(__name__)


@dataclass(frozen=True)
class SweepTarget:
    """A directory and the maximum age (seconds) of files kept in it."""

    directory: Path
    max_age_seconds: float


class RetentionSweeper:
    """Periodically deletes expired files.

    Usage:
        sweeper = RetentionSweeper([SweepTarget(tmp_dir, 360)], interval_seconds=30)
        sweeper.start()
        ...
        await sweeper.stop()
    """

    def __init__(self, targets: Sequence[SweepTarget], interval_seconds: float = 30.0) -> None:
        self._targets = tuple(targets)
        self._interval = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> RetentionSweeper:
        return cls(
            [
                SweepTarget(settings.upload_dir, settings.temp_max_age_seconds),
                SweepTarget(settings.temp_dir, settings.temp_max_age_seconds),
                SweepTarget(settings.results_dir, settings.result_max_age_seconds),
            ],
            interval_seconds=settings.sweep_interval_seconds,
        )

    @property
    def targets(self) -> tuple[SweepTarget, ...]:
        return self._targets

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def sweep(self, now: float | None = None) -> int:
        """
        Run one sweep pass over every target.

        Args:
            now: Reference epoch time (defaults to the current time)

        Returns:
            Number of files deleted
        """
        now = time.time() if now is None else now
        deleted = 0
        for target in self._targets:
            deleted += self._sweep_directory(target, now)
        if deleted:
            logger.info("Swept %d expired artifacts", deleted)
        return deleted

    @staticmethod
    def _sweep_directory(target: SweepTarget, now: float) -> int:
        try:
            entries = list(target.directory.iterdir())
        except OSError:
            return 0

        deleted = 0
        for path in entries:
            try:
                if not path.is_file():
                    continue
                if now - path.stat().st_mtime > target.max_age_seconds:
                    path.unlink()
                    deleted += 1
            except OSError as e:
                logger.debug("Could not sweep %s: %s", path, e)
        return deleted

    def start(self) -> None:
        """Start the background sweep loop on the running event loop."""
        if self.running:
            return  # Already running

        self._task = asyncio.get_running_loop().create_task(self._run(), name="retention-sweeper")
        logger.info("Started retention sweeper (interval=%.0fs)", self._interval)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                # Directory scans and unlinks stay off the event loop
                await asyncio.to_thread(self.sweep)
            except Exception:
                logger.exception("Error during retention sweep")

    async def stop(self) -> None:
        """Stop the background sweep loop."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Stopped retention sweeper")
