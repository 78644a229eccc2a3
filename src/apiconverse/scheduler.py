"""Cancellable periodic background tasks and an injectable clock."""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Optional, Protocol

from src.utils.logger import get_logger

logger = get_logger("scheduler")


class Clock(Protocol):
    def now(self) -> float: ...


class MonotonicClock:
    """Default clock backed by time.monotonic()."""

    def now(self) -> float:
        return time.monotonic()


class ManualClock:
    """Clock that only moves when told to. Used by tests."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = start

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> float:
        self._now += seconds
        return self._now


class PeriodicTask:
    """Runs an async callback every `interval` seconds until stopped.

    A failing callback is logged and the loop keeps going; only stop()
    (or cancelling the owning loop) ends the task.
    """

    def __init__(
        self,
        name: str,
        interval: float,
        callback: Callable[[], Awaitable[object]],
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.name = name
        self.interval = interval
        self._callback = callback
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the loop on the running event loop. Idempotent."""
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name=self.name)
        self._task.add_done_callback(self._on_done)
        logger.debug(f"⏱️ Started periodic task '{self.name}' every {self.interval}s")

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish. Safe to call twice."""
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug(f"⏹️ Stopped periodic task '{self.name}'")

    async def run_once(self) -> None:
        """Run a single iteration immediately, with the loop's error handling."""
        try:
            await self._callback()
        except Exception as e:
            logger.error(f"❌ Periodic task '{self.name}' failed: {e}")

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self.run_once()

    def _on_done(self, task: asyncio.Task) -> None:
        if not task.cancelled():
            exc = task.exception()
            if exc:
                logger.error(f"❌ Periodic task '{self.name}' exited: {exc}")
