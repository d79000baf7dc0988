"""Cancellable periodic scheduling on the running asyncio event loop."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

__all__ = ["CancellationToken", "PeriodicScheduler", "TickCallback"]

LOGGER = logging.getLogger(__name__)

TickCallback = Callable[[], Awaitable[None]]


class CancellationToken:
    """Handle returned by :meth:`PeriodicScheduler.schedule`.

    Awaiting :meth:`cancel` guarantees that the scheduled callback is not
    running and will never run again once the call returns.
    """

    __slots__ = ("_task", "_cancelled")

    def __init__(self, task: asyncio.Task[None]) -> None:
        self._task = task
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    async def cancel(self) -> None:
        """Cancel the recurring schedule and wait for it to wind down."""

        if self._cancelled:
            return
        self._cancelled = True
        self._task.cancel()
        if asyncio.current_task() is self._task:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            pass


@dataclass(slots=True)
class PeriodicScheduler:
    """Invoke an async callback every ``interval`` seconds.

    Ticks never overlap: the next tick is only considered once the previous
    callback has returned. When a callback overruns one or more deadlines the
    missed ticks are dropped with a warning and the schedule resumes on the
    next future deadline.
    """

    name: str = "green-carbon-scheduler"
    logger: logging.Logger = field(default=LOGGER, repr=False)

    def schedule(self, interval: float, callback: TickCallback) -> CancellationToken:
        """Start invoking ``callback`` every ``interval`` seconds.

        Args:
            interval: Period in seconds. Must be strictly positive.
            callback: Coroutine function invoked on each tick.

        Returns:
            Token used to cancel the schedule.

        Raises:
            ValueError: If ``interval`` is not positive.
            RuntimeError: If called without a running event loop.
        """

        if interval <= 0:
            raise ValueError("interval must be > 0")
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._run(interval, callback), name=self.name)
        return CancellationToken(task)

    async def _run(self, interval: float, callback: TickCallback) -> None:
        loop = asyncio.get_running_loop()
        next_deadline = loop.time() + interval
        while True:
            await asyncio.sleep(max(next_deadline - loop.time(), 0.0))
            try:
                await callback()
            except asyncio.CancelledError:
                raise
            except Exception:
                self.logger.exception("Scheduled tick failed")

            next_deadline += interval
            now = loop.time()
            if now > next_deadline:
                missed = int((now - next_deadline) // interval) + 1
                self.logger.warning(
                    "Tick overran the sampling interval; dropping missed ticks",
                    extra={"interval_seconds": interval, "dropped_ticks": missed},
                )
                next_deadline += missed * interval
