"""Trailing debounce for control-driven resyncs."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Callable

from hue_mixer.logging_abstraction import get_logger

logger = get_logger(__name__)

__all__ = ["DebounceScheduler"]


class DebounceScheduler:
    """Coalesce bursts of requests into as few runs of `action` as possible.

    `request()` marks a run as needed and starts the timer task when it is not
    already active. The timer waits until `period` seconds have passed since
    the most recent request, then ticks: it clears the pending flag and awaits
    `action`. If another request arrived while the action was running, the
    timer goes round again; otherwise it stops. Ticks never overlap.

    `clock` and `sleep` default to the event loop's clock and asyncio.sleep and
    can be replaced with a fake clock in tests.
    """

    def __init__(
        self,
        period: float,
        action: Callable[[], Awaitable[object]],
        *,
        clock: Callable[[], float] | None = None,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        name: str = "debounce",
    ) -> None:
        self.period: float = period
        self.name: str = name
        self.passes: int = 0
        self._action: Callable[[], Awaitable[object]] = action
        self._clock: Callable[[], float] | None = clock
        self._sleep: Callable[[float], Awaitable[object]] = sleep
        self._pending: bool = False
        self._last_request: float = 0.0
        self._task: asyncio.Task[None] | None = None

    def _now(self) -> float:
        if self._clock is not None:
            return self._clock()
        return asyncio.get_running_loop().time()

    @property
    def pending(self) -> bool:
        return self._pending

    def is_active(self) -> bool:
        return self._task is not None

    def request(self) -> None:
        self._pending = True
        self._last_request = self._now()
        if self._task is None:
            logger.debug("%s: starting timer (%.3fs)", self.name, self.period)
            self._task = asyncio.create_task(self._run(), name=f"{self.name}_timer")

    async def tick(self) -> None:
        """Clear the pending flag and run the action once."""
        self._pending = False
        self.passes += 1
        await self._action()

    async def _wait_for_quiet(self) -> None:
        while True:
            remaining = self._last_request + self.period - self._now()
            if remaining <= 0:
                return
            await self._sleep(remaining)

    async def _run(self) -> None:
        try:
            while True:
                await self._wait_for_quiet()
                try:
                    await self.tick()
                except Exception:
                    logger.exception("%s: action failed", self.name)
                if not self._pending:
                    break
        finally:
            self._task = None
            logger.debug("%s: timer stopped after %d passes", self.name, self.passes)

    async def join(self) -> None:
        """Wait until the timer has stopped on its own."""
        while self._task is not None:
            await self._task

    async def cancel(self) -> None:
        """Stop the timer without running the pending action."""
        task = self._task
        if task is None:
            return
        _ = task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        # a task cancelled before its first step never reaches the finally in _run
        self._task = None
        self._pending = False
