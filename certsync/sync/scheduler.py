"""Fixed-interval runner for sync cycles.

The runner awaits each cycle before scheduling the next, so cycles never
overlap.  The interval is measured from the start of a cycle; when a cycle
runs longer than the interval the missed ticks are dropped and the next
cycle starts immediately.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable

import structlog

_log = structlog.get_logger(component="sync.scheduler")


class PeriodicRunner:
    """Calls *fn* every *interval* seconds until stopped.

    Args:
        fn:       Coroutine function run once per tick.
        interval: Seconds between cycle starts.
        name:     Task name, used in logs.
    """

    def __init__(
        self,
        fn: Callable[[], Awaitable[object]],
        interval: float,
        name: str = "sync-loop",
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._fn = fn
        self._interval = interval
        self._name = name
        self._stopping = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self.cycles_run = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task[None]:
        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._loop(), name=self._name)
        return self._task

    async def stop(self, grace: float = 15.0) -> None:
        """Let the in-flight cycle finish for up to *grace* seconds, then cancel it."""
        if self._task is None:
            return
        self._stopping.set()
        try:
            await asyncio.wait_for(asyncio.shield(self._task), timeout=grace)
        except TimeoutError:
            _log.warning("cycle_cancelled_on_shutdown", name=self._name, grace=grace)
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
        self._task = None

    async def _loop(self) -> None:
        while not self._stopping.is_set():
            started = time.monotonic()
            try:
                await self._fn()
            except Exception as exc:  # noqa: BLE001
                _log.error("cycle_raised", name=self._name, error=repr(exc))
            self.cycles_run += 1

            elapsed = time.monotonic() - started
            if elapsed >= self._interval:
                _log.warning(
                    "cycle_overran_interval",
                    name=self._name,
                    elapsed=round(elapsed, 3),
                    interval=self._interval,
                    skipped_ticks=int(elapsed // self._interval),
                )
                continue

            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self._interval - elapsed)
            except TimeoutError:
                pass
