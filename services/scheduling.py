"""Cancelable asyncio task handles for timer-driven work."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

AsyncCallback = Callable[[], Awaitable[Any]]


class PeriodicTask:
    """Run ``callback`` every ``interval`` seconds until cancelled.

    A failing run is logged and the schedule continues with the next period.
    """

    def __init__(self, name: str, interval: float, callback: AsyncCallback) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.name = name
        self.interval = interval
        self._callback = callback
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self._callback()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Scheduled task %s failed", self.name)


def schedule_once(delay: float, callback: AsyncCallback, name: str) -> asyncio.Task[None]:
    """Run ``callback`` once after ``delay`` seconds; cancel the task to abort."""

    async def _delayed() -> None:
        if delay > 0:
            await asyncio.sleep(delay)
        await callback()

    return asyncio.get_running_loop().create_task(_delayed(), name=name)
