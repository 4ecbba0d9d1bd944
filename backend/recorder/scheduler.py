"""Recurring async task with explicit cancellation."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class PeriodicTask:
    """
    Await `callback` every `interval` seconds until cancelled.

    A failing callback is logged and the schedule continues. `sleep` is
    injectable so tests can drive the schedule without wall-clock waits.
    """

    def __init__(
        self,
        interval: float,
        callback: Callable[[], Awaitable[None]],
        *,
        name: str = "periodic",
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.interval = interval
        self.name = name
        self._callback = callback
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None
        self._cancelled = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._cancelled = False
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)

    def cancel(self) -> None:
        """
        Stop scheduling further callbacks.

        Called from inside the callback itself, the current run is allowed to
        finish and the loop exits afterwards; otherwise the pending sleep is
        interrupted immediately.
        """
        self._cancelled = True
        task, self._task = self._task, None
        if task is not None and task is not _current_task():
            task.cancel()

    async def _run(self) -> None:
        while not self._cancelled:
            await self._sleep(self.interval)
            if self._cancelled:
                break
            try:
                await self._callback()
            except Exception:
                logger.exception("Periodic task %s failed", self.name)
