import asyncio
import logging
from typing import Callable

logger = logging.getLogger(__name__)


class AsyncioTick:
    def __init__(self, task: asyncio.Task):
        self._task = task

    def cancel(self) -> None:
        self._task.cancel()

    @property
    def cancelled(self) -> bool:
        return self._task.cancelled() or self._task.done()


class AsyncioTickScheduler:
    """Periodic callbacks on the running asyncio loop.

    Each tick is a single task that sleeps, then calls the callback
    synchronously, so two invocations of the same tick cannot overlap.
    """

    def every(self, interval: float, callback: Callable[[], None]) -> AsyncioTick:
        if interval <= 0:
            raise ValueError("Tick interval must be greater than zero.")
        return AsyncioTick(asyncio.get_running_loop().create_task(self._run(interval, callback)))

    @staticmethod
    async def _run(interval: float, callback: Callable[[], None]) -> None:
        while True:
            await asyncio.sleep(interval)
            callback()
