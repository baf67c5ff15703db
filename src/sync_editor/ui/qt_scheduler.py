import asyncio
import logging
from typing import Callable, Coroutine

from PySide6.QtCore import QObject, QTimer

logger = logging.getLogger(__name__)


class QtTick:
    def __init__(self, timer: QTimer):
        self._timer = timer

    def cancel(self) -> None:
        self._timer.stop()
        self._timer.deleteLater()


class QtTickScheduler:
    """Tick scheduler on the Qt event loop; a QTimer slot never re-enters itself."""

    def __init__(self, parent: QObject | None = None):
        self._parent = parent

    def every(self, interval: float, callback: Callable[[], None]) -> QtTick:
        if interval <= 0:
            raise ValueError("Tick interval must be greater than zero.")
        timer = QTimer(self._parent)
        timer.setInterval(int(round(interval * 1000)))
        timer.timeout.connect(callback)
        timer.start()
        return QtTick(timer)


class AsyncioPump(QObject):
    """
    Runs an asyncio loop in short slices from a QTimer so coroutines and
    Qt widgets share the GUI thread.
    """

    def __init__(self, parent: QObject | None = None, interval_ms: int = 10):
        super().__init__(parent)
        self.loop = asyncio.new_event_loop()
        self._timer = QTimer(self)
        self._timer.setInterval(interval_ms)
        self._timer.timeout.connect(self._step)
        self._timer.start()

    def submit(self, coro: Coroutine, on_error: Callable[[BaseException], None] | None = None) -> asyncio.Task:
        task = self.loop.create_task(coro)

        def done(finished: asyncio.Task) -> None:
            if finished.cancelled():
                return
            exc = finished.exception()
            if exc is None:
                return
            if on_error is not None:
                on_error(exc)
            else:
                logger.error("Background task failed", exc_info=exc)

        task.add_done_callback(done)
        return task

    def _step(self) -> None:
        self.loop.call_soon(self.loop.stop)
        self.loop.run_forever()

    def close(self) -> None:
        self._timer.stop()
        for task in asyncio.all_tasks(self.loop):
            task.cancel()
        self._step()
        self.loop.close()
