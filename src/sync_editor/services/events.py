import logging
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)

Listener = Callable[..., None]


class EventEmitter:
    """Minimal named-event dispatcher shared by the engine adapters."""

    def __init__(self):
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    def subscribe(self, event: str, callback: Listener) -> Callable[[], None]:
        self._listeners[event].append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners.get(event, []):
                self._listeners[event].remove(callback)

        return unsubscribe

    def emit(self, event: str, *args: Any) -> None:
        for callback in list(self._listeners.get(event, [])):
            callback(*args)

    def clear(self) -> None:
        self._listeners.clear()
