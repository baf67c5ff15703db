from typing import Callable

from PySide6.QtCore import SignalInstance


class SignalSubscriptions:
    """Tracks slots connected on behalf of session subscribers so they can all be dropped at teardown."""

    def __init__(self) -> None:
        self._pending: list[Callable[[], None]] = []

    def connect(self, signal: SignalInstance, slot: Callable[..., None]) -> Callable[[], None]:
        """Connect ``slot`` and return a disconnect callable that is safe to call twice."""
        signal.connect(slot)
        connected = True

        def unsubscribe() -> None:
            nonlocal connected
            if not connected:
                return
            connected = False
            if unsubscribe in self._pending:
                self._pending.remove(unsubscribe)
            signal.disconnect(slot)

        self._pending.append(unsubscribe)
        return unsubscribe

    def clear(self) -> None:
        while self._pending:
            self._pending[-1]()

    def __len__(self) -> int:
        return len(self._pending)
