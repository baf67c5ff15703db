from pathlib import Path
from typing import Callable

from PySide6.QtCore import QUrl
from PySide6.QtMultimedia import QAudioOutput, QMediaPlayer
from PySide6.QtMultimediaWidgets import QVideoWidget

from sync_editor.services.engines import METADATA_READY
from sync_editor.ui.signals import SignalSubscriptions


class QtFollowerMedia:
    """Follower media element backed by QMediaPlayer; positions are in seconds."""

    def __init__(self, source: Path, video_widget: QVideoWidget | None = None):
        self._subscriptions = SignalSubscriptions()
        self._alive = True
        self._audio_output = QAudioOutput()
        self._player = QMediaPlayer()
        self._player.setAudioOutput(self._audio_output)
        if video_widget is not None:
            self._player.setVideoOutput(video_widget)
        self._player.setSource(QUrl.fromLocalFile(str(source)))

    @property
    def muted(self) -> bool:
        return self._audio_output.isMuted()

    @muted.setter
    def muted(self, value: bool) -> None:
        self._audio_output.setMuted(bool(value))

    def current_time(self) -> float:
        return self._player.position() / 1000.0

    def set_time(self, seconds: float) -> None:
        self._player.setPosition(max(0, int(round(seconds * 1000))))

    def play(self) -> None:
        self._player.play()

    def pause(self) -> None:
        self._player.pause()

    def duration(self) -> float | None:
        duration_ms = self._player.duration()
        return duration_ms / 1000.0 if duration_ms > 0 else None

    def subscribe(self, event: str, callback: Callable[..., None]) -> Callable[[], None]:
        if event != METADATA_READY:
            raise ValueError(f"Unsupported follower event: {event}")

        def forward(duration_ms: int) -> None:
            if self._alive and duration_ms > 0:
                callback(duration_ms / 1000.0)

        return self._subscriptions.connect(self._player.durationChanged, forward)

    def is_alive(self) -> bool:
        return self._alive

    def destroy(self) -> None:
        self._alive = False
        self._subscriptions.clear()
        self._player.stop()
        self._player.setSource(QUrl())
        self._player.deleteLater()
        self._audio_output.deleteLater()

