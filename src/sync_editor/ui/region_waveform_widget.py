from __future__ import annotations

import re
from typing import Callable

import numpy as np
from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QColor, QPainter, QPen
from PySide6.QtWidgets import QWidget

from sync_editor.domain.region import Region
from sync_editor.services.engines import (
    REGION_CLICKED,
    REGION_CREATED,
    REGION_REMOVED,
    REGION_UPDATED,
)
from sync_editor.ui.signals import SignalSubscriptions

_RGBA = re.compile(r"rgba?\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*(?:,\s*([\d.]+)\s*)?\)")


class RegionWaveformWidget(QWidget):
    """
    Waveform view with draggable regions.

    Dragging on empty waveform draws a new region, dragging a region edge
    resizes it and a plain click inside a region reports it as clicked.
    """
    regionCreated = Signal(str, float, float)
    regionUpdated = Signal(str, float, float)
    regionRemoved = Signal(str)
    regionClicked = Signal(str)

    EDGE_GRAB_PX = 6
    MIN_DRAG_PX = 4

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._subscriptions = SignalSubscriptions()
        self._audio_data = np.array([], dtype=np.float32)
        self._duration = 0.0
        self._zoom = 50.0
        self._playhead_seconds: float | None = None
        self._regions: dict[str, tuple[float, float, str]] = {}
        self._ready = False
        self._alive = False
        self._drawn = 0
        self._press_x: float | None = None
        self._drag_mode: str | None = None
        self._drag_region: str | None = None
        self._draft: tuple[float, float] | None = None
        self.setMinimumHeight(96)

    # ----- region engine contract -----

    def attach(self, data: np.ndarray | None, duration: float) -> None:
        """Show a new waveform and accept region commands."""
        self._regions.clear()
        self._audio_data = (
            np.array([], dtype=np.float32)
            if data is None
            else self._normalize_to_mono(np.asarray(data, dtype=np.float32))
        )
        self._duration = max(0.0, float(duration))
        self._playhead_seconds = 0.0
        self._ready = True
        self._alive = True
        self._apply_width()
        self.update()

    def is_ready(self) -> bool:
        return self._ready and self._alive

    def is_alive(self) -> bool:
        return self._alive

    def add_region(self, region: Region) -> None:
        self._regions[region.id] = (region.start, region.end, region.color)
        self.update()
        self.regionCreated.emit(region.id, region.start, region.end)

    def update_region(self, region_id: str, start: float, end: float) -> None:
        if region_id not in self._regions:
            return
        color = self._regions[region_id][2]
        self._regions[region_id] = (start, end, color)
        self.update()
        self.regionUpdated.emit(region_id, start, end)

    def remove_region(self, region_id: str) -> None:
        if self._regions.pop(region_id, None) is None:
            return
        self.update()
        self.regionRemoved.emit(region_id)

    def get_regions(self) -> list[tuple[str, float, float]]:
        return [(region_id, start, end) for region_id, (start, end, _) in self._regions.items()]

    def set_zoom(self, pixels_per_second: float) -> None:
        self._zoom = float(pixels_per_second)
        self._apply_width()

    @property
    def duration(self) -> float:
        return self._duration

    def set_duration(self, seconds: float) -> None:
        self._duration = max(0.0, float(seconds))
        self._apply_width()
        self.update()

    def set_time(self, seconds: float) -> None:
        self._playhead_seconds = float(np.clip(seconds, 0.0, self._duration)) if self._duration else 0.0
        self.update()

    def subscribe(self, event: str, callback: Callable[..., None]) -> Callable[[], None]:
        """Route a region engine event name to the matching Qt signal."""
        signals = {
            REGION_CREATED: self.regionCreated,
            REGION_UPDATED: self.regionUpdated,
            REGION_REMOVED: self.regionRemoved,
            REGION_CLICKED: self.regionClicked,
        }
        if event not in signals:
            raise ValueError(f"Unknown region event: {event}")
        return self._subscriptions.connect(signals[event], callback)

    def subscription_count(self) -> int:
        return len(self._subscriptions)

    def destroy(self) -> None:
        """Detach from the session; the widget itself stays in the window."""
        self._ready = False
        self._alive = False
        self._subscriptions.clear()
        self._regions.clear()
        self._audio_data = np.array([], dtype=np.float32)
        self._duration = 0.0
        self._playhead_seconds = None
        self.update()

    # ----- pure helpers -----

    @staticmethod
    def _normalize_to_mono(data: np.ndarray) -> np.ndarray:
        if data.ndim == 1:
            return data
        if data.ndim == 2:
            return data.mean(axis=1)
        return data.flatten()

    @staticmethod
    def build_peaks(data: np.ndarray, bins: int) -> np.ndarray:
        """Compress full signal into peak magnitudes for each horizontal bin."""
        if bins <= 0:
            return np.array([], dtype=np.float32)
        if data.size == 0:
            return np.zeros(bins, dtype=np.float32)

        clipped = np.clip(data.astype(np.float32), -1.0, 1.0)
        chunk_size = max(1, int(np.ceil(len(clipped) / bins)))

        peaks: list[float] = []
        for start in range(0, len(clipped), chunk_size):
            chunk = clipped[start : start + chunk_size]
            peaks.append(float(np.max(np.abs(chunk))))

        if len(peaks) < bins:
            peaks.extend([0.0] * (bins - len(peaks)))

        return np.asarray(peaks[:bins], dtype=np.float32)

    @staticmethod
    def hit_test(
        regions: dict[str, tuple[float, float, str]], seconds: float, edge_tolerance: float
    ) -> tuple[str, str] | None:
        """Return (mode, region_id) for the region under ``seconds``; edges win over bodies."""
        for region_id, (start, end, _) in reversed(list(regions.items())):
            if abs(seconds - start) <= edge_tolerance:
                return "resize-start", region_id
            if abs(seconds - end) <= edge_tolerance:
                return "resize-end", region_id
        for region_id, (start, end, _) in reversed(list(regions.items())):
            if start <= seconds <= end:
                return "body", region_id
        return None

    @staticmethod
    def parse_color(color: str) -> tuple[int, int, int, int]:
        """Parse 'rgba(r, g, b, a)' / '#rrggbb' into 0-255 RGBA components."""
        match = _RGBA.fullmatch(color.strip())
        if match:
            r, g, b = (int(match.group(i)) for i in (1, 2, 3))
            alpha = float(match.group(4)) if match.group(4) is not None else 1.0
            return r, g, b, int(round(np.clip(alpha, 0.0, 1.0) * 255))
        qcolor = QColor(color)
        return qcolor.red(), qcolor.green(), qcolor.blue(), qcolor.alpha()

    # ----- geometry -----

    def _apply_width(self) -> None:
        self.setMinimumWidth(max(10, int(self._duration * self._zoom)))

    def _seconds_at(self, x: float) -> float:
        width = max(1, self.rect().width() - 1)
        return float(np.clip(x / width, 0.0, 1.0)) * self._duration

    def _x_at(self, seconds: float) -> int:
        if self._duration <= 0:
            return 0
        return int(seconds / self._duration * (self.rect().width() - 1))

    # ----- painting -----

    def paintEvent(self, event) -> None:  # noqa: N802 (Qt API)
        painter = QPainter(self)
        painter.setRenderHint(QPainter.Antialiasing, False)

        rect = self.rect()
        painter.fillRect(rect, QColor("#121212"))

        width = max(1, rect.width())
        height = rect.height()
        mid_y = height / 2

        painter.setPen(QPen(QColor("#2F2F2F")))
        painter.drawLine(0, int(mid_y), width, int(mid_y))

        if self._audio_data.size > 0:
            peaks = self.build_peaks(self._audio_data, width)
            painter.setPen(QPen(QColor("#6b7280")))
            max_amplitude = (height / 2) - 6
            for x, value in enumerate(peaks):
                half_line = max_amplitude * float(value)
                painter.drawLine(x, int(mid_y - half_line), x, int(mid_y + half_line))

        for start, end, color in list(self._regions.values()) + self._draft_regions():
            x1 = self._x_at(start)
            x2 = self._x_at(end)
            painter.fillRect(x1, 0, max(1, x2 - x1), height, QColor(*self.parse_color(color)))
            painter.setPen(QPen(QColor("#6366f1")))
            painter.drawLine(x1, 0, x1, height)
            painter.drawLine(x2, 0, x2, height)

        if self._playhead_seconds is not None and self._duration > 0:
            playhead_pen = QPen(QColor("#ffffff"))
            playhead_pen.setWidth(2)
            painter.setPen(playhead_pen)
            x = self._x_at(self._playhead_seconds)
            painter.drawLine(x, 0, x, height)

    def _draft_regions(self) -> list[tuple[float, float, str]]:
        if self._draft is None:
            return []
        start, end = sorted(self._draft)
        return [(start, end, "rgba(99, 102, 241, 0.3)")]

    # ----- mouse -----

    def mousePressEvent(self, event) -> None:  # noqa: N802 (Qt API)
        if event.button() != Qt.LeftButton or not self.is_ready():
            return
        x = event.position().x()
        seconds = self._seconds_at(x)
        tolerance = self._seconds_at(self.EDGE_GRAB_PX) if self.rect().width() > 1 else 0.0
        hit = self.hit_test(self._regions, seconds, tolerance)
        self._press_x = x
        if hit is None:
            self._drag_mode = "create"
            self._draft = (seconds, seconds)
        else:
            self._drag_mode, self._drag_region = hit

    def mouseMoveEvent(self, event) -> None:  # noqa: N802 (Qt API)
        if self._drag_mode is None or self._press_x is None:
            return
        seconds = self._seconds_at(event.position().x())
        if self._drag_mode == "create" and self._draft is not None:
            self._draft = (self._draft[0], seconds)
            self.update()
        elif self._drag_mode in ("resize-start", "resize-end") and self._drag_region in self._regions:
            start, end, color = self._regions[self._drag_region]
            if self._drag_mode == "resize-start":
                start = min(seconds, end)
            else:
                end = max(seconds, start)
            self._regions[self._drag_region] = (start, end, color)
            self.update()

    def mouseReleaseEvent(self, event) -> None:  # noqa: N802 (Qt API)
        if event.button() != Qt.LeftButton or self._drag_mode is None:
            return
        moved = self._press_x is not None and abs(event.position().x() - self._press_x) >= self.MIN_DRAG_PX
        mode, region_id, draft = self._drag_mode, self._drag_region, self._draft
        self._drag_mode = self._drag_region = self._draft = self._press_x = None

        if mode == "create":
            if moved and draft is not None:
                start, end = sorted(draft)
                self._drawn += 1
                drawn_id = f"drawn-{self._drawn}"
                self._regions[drawn_id] = (start, end, "rgba(99, 102, 241, 0.3)")
                self.regionCreated.emit(drawn_id, start, end)
        elif region_id in self._regions:
            if moved and mode != "body":
                start, end, _ = self._regions[region_id]
                self.regionUpdated.emit(region_id, start, end)
            elif not moved:
                self.regionClicked.emit(region_id)
        self.update()
