from dataclasses import dataclass

import numpy as np


@dataclass
class SessionState:
    """Published playback state of the current session."""
    time: float = 0.0
    duration: float | None = None
    is_playing: bool = False
    zoom: float = 50.0
    tracks_ready: bool = False
    zoom_min: float = 10.0
    zoom_max: float = 200.0

    def __post_init__(self) -> None:
        self.set_zoom(self.zoom)

    def set_zoom(self, pixels_per_second: float) -> float:
        self.zoom = float(np.clip(float(pixels_per_second), self.zoom_min, self.zoom_max))
        return self.zoom

    def set_time(self, seconds: float) -> float:
        upper = self.duration if self.duration is not None else float("inf")
        self.time = float(np.clip(float(seconds), 0.0, upper))
        return self.time

    @property
    def progress(self) -> float:
        """Playhead position normalized to [0, 1]."""
        if not self.duration:
            return 0.0
        return float(np.clip(self.time / self.duration, 0.0, 1.0))
