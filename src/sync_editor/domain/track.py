from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

import numpy as np


ANCHOR_TRACK_ID = 0


class MutationOrigin(Enum):
    """Where a track change came from."""
    INTERNAL = "internal"  # user action, forwarded to the mixing engine
    EXTERNAL = "external"  # notification emitted by the mixing engine


@dataclass(frozen=True)
class EnvelopePoint:
    time: float
    volume: float

    def __post_init__(self) -> None:
        if self.time < 0:
            raise ValueError("Envelope point time cannot be negative.")
        if not 0.0 <= self.volume <= 1.0:
            raise ValueError("Envelope point volume must be within [0, 1].")


@dataclass
class Track:
    """
    Audio source mixed into the session.
    Track ids are assigned once when the session is created; id 0 is the anchor.
    """
    id: int
    name: str
    volume: float = 1.0
    start_position: float = 0.0
    draggable: bool = True
    envelope: list[EnvelopePoint] = field(default_factory=list)
    source: Path | None = None

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("Track name cannot be empty.")
        self.volume = clamp_volume(self.volume)
        self.start_position = max(0.0, float(self.start_position))
        if self.is_anchor:
            self.draggable = False
            self.start_position = 0.0

    @property
    def is_anchor(self) -> bool:
        return self.id == ANCHOR_TRACK_ID

    def envelope_gain(self, times: np.ndarray) -> np.ndarray:
        """Linear-interpolated envelope gain at track-relative times (1.0 when empty)."""
        times = np.asarray(times, dtype=np.float64)
        if not self.envelope:
            return np.ones_like(times, dtype=np.float32)
        xs = np.array([p.time for p in self.envelope], dtype=np.float64)
        ys = np.array([p.volume for p in self.envelope], dtype=np.float64)
        order = np.argsort(xs, kind="stable")
        return np.interp(times, xs[order], ys[order]).astype(np.float32)


def clamp_volume(value: float) -> float:
    return float(np.clip(float(value), 0.0, 1.0))
