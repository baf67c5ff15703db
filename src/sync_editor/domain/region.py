from dataclasses import dataclass
from typing import Sequence

import numpy as np


DEFAULT_REGION_COLORS: tuple[str, ...] = (
    "rgba(99, 102, 241, 0.3)",
    "rgba(16, 185, 129, 0.3)",
    "rgba(245, 158, 11, 0.3)",
    "rgba(236, 72, 153, 0.3)",
    "rgba(14, 165, 233, 0.3)",
    "rgba(168, 85, 247, 0.3)",
)


@dataclass(frozen=True)
class Region:
    """A marked [start, end] interval on the session timeline, in seconds."""
    id: str
    start: float
    end: float
    content: str
    color: str

    @property
    def length(self) -> float:
        return self.end - self.start

    def with_bounds(self, start: float, end: float) -> "Region":
        return Region(self.id, start, end, self.content, self.color)


def clamp_bounds(start: float, end: float, duration: float) -> tuple[float, float]:
    """Clamp so that 0 <= start <= end <= duration."""
    duration = max(0.0, float(duration))
    valid_start = float(np.clip(float(start), 0.0, duration))
    valid_end = float(np.clip(float(end), valid_start, duration))
    return valid_start, valid_end


class RegionPalette:
    """Cycles through a fixed colour list; the seed picks the starting slot."""

    def __init__(self, colors: Sequence[str] = DEFAULT_REGION_COLORS, seed: int = 0):
        if not colors:
            raise ValueError("Palette needs at least one colour.")
        self._colors = tuple(colors)
        self._seed = seed
        self._issued = 0

    def next_color(self) -> str:
        color = self._colors[(self._seed + self._issued) % len(self._colors)]
        self._issued += 1
        return color

    def reset(self) -> None:
        self._issued = 0
