from __future__ import annotations

import itertools
import logging
from typing import TYPE_CHECKING

from .errors import EngineNotReady
from .region import Region, RegionPalette, clamp_bounds

if TYPE_CHECKING:
    from sync_editor.services.engines import RegionEngine

logger = logging.getLogger(__name__)


class RegionManager:
    """
    Keeps the session's regions in creation order and mirrors them into the
    attached region engine. Bounds are always clamped to [0, duration].
    """

    def __init__(self, palette: RegionPalette | None = None, id_prefix: str = "region"):
        self._regions: dict[str, Region] = {}
        self._palette = palette or RegionPalette()
        self._id_prefix = id_prefix
        self._ids = itertools.count(1)
        self._created = 0
        self._engine: RegionEngine | None = None
        self.duration: float | None = None
        self.selected_id: str | None = None

    # ----- engine wiring -----

    def attach_engine(self, engine: RegionEngine) -> None:
        self._engine = engine

    def detach_engine(self) -> None:
        self._engine = None

    @property
    def engine_ready(self) -> bool:
        return self._engine is not None and self._engine.is_ready() and self.duration is not None

    def set_duration(self, duration: float) -> None:
        """Set the session duration and re-clamp anything now out of range."""
        self.duration = max(0.0, float(duration))
        for region in list(self._regions.values()):
            start, end = clamp_bounds(region.start, region.end, self.duration)
            if (start, end) != (region.start, region.end):
                self._store(region.with_bounds(start, end), push=True)

    # ----- user operations -----

    def add_region(self, anchor_time: float, default_length: float) -> Region:
        if not self.engine_ready:
            raise EngineNotReady("Region editor is not ready yet")
        start, end = clamp_bounds(anchor_time, anchor_time + default_length, self.duration)
        region = self._new_region(f"{self._id_prefix}-{next(self._ids)}", start, end)
        # Stored first so the engine's synchronous creation echo is recognised.
        self._regions[region.id] = region
        try:
            self._engine.add_region(region)
        except Exception:
            self._regions.pop(region.id, None)
            self._created -= 1
            raise
        logger.debug("Added %s at %.3f-%.3f", region.id, start, end)
        return region

    def update_region(self, region_id: str, new_start: float, new_end: float) -> Region:
        region = self.get(region_id)
        start, end = clamp_bounds(new_start, new_end, self._duration_or_inf())
        updated = region.with_bounds(start, end)
        self._store(updated, push=True)
        return updated

    def delete_region(self, region_id: str) -> bool:
        region = self._regions.pop(region_id, None)
        if region is None:
            return False
        if self.selected_id == region_id:
            self.selected_id = None
        if self._engine is not None:
            self._engine.remove_region(region_id)
        return True

    def clear_all(self) -> None:
        ids = list(self._regions)
        self._regions.clear()
        self.selected_id = None
        if self._engine is not None:
            for region_id in ids:
                self._engine.remove_region(region_id)

    def select(self, region_id: str | None) -> Region | None:
        if region_id is None:
            self.selected_id = None
            return None
        region = self.get(region_id)
        self.selected_id = region.id
        return region

    # ----- engine notifications -----

    def on_engine_region_created(self, region_id: str, start: float, end: float) -> Region | None:
        """Mirror a region drawn directly on the waveform; echoes of our own regions are ignored."""
        if region_id in self._regions:
            existing = self._regions[region_id]
            if (existing.start, existing.end) == (start, end):
                return None
            return self.on_engine_region_updated(region_id, start, end)
        start_c, end_c = clamp_bounds(start, end, self._duration_or_inf())
        region = self._new_region(region_id, start_c, end_c)
        self._regions[region.id] = region
        if (start_c, end_c) != (start, end) and self._engine is not None:
            self._engine.update_region(region.id, start_c, end_c)
        return region

    def on_engine_region_updated(self, region_id: str, start: float, end: float) -> Region | None:
        region = self._regions.get(region_id)
        if region is None:
            return None
        if (region.start, region.end) == (start, end):
            logger.debug("Suppressed region echo for %s", region_id)
            return None
        start_c, end_c = clamp_bounds(start, end, self._duration_or_inf())
        updated = region.with_bounds(start_c, end_c)
        self._store(updated, push=(start_c, end_c) != (start, end))
        return updated

    def on_engine_region_removed(self, region_id: str) -> bool:
        region = self._regions.pop(region_id, None)
        if region is None:
            return False
        if self.selected_id == region_id:
            self.selected_id = None
        return True

    # ----- queries -----

    def get(self, region_id: str) -> Region:
        try:
            return self._regions[region_id]
        except KeyError:
            raise KeyError(f"Unknown region id {region_id!r}") from None

    def get_regions(self) -> list[Region]:
        """Regions in creation order."""
        return list(self._regions.values())

    def region_count(self) -> int:
        return len(self._regions)

    def _new_region(self, region_id: str, start: float, end: float) -> Region:
        self._created += 1
        return Region(
            id=region_id,
            start=start,
            end=end,
            content=f"Region {self._created}",
            color=self._palette.next_color(),
        )

    def _store(self, region: Region, push: bool) -> None:
        # dict keeps insertion order; replacing a key does not move it
        self._regions[region.id] = region
        if push and self._engine is not None:
            self._engine.update_region(region.id, region.start, region.end)

    def _duration_or_inf(self) -> float:
        return self.duration if self.duration is not None else float("inf")
