from sync_editor.domain.region import Region
from sync_editor.domain.region_manager import RegionManager


class UpdateRegion:
    """Use case for moving or resizing a region; bounds are clamped, never rejected."""

    def __init__(self, regions: RegionManager):
        self.regions = regions

    def execute(self, region_id: str, start: float, end: float) -> Region:
        return self.regions.update_region(region_id, start, end)
