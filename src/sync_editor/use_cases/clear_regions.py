from sync_editor.domain.region_manager import RegionManager


class ClearRegions:
    def __init__(self, regions: RegionManager):
        self.regions = regions

    def execute(self) -> int:
        count = self.regions.region_count()
        self.regions.clear_all()
        return count
