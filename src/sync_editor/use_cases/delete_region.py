from sync_editor.domain.region_manager import RegionManager


class DeleteRegion:
    """Use case for removing a single region."""

    def __init__(self, regions: RegionManager):
        self.regions = regions

    def execute(self, region_id: str):
        if not self.regions.delete_region(region_id):
            raise ValueError(f"Region {region_id} not found.")
