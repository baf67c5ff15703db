from sync_editor.domain.track_registry import TrackRegistry


class SetTrackVolume:
    """Use case for changing a track's volume from the mixer controls."""

    def __init__(self, registry: TrackRegistry):
        self.registry = registry

    def execute(self, track_id: int, volume: float) -> float:
        self.registry.set_volume(track_id, volume)
        return self.registry.get(track_id).volume
