from sync_editor.domain.track_registry import TrackRegistry


class MoveTrack:
    """Use case for shifting a track along the timeline. Raises NotDraggable for the anchor."""

    def __init__(self, registry: TrackRegistry):
        self.registry = registry

    def execute(self, track_id: int, start_position: float) -> float:
        self.registry.set_start_position(track_id, start_position)
        return self.registry.get(track_id).start_position
