from typing import Iterable

from sync_editor.domain.track import EnvelopePoint
from sync_editor.domain.track_registry import TrackRegistry


class ReplaceEnvelope:
    def __init__(self, registry: TrackRegistry):
        self.registry = registry

    def execute(self, track_id: int, points: Iterable[EnvelopePoint | tuple[float, float]]) -> list[EnvelopePoint]:
        self.registry.replace_envelope(track_id, points)
        return list(self.registry.get(track_id).envelope)
