import logging
from typing import Callable, Iterable, Sequence

from .errors import NotDraggable
from .track import ANCHOR_TRACK_ID, EnvelopePoint, MutationOrigin, Track, clamp_volume

logger = logging.getLogger(__name__)

# (track_id, field, value) for every internally applied change.
CommandSink = Callable[[int, str, object], None]

_EPSILON = 1e-9


class TrackRegistry:
    """
    Owns the fixed set of session tracks.

    Internal mutations are forwarded to the command sink (the mixing engine).
    External mutations are confirmations coming back from that engine; they
    are only applied when they differ from the value last applied internally,
    so an engine echo never starts another command round-trip.
    """

    def __init__(self, tracks: Sequence[Track]):
        ids = [t.id for t in tracks]
        if len(set(ids)) != len(ids):
            raise ValueError("Track ids must be unique.")
        if ANCHOR_TRACK_ID not in ids:
            raise ValueError("Session requires an anchor track with id 0.")
        self._tracks: dict[int, Track] = {t.id: t for t in tracks}
        self._last_internal: dict[tuple[int, str], object] = {}
        self._command_sinks: list[CommandSink] = []

    @classmethod
    def from_sources(cls, names: Iterable[str]) -> "TrackRegistry":
        """Build a registry assigning ids in order; the first source becomes the anchor."""
        tracks = [Track(id=index, name=name) for index, name in enumerate(names)]
        return cls(tracks)

    def add_command_sink(self, sink: CommandSink) -> None:
        self._command_sinks.append(sink)

    def remove_command_sink(self, sink: CommandSink) -> None:
        if sink in self._command_sinks:
            self._command_sinks.remove(sink)

    def get(self, track_id: int) -> Track:
        try:
            return self._tracks[track_id]
        except KeyError:
            raise KeyError(f"Unknown track id {track_id}") from None

    def get_tracks(self) -> list[Track]:
        return [self._tracks[k] for k in sorted(self._tracks)]

    def track_count(self) -> int:
        return len(self._tracks)

    @property
    def anchor(self) -> Track:
        return self._tracks[ANCHOR_TRACK_ID]

    def set_volume(self, track_id: int, value: float, origin: MutationOrigin = MutationOrigin.INTERNAL) -> bool:
        track = self.get(track_id)
        volume = clamp_volume(value)
        if not self._accept(track_id, "volume", volume, origin):
            return False
        track.volume = volume
        self._after_apply(track_id, "volume", volume, origin)
        return True

    def set_start_position(
        self, track_id: int, seconds: float, origin: MutationOrigin = MutationOrigin.INTERNAL
    ) -> bool:
        track = self.get(track_id)
        if not track.draggable:
            raise NotDraggable(track_id)
        position = max(0.0, float(seconds))
        if not self._accept(track_id, "start_position", position, origin):
            return False
        track.start_position = position
        self._after_apply(track_id, "start_position", position, origin)
        return True

    def replace_envelope(
        self,
        track_id: int,
        points: Iterable[EnvelopePoint | tuple[float, float]],
        origin: MutationOrigin = MutationOrigin.INTERNAL,
    ) -> bool:
        track = self.get(track_id)
        # Validate everything before touching the track so the swap is all-or-nothing.
        envelope = [p if isinstance(p, EnvelopePoint) else EnvelopePoint(float(p[0]), float(p[1])) for p in points]
        snapshot = tuple((p.time, p.volume) for p in envelope)
        if not self._accept(track_id, "envelope", snapshot, origin):
            return False
        track.envelope = envelope
        self._after_apply(track_id, "envelope", snapshot, origin)
        return True

    def _accept(self, track_id: int, field: str, value: object, origin: MutationOrigin) -> bool:
        if origin is MutationOrigin.INTERNAL:
            return True
        key = (track_id, field)
        if key in self._last_internal and _same(self._last_internal[key], value):
            logger.debug("Suppressed engine echo for track %s %s=%r", track_id, field, value)
            return False
        return True

    def _after_apply(self, track_id: int, field: str, value: object, origin: MutationOrigin) -> None:
        if origin is not MutationOrigin.INTERNAL:
            return
        self._last_internal[(track_id, field)] = value
        for sink in list(self._command_sinks):
            sink(track_id, field, value)


def _same(a: object, b: object) -> bool:
    if isinstance(a, float) and isinstance(b, float):
        return abs(a - b) <= _EPSILON
    if isinstance(a, tuple) and isinstance(b, tuple):
        return len(a) == len(b) and all(_same(x, y) for x, y in zip(a, b))
    return a == b
