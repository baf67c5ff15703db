"""
Capability contracts for the collaborators the editor core drives.

Every engine is reached only through these methods. Notifications are
delivered through ``subscribe(event, callback)``, which returns an
unsubscribe callable.
"""
from typing import Awaitable, Callable, Optional, Protocol, Sequence

from sync_editor.domain.region import Region
from sync_editor.domain.track import EnvelopePoint, Track
from sync_editor.domain.trim_plan import TrimPlan

Unsubscribe = Callable[[], None]

# Mixing engine notifications
TRACK_READY = "track-ready"              # (track_id)
POSITION_CHANGED = "position-changed"    # (track_id, seconds)
VOLUME_CHANGED = "volume-changed"        # (track_id, volume)
ENVELOPE_CHANGED = "envelope-changed"    # (track_id, list[EnvelopePoint])
PLAY_STATE_CHANGED = "play-state-changed"  # (is_playing), only if supports_play_state_events

# Region engine notifications
REGION_CREATED = "region-created"  # (region_id, start, end)
REGION_UPDATED = "region-updated"  # (region_id, start, end)
REGION_REMOVED = "region-removed"  # (region_id)
REGION_CLICKED = "region-clicked"  # (region_id)

# Follower notifications
METADATA_READY = "metadata-ready"  # (duration)


class MixingEngine(Protocol):
    """Authoritative clock: mixes the session tracks."""
    supports_play_state_events: bool

    async def load(self, tracks: Sequence[Track]) -> None: ...
    def current_time(self) -> float: ...
    def is_playing(self) -> bool: ...
    def play(self) -> None: ...
    def pause(self) -> None: ...
    def set_time(self, seconds: float) -> None: ...
    def set_volume(self, track_id: int, volume: float) -> None: ...
    def set_start_position(self, track_id: int, seconds: float) -> None: ...
    def set_envelope(self, track_id: int, points: Sequence[EnvelopePoint]) -> None: ...
    def subscribe(self, event: str, callback: Callable[..., None]) -> Unsubscribe: ...
    def is_alive(self) -> bool: ...
    def destroy(self) -> None: ...


class RegionEngine(Protocol):
    """Waveform view that draws and edits regions."""

    def is_ready(self) -> bool: ...
    def add_region(self, region: Region) -> None: ...
    def update_region(self, region_id: str, start: float, end: float) -> None: ...
    def remove_region(self, region_id: str) -> None: ...
    def get_regions(self) -> list[tuple[str, float, float]]: ...
    def set_zoom(self, pixels_per_second: float) -> None: ...
    def set_time(self, seconds: float) -> None: ...
    def subscribe(self, event: str, callback: Callable[..., None]) -> Unsubscribe: ...
    def is_alive(self) -> bool: ...
    def destroy(self) -> None: ...


class FollowerMedia(Protocol):
    """Secondary media element (video) kept in step with the mixing engine."""
    muted: bool

    def current_time(self) -> float: ...
    def set_time(self, seconds: float) -> None: ...
    def play(self) -> None: ...
    def pause(self) -> None: ...
    def duration(self) -> Optional[float]: ...
    def subscribe(self, event: str, callback: Callable[..., None]) -> Unsubscribe: ...
    def is_alive(self) -> bool: ...
    def destroy(self) -> None: ...


class TrimExecutor(Protocol):
    """Runs a trim plan against raw media bytes; one request at a time."""

    def is_busy(self) -> bool: ...
    async def ensure_ready(self) -> None: ...
    async def trim(self, source: bytes, plan: TrimPlan, source_suffix: str = ".wav") -> bytes: ...


class TickHandle(Protocol):
    def cancel(self) -> None: ...


class TickScheduler(Protocol):
    """Runs a callback every ``interval`` seconds; invocations never overlap."""

    def every(self, interval: float, callback: Callable[[], None]) -> TickHandle: ...


EngineFactory = Callable[[], Awaitable[object]]
