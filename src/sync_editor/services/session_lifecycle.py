import logging
import wave
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePath
from typing import Awaitable, Callable, Optional

from sync_editor.config import EditorSettings
from sync_editor.domain.errors import (
    Busy,
    EngineInitError,
    NotDraggable,
    SyncEditorError,
    TrimExecutionError,
)
from sync_editor.domain.region import RegionPalette
from sync_editor.domain.region_manager import RegionManager
from sync_editor.domain.session_state import SessionState
from sync_editor.domain.track import MutationOrigin, Track
from sync_editor.domain.track_registry import TrackRegistry
from sync_editor.domain.trim_plan import TrimResult, compile_trim_plan, trimmed_filename
from sync_editor.domain.upload_policy import MediaKind, validate_upload
from sync_editor.services import engines
from sync_editor.services.clock_reconciler import ClockReconciler
from sync_editor.services.engines import (
    FollowerMedia,
    MixingEngine,
    RegionEngine,
    TickScheduler,
    TrimExecutor,
    Unsubscribe,
)
from sync_editor.services.wav_io import wav_duration

logger = logging.getLogger(__name__)


class LifecycleState(Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    TEARING_DOWN = "tearing_down"


@dataclass
class SessionMedia:
    """The loaded file plus any extra audio sources mixed alongside it."""
    name: str
    data: bytes
    kind: MediaKind = MediaKind.AUDIO
    mime_type: Optional[str] = None
    path: Optional[Path] = None
    extra_tracks: list[tuple[str, Path]] = field(default_factory=list)

    @property
    def suffix(self) -> str:
        return PurePath(self.name).suffix.lower() or ".wav"

    def validate(self) -> None:
        validate_upload(self.kind, self.name, len(self.data), self.mime_type)
        for name, path in self.extra_tracks:
            validate_upload(MediaKind.AUDIO, path.name, path.stat().st_size)

    def build_tracks(self) -> list[Track]:
        anchor_source = self.path if self.kind is MediaKind.AUDIO else None
        tracks = [Track(id=0, name=self.name, source=anchor_source)]
        for index, (name, path) in enumerate(self.extra_tracks, start=1):
            tracks.append(Track(id=index, name=name, source=path))
        return tracks


MixingFactory = Callable[[], Awaitable[MixingEngine]]
RegionEngineFactory = Callable[[SessionMedia], Awaitable[RegionEngine]]
FollowerFactory = Callable[[SessionMedia], Awaitable[FollowerMedia]]


class EditorSession:
    """
    Owns one editing session: the engines, the track and region state and
    the clock reconciler.

    Lifecycle: UNINITIALIZED -> LOADING -> READY -> TEARING_DOWN -> UNINITIALIZED.
    Every load bumps a generation counter; a load that resumes after a newer
    load or a reset sees a stale generation and destroys what it just built.
    """

    def __init__(
        self,
        mixing_factory: MixingFactory,
        region_engine_factory: RegionEngineFactory,
        follower_factory: FollowerFactory,
        trim_executor: TrimExecutor,
        scheduler: TickScheduler,
        settings: Optional[EditorSettings] = None,
        palette_seed: int = 0,
    ):
        self._mixing_factory = mixing_factory
        self._region_engine_factory = region_engine_factory
        self._follower_factory = follower_factory
        self.trim_executor = trim_executor
        self._scheduler = scheduler
        self.settings = settings or EditorSettings()
        self._palette_seed = palette_seed

        self.lifecycle = LifecycleState.UNINITIALIZED
        self.state = self._new_state()
        self.media: Optional[SessionMedia] = None
        self.registry: Optional[TrackRegistry] = None
        self.regions = RegionManager(RegionPalette(seed=palette_seed))
        self.mixing: Optional[MixingEngine] = None
        self.region_engine: Optional[RegionEngine] = None
        self.follower: Optional[FollowerMedia] = None
        self.reconciler: Optional[ClockReconciler] = None
        self.trim_result: Optional[TrimResult] = None
        self.is_processing = False
        self.last_error: Optional[str] = None

        self._generation = 0
        self._ready_tracks: set[int] = set()
        self._unsubscribers: list[Unsubscribe] = []
        self._failed_media: Optional[SessionMedia] = None

    # ----- lifecycle -----

    async def load(self, media: SessionMedia) -> None:
        """Validate and load media, tearing down whatever was loaded before."""
        self.last_error = None
        media.validate()

        if self.lifecycle is not LifecycleState.UNINITIALIZED:
            await self.reset()

        self._generation += 1
        generation = self._generation
        self.lifecycle = LifecycleState.LOADING
        self.media = media
        self.state = self._new_state(zoom=self.state.zoom)
        self.registry = TrackRegistry(media.build_tracks())
        self.regions = RegionManager(RegionPalette(seed=self._palette_seed))
        self._ready_tracks = set()
        logger.info("Loading session for %s (generation %d)", media.name, generation)

        try:
            mixing = await self._mixing_factory()
            if self._stale(generation, mixing):
                return
            self.mixing = mixing
            self._wire_mixing(mixing)
            await mixing.load(self.registry.get_tracks())
            if self._stale(generation):
                return

            region_engine = await self._region_engine_factory(media)
            if self._stale(generation, region_engine):
                return
            self.region_engine = region_engine
            self.regions.attach_engine(region_engine)
            region_engine.set_zoom(self.state.zoom)
            self._wire_region_engine(region_engine)

            follower = await self._follower_factory(media)
            if self._stale(generation, follower):
                return
            self.follower = follower
        except Exception as exc:
            if generation != self._generation:
                logger.info("Ignoring failure of superseded load: %r", exc)
                return
            logger.exception("Session setup failed")
            self._teardown()
            self._failed_media = media
            if isinstance(exc, EngineInitError):
                self.last_error = str(exc)
                raise
            self.last_error = "Failed to load waveform editor."
            raise EngineInitError(self.last_error) from exc

        self._failed_media = None
        self._maybe_ready()

    async def reset(self) -> None:
        """Tear the session down; always completes."""
        self._generation += 1
        self._teardown()

    def _teardown(self) -> None:
        self.lifecycle = LifecycleState.TEARING_DOWN
        mixing, follower, region_engine, reconciler = self.mixing, self.follower, self.region_engine, self.reconciler

        # Pause before anything is destroyed, and stop the ticks before the handles go away.
        steps: list[tuple[str, Callable[[], None]]] = []
        if mixing is not None:
            steps.append(("pause mixing engine", mixing.pause))
        if follower is not None:
            steps.append(("pause follower", follower.pause))
        if reconciler is not None:
            steps.append(("cancel reconciler", reconciler.cancel))
        steps.append(("drop listeners", self._drop_listeners))
        steps.append(("detach regions", self.regions.detach_engine))
        if region_engine is not None:
            steps.append(("destroy region engine", region_engine.destroy))
        if mixing is not None:
            steps.append(("destroy mixing engine", mixing.destroy))
        if follower is not None:
            steps.append(("destroy follower", follower.destroy))

        for label, step in steps:
            try:
                step()
            except Exception:
                logger.warning("Teardown step failed: %s", label, exc_info=True)

        self.mixing = None
        self.follower = None
        self.region_engine = None
        self.reconciler = None
        self.registry = None
        self.media = None
        self.trim_result = None
        self.is_processing = False
        self._ready_tracks = set()
        self.state = self._new_state(zoom=self.state.zoom)
        self.lifecycle = LifecycleState.UNINITIALIZED
        logger.info("Session torn down")

    def _stale(self, generation: int, handle=None) -> bool:
        if generation == self._generation:
            return False
        if handle is not None:
            try:
                handle.destroy()
            except Exception:
                logger.warning("Failed to destroy handle from superseded load", exc_info=True)
        return True

    def _maybe_ready(self) -> None:
        if self.lifecycle is not LifecycleState.LOADING or self.registry is None:
            return
        self.state.tracks_ready = len(self._ready_tracks) >= self.registry.track_count()
        if not self.state.tracks_ready or self.region_engine is None or self.follower is None:
            return
        self.reconciler = ClockReconciler(
            self.mixing,
            self.follower,
            self.state,
            self._scheduler,
            registry=self.registry,
            settings=self.settings,
            on_duration=self.regions.set_duration,
        )
        self.reconciler.start()
        self.lifecycle = LifecycleState.READY
        logger.info("Session ready: %d track(s)", self.registry.track_count())

    # ----- engine notifications -----

    def _wire_mixing(self, mixing: MixingEngine) -> None:
        self.registry.add_command_sink(self._forward_command)
        self._unsubscribers += [
            mixing.subscribe(engines.TRACK_READY, self._on_track_ready),
            mixing.subscribe(engines.VOLUME_CHANGED, self._on_engine_volume),
            mixing.subscribe(engines.POSITION_CHANGED, self._on_engine_position),
            mixing.subscribe(engines.ENVELOPE_CHANGED, self._on_engine_envelope),
        ]

    def _wire_region_engine(self, engine: RegionEngine) -> None:
        self._unsubscribers += [
            engine.subscribe(engines.REGION_CREATED, self.regions.on_engine_region_created),
            engine.subscribe(engines.REGION_UPDATED, self.regions.on_engine_region_updated),
            engine.subscribe(engines.REGION_REMOVED, self.regions.on_engine_region_removed),
            engine.subscribe(engines.REGION_CLICKED, self._on_region_clicked),
        ]

    def _drop_listeners(self) -> None:
        while self._unsubscribers:
            self._unsubscribers.pop()()
        if self.registry is not None:
            self.registry.remove_command_sink(self._forward_command)

    def _forward_command(self, track_id: int, field_name: str, value: object) -> None:
        if self.mixing is None:
            return
        if field_name == "volume":
            self.mixing.set_volume(track_id, value)
        elif field_name == "start_position":
            self.mixing.set_start_position(track_id, value)
        elif field_name == "envelope":
            self.mixing.set_envelope(track_id, self.registry.get(track_id).envelope)

    def _on_track_ready(self, track_id: int) -> None:
        self._ready_tracks.add(track_id)
        if self.registry is not None:
            self.state.tracks_ready = len(self._ready_tracks) >= self.registry.track_count()
        self._maybe_ready()

    def _on_engine_volume(self, track_id: int, volume: float) -> None:
        if self.registry is not None:
            self.registry.set_volume(track_id, volume, MutationOrigin.EXTERNAL)

    def _on_engine_position(self, track_id: int, seconds: float) -> None:
        if self.registry is None:
            return
        try:
            self.registry.set_start_position(track_id, seconds, MutationOrigin.EXTERNAL)
        except NotDraggable:
            logger.debug("Ignored engine move of fixed track %s", track_id)

    def _on_engine_envelope(self, track_id: int, points) -> None:
        if self.registry is not None:
            self.registry.replace_envelope(track_id, points, MutationOrigin.EXTERNAL)

    def _on_region_clicked(self, region_id: str) -> None:
        try:
            region = self.regions.select(region_id)
        except KeyError:
            return
        self.seek(region.start)

    # ----- transport -----

    def play(self) -> None:
        if self.mixing is None:
            return
        self.mixing.play()
        if self.reconciler is not None:
            self.reconciler.tick_play_state()

    def pause(self) -> None:
        if self.mixing is None:
            return
        self.mixing.pause()
        if self.reconciler is not None:
            self.reconciler.tick_play_state()

    def seek(self, seconds: float) -> float:
        """Move master and follower to ``seconds`` clamped to the session duration."""
        target = self.state.set_time(seconds)
        if self.mixing is not None:
            self.mixing.set_time(target)
        if self.follower is not None:
            self.follower.set_time(target)
        if self.region_engine is not None:
            self.region_engine.set_time(target)
        return target

    async def set_zoom(self, pixels_per_second: float) -> float:
        zoom = self.state.set_zoom(pixels_per_second)
        if self.region_engine is not None:
            self.region_engine.set_zoom(zoom)
        elif self._failed_media is not None and self.lifecycle is LifecycleState.UNINITIALIZED:
            # A failed load is retried when the view changes.
            await self.load(self._failed_media)
        return zoom

    # ----- trimming -----

    async def trim(self) -> Optional[TrimResult]:
        """Cut the loaded audio down to the regions, in creation order."""
        if self.is_processing or self.trim_executor.is_busy():
            raise Busy()
        self.last_error = None
        regions = self.regions.get_regions()
        media = self.media
        try:
            if media is None:
                raise TrimExecutionError("Please select an audio file and create regions to trim")
            plan = compile_trim_plan(regions)
        except TrimExecutionError as exc:
            self.last_error = str(exc)
            raise

        generation = self._generation
        self.is_processing = True
        try:
            data = await self.trim_executor.trim(media.data, plan, media.suffix)
        except Busy:
            raise
        except SyncEditorError as exc:
            self.last_error = str(exc)
            raise
        except Exception as exc:
            logger.exception("Audio trimming failed")
            self.last_error = "Failed to trim audio"
            raise TrimExecutionError("Failed to trim audio") from exc
        finally:
            if generation == self._generation:
                self.is_processing = False

        if generation != self._generation:
            logger.info("Discarding trim result from a torn-down session")
            return None

        try:
            duration = wav_duration(data)
        except (wave.Error, EOFError):
            duration = plan.expected_duration
        self.trim_result = TrimResult(data=data, filename=trimmed_filename(media.name), duration=duration)
        return self.trim_result

    def discard_trim_result(self) -> None:
        self.trim_result = None

    def take_error(self) -> Optional[str]:
        """Return the pending user-facing message once."""
        message, self.last_error = self.last_error, None
        return message

    def _new_state(self, zoom: Optional[float] = None) -> SessionState:
        return SessionState(
            zoom=self.settings.zoom_default if zoom is None else zoom,
            zoom_min=self.settings.zoom_min,
            zoom_max=self.settings.zoom_max,
        )

