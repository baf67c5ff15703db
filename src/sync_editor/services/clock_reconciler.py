import logging
from enum import Enum
from typing import Callable, Optional

from sync_editor.config import EditorSettings
from sync_editor.domain.errors import RuntimeSyncError
from sync_editor.domain.session_state import SessionState
from sync_editor.domain.track_registry import TrackRegistry
from sync_editor.services.engines import (
    METADATA_READY,
    PLAY_STATE_CHANGED,
    FollowerMedia,
    MixingEngine,
    TickHandle,
    TickScheduler,
    Unsubscribe,
)

logger = logging.getLogger(__name__)


class ReconcilerState(Enum):
    IDLE = "idle"
    ACTIVE = "active"
    STOPPED = "stopped"


class ClockReconciler:
    """
    Keeps the follower media locked to the mixing engine's clock.

    Two periodic ticks run while active:
      * play-state mirroring, polling ``master.is_playing()`` because most
        engines do not announce it (skipped when the engine pushes
        ``play-state-changed`` itself);
      * drift correction, hard-seeking the follower onto the master when
        they are more than ``drift_tolerance`` seconds apart.
    """

    def __init__(
        self,
        master: MixingEngine,
        follower: FollowerMedia,
        state: SessionState,
        scheduler: TickScheduler,
        registry: Optional[TrackRegistry] = None,
        settings: Optional[EditorSettings] = None,
        on_duration: Optional[Callable[[float], None]] = None,
    ):
        self._master = master
        self._follower = follower
        self._state = state
        self._scheduler = scheduler
        self._settings = settings or EditorSettings()
        self._on_duration = on_duration
        # Follower content is aligned with the anchor track.
        self._offset = registry.anchor.start_position if registry is not None else 0.0
        self._handles: list[TickHandle] = []
        self._unsubscribers: list[Unsubscribe] = []
        self._last_playing = state.is_playing
        self._cancelled = False
        self.state = ReconcilerState.IDLE
        self.corrections = 0

    @property
    def drift_tolerance(self) -> float:
        return self._settings.drift_tolerance

    def start(self) -> None:
        if self.state is not ReconcilerState.IDLE:
            raise RuntimeError(f"Reconciler cannot start from {self.state.value}")
        if not self._live():
            raise RuntimeSyncError("Cannot start reconciler without live handles")

        self._follower.muted = True
        self._follower.set_time(self._master.current_time() - self._offset)
        self._publish_duration()

        if self._master.supports_play_state_events:
            self._unsubscribers.append(
                self._master.subscribe(PLAY_STATE_CHANGED, self._guarded(self._apply_play_state))
            )
        else:
            self._handles.append(
                self._scheduler.every(self._settings.play_state_interval, self._guarded(self.tick_play_state))
            )
        self._handles.append(self._scheduler.every(self._settings.drift_interval, self._guarded(self.tick_drift)))
        self.state = ReconcilerState.ACTIVE
        logger.info("Clock reconciler active")

    def cancel(self) -> None:
        """Stop both ticks. Safe to call more than once."""
        self._cancelled = True
        for handle in self._handles:
            handle.cancel()
        self._handles.clear()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        if self.state is not ReconcilerState.STOPPED:
            self.state = ReconcilerState.STOPPED
            logger.info("Clock reconciler stopped")

    def tick_play_state(self) -> None:
        if not self._live():
            return
        self._apply_play_state(self._master.is_playing())

    def tick_drift(self) -> Optional[float]:
        """Correct the follower if it drifted past tolerance; returns the measured drift."""
        if not self._live():
            return None
        master_time = self._master.current_time()
        target = master_time - self._offset
        drift = abs(self._follower.current_time() - target)
        self._state.set_time(master_time)
        if drift > self._settings.drift_tolerance:
            self._follower.set_time(target)
            self.corrections += 1
            logger.debug("Drift %.3fs corrected, follower -> %.3f", drift, target)
        return drift

    def _apply_play_state(self, playing: bool) -> None:
        playing = bool(playing)
        if playing == self._last_playing or not self._live():
            return
        if playing:
            self._follower.play()
        else:
            self._follower.pause()
        self._last_playing = playing
        self._state.is_playing = playing

    def _publish_duration(self) -> None:
        duration = self._follower.duration()
        if duration is not None and duration > 0:
            self._set_duration(duration)
            return
        # Metadata not loaded yet: fill in duration on first notification.
        pending: list[Unsubscribe] = []

        def drop() -> None:
            while pending:
                pending.pop()()

        def on_metadata(value: float) -> None:
            if self._cancelled:
                return
            drop()
            self._set_duration(value)

        pending.append(self._follower.subscribe(METADATA_READY, on_metadata))
        self._unsubscribers.append(drop)

    def _set_duration(self, duration: float) -> None:
        self._state.duration = float(duration)
        if self._on_duration is not None:
            self._on_duration(float(duration))

    def _live(self) -> bool:
        return not self._cancelled and self._master.is_alive() and self._follower.is_alive()

    def _guarded(self, tick: Callable[..., object]) -> Callable[..., None]:
        def run(*args) -> None:
            try:
                tick(*args)
            except Exception as exc:
                logger.warning("%s", RuntimeSyncError(f"Reconciliation tick failed: {exc!r}"))

        return run
