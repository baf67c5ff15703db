import logging

import pytest

from sync_editor.domain.errors import RuntimeSyncError
from sync_editor.domain.session_state import SessionState
from sync_editor.domain.track_registry import TrackRegistry
from sync_editor.services import engines
from sync_editor.services.clock_reconciler import ClockReconciler, ReconcilerState


@pytest.fixture
def clock(fake_classes, scheduler):
    master = fake_classes.Mixing([])
    follower = fake_classes.Follower([], duration=30.0)
    state = SessionState()
    durations = []
    reconciler = ClockReconciler(
        master,
        follower,
        state,
        scheduler,
        registry=TrackRegistry.from_sources(["voice.wav"]),
        on_duration=durations.append,
    )
    return reconciler, master, follower, state, durations


def test_start_mutes_follower_and_schedules_both_ticks(clock, scheduler):
    reconciler, master, follower, state, durations = clock
    master.time = 4.0

    reconciler.start()

    assert reconciler.state is ReconcilerState.ACTIVE
    assert follower.muted is True
    assert follower.time == 4.0
    assert sorted(t.interval for t in scheduler.active()) == [0.2, 0.25]
    assert state.duration == 30.0
    assert durations == [30.0]


def test_start_twice_is_rejected(clock):
    reconciler = clock[0]
    reconciler.start()

    with pytest.raises(RuntimeError):
        reconciler.start()


def test_start_without_live_handles_raises(clock):
    reconciler, master = clock[0], clock[1]
    master.alive = False

    with pytest.raises(RuntimeSyncError):
        reconciler.start()


def test_drift_above_tolerance_is_corrected(clock):
    """
    Master at 10.0, follower at 9.7: 0.3s of drift is over 0.2s, so the
    follower is hard-seeked onto the master.
    """
    reconciler, master, follower, state, _ = clock
    reconciler.start()
    master.time = 10.0
    follower.time = 9.7

    drift = reconciler.tick_drift()

    assert drift == pytest.approx(0.3)
    assert follower.time == 10.0
    assert reconciler.corrections == 1
    assert state.time == 10.0


@pytest.mark.parametrize("follower_time", [9.9, 10.1, 9.8])
def test_drift_within_tolerance_is_left_alone(clock, follower_time):
    reconciler, master, follower, state, _ = clock
    reconciler.start()
    master.time = 10.0
    follower.time = follower_time

    reconciler.tick_drift()

    assert follower.time == follower_time
    assert reconciler.corrections == 0
    assert state.time == 10.0


def test_play_state_is_mirrored_on_tick(clock, scheduler):
    reconciler, master, follower, state, _ = clock
    reconciler.start()

    master.playing = True
    scheduler.fire(0.2)
    assert follower.playing is True
    assert state.is_playing is True

    master.playing = False
    scheduler.fire(0.2)
    assert follower.playing is False
    assert state.is_playing is False


def test_push_play_state_events_replace_polling(fake_classes, scheduler):
    master = fake_classes.Mixing([])
    master.supports_play_state_events = True
    follower = fake_classes.Follower([])
    state = SessionState()
    reconciler = ClockReconciler(master, follower, state, scheduler)

    reconciler.start()
    master.events.emit(engines.PLAY_STATE_CHANGED, True)

    assert [t.interval for t in scheduler.active()] == [0.25]
    assert follower.playing is True
    assert state.is_playing is True


def test_ticks_after_cancel_do_nothing(clock, scheduler):
    reconciler, master, follower, state, _ = clock
    reconciler.start()
    reconciler.cancel()
    reconciler.cancel()

    master.time = 20.0
    master.playing = True

    assert reconciler.tick_drift() is None
    reconciler.tick_play_state()
    assert follower.time == 0.0
    assert follower.playing is False
    assert reconciler.state is ReconcilerState.STOPPED
    assert scheduler.active() == []


def test_ticks_skip_destroyed_handles(clock):
    reconciler, master, follower, _, _ = clock
    reconciler.start()
    follower.alive = False
    master.time = 5.0

    assert reconciler.tick_drift() is None
    assert follower.time == 0.0


def test_failing_tick_is_logged_not_raised(clock, scheduler, caplog):
    reconciler, master, follower, _, _ = clock
    reconciler.start()

    def broken():
        raise RuntimeError("handle vanished")

    master.current_time = broken

    with caplog.at_level(logging.WARNING):
        scheduler.fire(0.25)

    assert "Reconciliation tick failed" in caplog.text


def test_duration_arrives_with_metadata(fake_classes, scheduler):
    master = fake_classes.Mixing([])
    follower = fake_classes.Follower([], duration=None)
    state = SessionState()
    durations = []
    reconciler = ClockReconciler(master, follower, state, scheduler, on_duration=durations.append)

    reconciler.start()
    assert state.duration is None

    follower.announce_metadata(42.0)
    follower.announce_metadata(50.0)

    assert state.duration == 42.0
    assert durations == [42.0]


def test_metadata_after_cancel_is_ignored(fake_classes, scheduler):
    master = fake_classes.Mixing([])
    follower = fake_classes.Follower([], duration=None)
    state = SessionState()
    reconciler = ClockReconciler(master, follower, state, scheduler)
    reconciler.start()

    reconciler.cancel()
    follower.announce_metadata(42.0)

    assert state.duration is None
