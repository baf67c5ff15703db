import asyncio

import numpy as np
import pytest

from sync_editor.config import EditorSettings
from sync_editor.domain.errors import Busy
from sync_editor.services import engines
from sync_editor.services.events import EventEmitter
from sync_editor.services.session_lifecycle import EditorSession, SessionMedia
from sync_editor.services.wav_io import wav_bytes


class FakeMixingEngine:
    supports_play_state_events = False

    def __init__(self, log: list):
        self.log = log
        self.events = EventEmitter()
        self.time = 0.0
        self.playing = False
        self.alive = True
        self.volumes: dict[int, float] = {}
        self.positions: dict[int, float] = {}
        self.envelopes: dict[int, list] = {}
        self.loaded: list = []

    async def load(self, tracks):
        await asyncio.sleep(0)
        for track in tracks:
            self.loaded.append(track.id)
            self.events.emit(engines.TRACK_READY, track.id)

    def current_time(self):
        return self.time

    def is_playing(self):
        return self.playing

    def play(self):
        self.log.append("mixing.play")
        self.playing = True

    def pause(self):
        self.log.append("mixing.pause")
        self.playing = False

    def set_time(self, seconds):
        self.time = seconds

    def set_volume(self, track_id, volume):
        self.volumes[track_id] = volume
        self.events.emit(engines.VOLUME_CHANGED, track_id, volume)

    def set_start_position(self, track_id, seconds):
        self.positions[track_id] = seconds
        self.events.emit(engines.POSITION_CHANGED, track_id, seconds)

    def set_envelope(self, track_id, points):
        self.envelopes[track_id] = list(points)
        self.events.emit(engines.ENVELOPE_CHANGED, track_id, list(points))

    def subscribe(self, event, callback):
        return self.events.subscribe(event, callback)

    def is_alive(self):
        return self.alive

    def destroy(self):
        self.log.append("mixing.destroy")
        self.alive = False


class FakeFollower:
    def __init__(self, log: list, duration: float | None = 60.0):
        self.log = log
        self.events = EventEmitter()
        self.time = 0.0
        self.playing = False
        self.muted = False
        self.alive = True
        self._duration = duration
        self.seeks: list[float] = []

    def current_time(self):
        return self.time

    def set_time(self, seconds):
        self.seeks.append(seconds)
        self.time = seconds

    def play(self):
        self.log.append("follower.play")
        self.playing = True

    def pause(self):
        self.log.append("follower.pause")
        self.playing = False

    def duration(self):
        return self._duration

    def announce_metadata(self, duration: float):
        self._duration = duration
        self.events.emit(engines.METADATA_READY, duration)

    def subscribe(self, event, callback):
        return self.events.subscribe(event, callback)

    def is_alive(self):
        return self.alive

    def destroy(self):
        self.log.append("follower.destroy")
        self.alive = False


class FakeRegionEngine:
    def __init__(self, log: list, ready: bool = True):
        self.log = log
        self.events = EventEmitter()
        self.regions: dict[str, tuple[float, float]] = {}
        self.ready = ready
        self.alive = True
        self.zoom = None
        self.time = 0.0

    def is_ready(self):
        return self.ready and self.alive

    def add_region(self, region):
        self.regions[region.id] = (region.start, region.end)
        self.events.emit(engines.REGION_CREATED, region.id, region.start, region.end)

    def update_region(self, region_id, start, end):
        self.regions[region_id] = (start, end)
        self.events.emit(engines.REGION_UPDATED, region_id, start, end)

    def remove_region(self, region_id):
        if self.regions.pop(region_id, None) is not None:
            self.events.emit(engines.REGION_REMOVED, region_id)

    def get_regions(self):
        return [(region_id, start, end) for region_id, (start, end) in self.regions.items()]

    def set_zoom(self, pixels_per_second):
        self.zoom = pixels_per_second

    def set_time(self, seconds):
        self.time = seconds

    def subscribe(self, event, callback):
        return self.events.subscribe(event, callback)

    def is_alive(self):
        return self.alive

    def destroy(self):
        self.log.append("region_engine.destroy")
        self.alive = False


class FakeTrimExecutor:
    """Holds each request until ``release()`` so tests can overlap requests."""

    def __init__(self, output: bytes = b"RIFF-trimmed", fail: Exception | None = None):
        self.output = output
        self.fail = fail
        self.calls: list = []
        self._in_flight = False
        self._gate: asyncio.Event | None = None
        self.hold = False

    def is_busy(self):
        return self._in_flight

    async def ensure_ready(self):
        return None

    async def trim(self, source, plan, source_suffix=".wav"):
        if self._in_flight:
            raise Busy()
        self._in_flight = True
        try:
            self.calls.append((source, plan, source_suffix))
            if self.hold:
                self._gate = asyncio.Event()
                await self._gate.wait()
            if self.fail is not None:
                raise self.fail
            return self.output
        finally:
            self._in_flight = False

    def release(self):
        if self._gate is not None:
            self._gate.set()


class ManualTick:
    def __init__(self, interval, callback):
        self.interval = interval
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Scheduler double: ticks run only when the test fires them."""

    def __init__(self):
        self.ticks: list[ManualTick] = []

    def every(self, interval, callback):
        tick = ManualTick(interval, callback)
        self.ticks.append(tick)
        return tick

    def fire(self, interval):
        for tick in list(self.ticks):
            if tick.interval == interval and not tick.cancelled:
                tick.callback()

    def active(self):
        return [t for t in self.ticks if not t.cancelled]


@pytest.fixture
def call_log():
    return []


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def settings():
    return EditorSettings()


@pytest.fixture
def media():
    data = wav_bytes(np.zeros(8000, dtype=np.float32), 8000)
    return SessionMedia(name="voice.wav", data=data)


@pytest.fixture
def fakes(call_log):
    """Engines handed out by the session factories, most recent last."""

    class Built:
        def __init__(self):
            self.mixing: list[FakeMixingEngine] = []
            self.region_engines: list[FakeRegionEngine] = []
            self.followers: list[FakeFollower] = []
            self.follower_duration: float | None = 60.0

    return Built()


@pytest.fixture
def make_session(call_log, scheduler, settings, fakes):
    def build(trim_executor=None, mixing_failures=()):
        pending = list(mixing_failures)

        async def mixing_factory():
            await asyncio.sleep(0)
            if pending:
                raise pending.pop(0)
            engine = FakeMixingEngine(call_log)
            fakes.mixing.append(engine)
            return engine

        async def region_engine_factory(media):
            await asyncio.sleep(0)
            engine = FakeRegionEngine(call_log)
            fakes.region_engines.append(engine)
            return engine

        async def follower_factory(media):
            await asyncio.sleep(0)
            follower = FakeFollower(call_log, fakes.follower_duration)
            fakes.followers.append(follower)
            return follower

        return EditorSession(
            mixing_factory=mixing_factory,
            region_engine_factory=region_engine_factory,
            follower_factory=follower_factory,
            trim_executor=trim_executor or FakeTrimExecutor(),
            scheduler=scheduler,
            settings=settings,
        )

    return build


@pytest.fixture
def fake_classes():
    class Classes:
        Mixing = FakeMixingEngine
        Follower = FakeFollower
        RegionEngine = FakeRegionEngine
        TrimExecutor = FakeTrimExecutor

    return Classes
