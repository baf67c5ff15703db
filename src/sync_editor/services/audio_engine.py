import asyncio
import logging
from dataclasses import replace
from typing import Callable, Sequence

import numpy as np
import sounddevice as sd

from sync_editor.domain.track import EnvelopePoint, Track
from sync_editor.services.engines import (
    ENVELOPE_CHANGED,
    POSITION_CHANGED,
    TRACK_READY,
    VOLUME_CHANGED,
)
from sync_editor.services.events import EventEmitter
from sync_editor.services.mixdown import render_mixdown
from sync_editor.services.wav_io import read_audio, resample

logger = logging.getLogger(__name__)


class SoundDeviceMixingEngine:
    """
    Mixing engine that renders all tracks into one buffer and streams it
    through sounddevice. The playback cursor is the session's master clock.
    """
    supports_play_state_events = False

    def __init__(self, sample_rate: int = 44100, blocksize: int = 1024):
        self.sample_rate = sample_rate
        self.blocksize = blocksize
        self._tracks: dict[int, Track] = {}
        self._data: dict[int, np.ndarray] = {}
        self._mix = np.array([], dtype=np.float32)
        self._dirty = True
        self._cursor = 0
        self._is_playing = False
        self._alive = True
        self._stream = None
        self._events = EventEmitter()

    async def load(self, tracks: Sequence[Track]) -> None:
        for track in tracks:
            if track.source is None:
                data = np.array([], dtype=np.float32)
            else:
                data, rate = await asyncio.to_thread(read_audio, track.source)
                data = resample(data, rate, self.sample_rate)
            if not self._alive:
                return
            self._tracks[track.id] = replace(track, envelope=list(track.envelope))
            self._data[track.id] = data
            self._dirty = True
            self._events.emit(TRACK_READY, track.id)

    def subscribe(self, event: str, callback: Callable[..., None]) -> Callable[[], None]:
        return self._events.subscribe(event, callback)

    # ----- clock -----

    def current_time(self) -> float:
        return self._cursor / self.sample_rate

    def is_playing(self) -> bool:
        return self._is_playing

    def duration(self) -> float:
        return len(self.render_mix()) / self.sample_rate

    def set_time(self, seconds: float) -> None:
        total = len(self.render_mix())
        self._cursor = int(np.clip(round(seconds * self.sample_rate), 0, total))

    def play(self) -> None:
        if self._is_playing or not self._alive:
            return
        # A stream that ran to the end stopped itself but is still open.
        self._close_stream()
        mix = self.render_mix()
        if mix.size == 0:
            return
        if self._cursor >= len(mix):
            self._cursor = 0

        def callback(outdata, frames, time, status):
            if status:
                logger.debug("Output stream status: %s", status)
            start = self._cursor
            chunk = mix[start : start + frames]
            outdata[: len(chunk), 0] = chunk
            if len(chunk) < frames:
                outdata[len(chunk) :, 0] = 0.0
                self._cursor = len(mix)
                self._is_playing = False
                raise sd.CallbackStop()
            self._cursor = start + frames

        self._stream = sd.OutputStream(
            samplerate=self.sample_rate,
            channels=1,
            dtype="float32",
            blocksize=self.blocksize,
            callback=callback,
        )
        self._is_playing = True
        self._stream.start()

    def pause(self) -> None:
        self._is_playing = False
        self._close_stream()

    # ----- track parameters -----

    def set_volume(self, track_id: int, volume: float) -> None:
        self._update_track(track_id, volume=float(volume))
        self._events.emit(VOLUME_CHANGED, track_id, float(volume))

    def set_start_position(self, track_id: int, seconds: float) -> None:
        self._update_track(track_id, start_position=float(seconds))
        self._events.emit(POSITION_CHANGED, track_id, float(seconds))

    def set_envelope(self, track_id: int, points: Sequence[EnvelopePoint]) -> None:
        self._update_track(track_id, envelope=list(points))
        self._events.emit(ENVELOPE_CHANGED, track_id, list(points))

    def _update_track(self, track_id: int, **changes) -> None:
        track = self._tracks[track_id]
        for name, value in changes.items():
            setattr(track, name, value)
        self._dirty = True
        if self._is_playing:
            # Restart the stream so the new mix is heard from the current cursor.
            self.pause()
            self.play()

    def render_mix(self) -> np.ndarray:
        """
        Mix all tracks: volume, start offset and envelope applied, then
        normalized to avoid clipping.
        """
        if not self._dirty:
            return self._mix
        sources = [(track, self._data[track_id]) for track_id, track in self._tracks.items() if track_id in self._data]
        self._mix = render_mixdown(sources, self.sample_rate)
        self._dirty = False
        return self._mix

    # ----- lifecycle -----

    def is_alive(self) -> bool:
        return self._alive

    def destroy(self) -> None:
        self._alive = False
        self._is_playing = False
        self._close_stream()
        self._events.clear()
        self._tracks.clear()
        self._data.clear()

    def _close_stream(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        stream.stop()
        stream.close()
