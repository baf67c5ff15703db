from typing import Iterable

import numpy as np

from sync_editor.domain.track import Track


def render_mixdown(sources: Iterable[tuple[Track, np.ndarray]], sample_rate: int) -> np.ndarray:
    """
    Mix mono tracks into one buffer.

    Each track is scaled by its volume and envelope and placed at its start
    position. Shorter tracks are padded; the sum is normalized only when it
    would clip.
    """
    spans = []
    for track, data in sources:
        data = np.asarray(data, dtype=np.float32).flatten()
        if data.size == 0:
            continue
        offset = int(round(track.start_position * sample_rate))
        spans.append((track, data, offset))

    max_length = max((offset + len(data) for _, data, offset in spans), default=0)
    mix = np.zeros(max_length, dtype=np.float32)
    for track, data, offset in spans:
        times = np.arange(len(data), dtype=np.float64) / sample_rate
        gain = track.envelope_gain(times) * float(track.volume)
        mix[offset : offset + len(data)] += data * gain

    max_val = np.max(np.abs(mix)) if mix.size > 0 else 0.0
    if max_val > 1.0:
        mix = mix / max_val

    return mix.astype(np.float32)
