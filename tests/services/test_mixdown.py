import numpy as np

from sync_editor.domain.track import EnvelopePoint, Track
from sync_editor.services.mixdown import render_mixdown


def test_mixdown_applies_volume_and_offset():
    # Arrange: anchor at full volume, second track half volume starting at 2 samples
    rate = 4
    anchor = Track(id=0, name="voice")
    music = Track(id=1, name="music", volume=0.5, start_position=0.5)
    sources = [
        (anchor, np.array([0.1, 0.1, 0.1, 0.1], dtype=np.float32)),
        (music, np.array([0.2, 0.2, 0.2, 0.2], dtype=np.float32)),
    ]

    # Act
    mix = render_mixdown(sources, rate)

    # Assert: output long enough for the shifted track
    assert len(mix) == 6
    assert np.allclose(mix, [0.1, 0.1, 0.2, 0.2, 0.1, 0.1])


def test_mixdown_applies_envelope():
    track = Track(id=1, name="fx", envelope=[EnvelopePoint(0.0, 0.0), EnvelopePoint(1.0, 1.0)])

    mix = render_mixdown([(track, np.full(3, 0.5, dtype=np.float32))], 2)

    assert np.allclose(mix, [0.0, 0.25, 0.5])


def test_mixdown_normalizes_only_when_clipping():
    loud = render_mixdown(
        [(Track(id=0, name="a"), np.array([0.8, -0.8])), (Track(id=1, name="b"), np.array([0.8, 0.0]))],
        44100,
    )
    quiet = render_mixdown([(Track(id=0, name="a"), np.array([0.3, -0.3]))], 44100)

    assert np.isclose(np.max(np.abs(loud)), 1.0)
    assert np.allclose(quiet, [0.3, -0.3])


def test_mixdown_of_nothing_is_empty():
    assert render_mixdown([], 44100).size == 0
    assert render_mixdown([(Track(id=0, name="a"), np.array([]))], 44100).size == 0
