import asyncio

import numpy as np
import pytest

from sync_editor.domain.errors import NoRegions, ValidationError
from sync_editor.domain.upload_policy import MB
from sync_editor.services.session_lifecycle import LifecycleState
from sync_editor.services.wav_io import wav_bytes, write_wav
from sync_editor.use_cases.load_media import LoadMedia
from sync_editor.use_cases.seek import Seek
from sync_editor.use_cases.toggle_playback import TogglePlayback
from sync_editor.use_cases.trim_regions import TrimRegions


def test_load_media_reads_file_and_loads_session(make_session, tmp_path, fakes):
    path = tmp_path / "interview.wav"
    write_wav(path, np.zeros(800, dtype=np.float32), 8000)
    extra = tmp_path / "music.wav"
    write_wav(extra, np.zeros(800, dtype=np.float32), 8000)
    session = make_session()

    media = asyncio.run(LoadMedia(session).execute(path, extra_tracks=[extra]))

    assert media.name == "interview.wav"
    assert media.data == path.read_bytes()
    assert media.mime_type in (None, "audio/wav")
    assert session.lifecycle is LifecycleState.READY
    assert [t.name for t in session.registry.get_tracks()] == ["interview.wav", "music"]
    assert fakes.mixing[0].loaded == [0, 1]


def test_load_media_rejects_oversized_file_before_reading(make_session, tmp_path):
    path = tmp_path / "huge.wav"
    with path.open("wb") as handle:
        handle.truncate(50 * MB + 1)
    session = make_session()

    with pytest.raises(ValidationError, match="too large"):
        asyncio.run(LoadMedia(session).execute(path))

    assert session.lifecycle is LifecycleState.UNINITIALIZED


def test_load_media_rejects_missing_file(make_session, tmp_path):
    with pytest.raises(ValueError):
        asyncio.run(LoadMedia(make_session()).execute(tmp_path / "missing.wav"))


def test_toggle_playback(make_session, media):
    session = make_session()
    assert TogglePlayback(session).execute() is False

    asyncio.run(session.load(media))
    toggle = TogglePlayback(session)

    assert toggle.execute() is True
    assert session.follower.playing is True
    assert toggle.execute() is False
    assert session.follower.playing is False


def test_seek(make_session, media):
    session = make_session()
    asyncio.run(session.load(media))

    assert Seek(session).execute(12.5) == 12.5
    assert session.follower.time == 12.5


def test_trim_regions(make_session, media, fake_classes):
    executor = fake_classes.TrimExecutor(output=wav_bytes(np.zeros(8000, dtype=np.float32), 8000))
    session = make_session(trim_executor=executor)
    asyncio.run(session.load(media))

    with pytest.raises(NoRegions):
        asyncio.run(TrimRegions(session).execute())

    session.regions.add_region(1.0, 1.0)
    result = asyncio.run(TrimRegions(session).execute())

    assert result.duration == pytest.approx(1.0)
