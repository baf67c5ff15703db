import os

import pytest

from sync_editor.services.engines import METADATA_READY

follower_module = pytest.importorskip("sync_editor.ui.video_follower")
QtFollowerMedia = follower_module.QtFollowerMedia


@pytest.fixture(scope="module")
def qapp():
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    from PySide6.QtWidgets import QApplication

    return QApplication.instance() or QApplication([])


def test_duration_change_is_forwarded_in_seconds(qapp, tmp_path):
    follower = QtFollowerMedia(tmp_path / "clip.mp4")
    seen = []
    follower.subscribe(METADATA_READY, seen.append)

    follower._player.durationChanged.emit(0)
    follower._player.durationChanged.emit(2500)

    assert seen == [2.5]
    follower.destroy()


def test_destroy_disconnects_metadata_subscribers(qapp, tmp_path):
    follower = QtFollowerMedia(tmp_path / "clip.mp4")
    seen = []
    unsubscribe = follower.subscribe(METADATA_READY, seen.append)

    follower.destroy()
    unsubscribe()

    assert follower.is_alive() is False
    assert seen == []


def test_only_metadata_events_are_supported(qapp, tmp_path):
    follower = QtFollowerMedia(tmp_path / "clip.mp4")

    with pytest.raises(ValueError):
        follower.subscribe("timeupdate", lambda *args: None)
    follower.destroy()
