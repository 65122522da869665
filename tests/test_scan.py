import os
import time

from streamclip.obs.scan import find_latest_replay_buffer


def _touch(path, age):
    path.write_bytes(b"x")
    stamp = time.time() - age
    os.utime(path, (stamp, stamp))
    return path


def test_newest_recent_video_wins(tmp_path):
    _touch(tmp_path / "Replay 1.mkv", 20)
    newest = _touch(tmp_path / "Replay 2.MP4", 5)
    _touch(tmp_path / "notes.txt", 1)
    assert find_latest_replay_buffer(tmp_path) == newest


def test_old_files_are_ignored(tmp_path):
    _touch(tmp_path / "Replay old.mkv", 120)
    assert find_latest_replay_buffer(tmp_path, max_age_seconds=30) is None


def test_missing_directory_yields_none(tmp_path):
    assert find_latest_replay_buffer(tmp_path / "nowhere") is None
