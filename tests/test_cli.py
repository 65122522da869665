from click.testing import CliRunner

from streamclip.cli.main import cli
from streamclip.events.log import EventLog
from streamclip.models.events import EventType, make_event
from streamclip.utils.io import read_yaml


def _invoke(tmp_path, args, **kwargs):
    config = tmp_path / "missing.yaml"
    return CliRunner().invoke(cli, ["-c", str(config), *args], **kwargs)


def test_offsets_command(tmp_path):
    result = _invoke(tmp_path, [
        "offsets", "--t0", "150", "--t1", "160",
        "--session-start", "1000000", "--saved-at", "1200000",
        "--actual-duration", "200",
    ])
    assert result.exit_code == 0, result.output
    assert "150.000s" in result.output
    assert "10.000s" in result.output


def test_offsets_command_rejects_rolled_off_clip(tmp_path):
    result = _invoke(tmp_path, [
        "offsets", "--t0", "5", "--t1", "10",
        "--session-start", "1000000", "--saved-at", "1200000",
        "--actual-duration", "3",
    ])
    assert result.exit_code == 1


def test_init_writes_config_without_secrets(tmp_path):
    out = tmp_path / "streamclip.yaml"
    result = _invoke(tmp_path, ["init", "-o", str(out), "--obs-url", "ws://obs:4455"])
    assert result.exit_code == 0, result.output

    data = read_yaml(out)
    assert data["obs"]["url"] == "ws://obs:4455"
    assert "password" not in data["obs"]
    assert "api_key" not in data["stt"]

    again = _invoke(tmp_path, ["init", "-o", str(out)])
    assert again.exit_code == 1


def test_events_command(tmp_path):
    sessions = tmp_path / "sessions"
    log = EventLog(sessions)
    log.append(make_event("s1", EventType.SESSION_START, {"sessionId": "s1", "workflow": "debate"}))
    log.append(make_event(
        "s1",
        EventType.TRANSCRIPT_SEGMENT,
        {"speakerId": "speaker_1", "text": "opening remarks", "t0": 1, "t1": 3},
    ))

    env = {"SESSION_DIR": str(sessions)}
    result = _invoke(tmp_path, ["events", "s1"], env=env)
    assert result.exit_code == 0, result.output
    assert "opening remarks" in result.output
    assert "2 event(s)" in result.output

    only_start = _invoke(tmp_path, ["events", "s1", "--type", "SESSION_START"], env=env)
    assert "1 event(s)" in only_start.output

    missing = _invoke(tmp_path, ["events", "nope"], env=env)
    assert missing.exit_code == 1
