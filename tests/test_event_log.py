import asyncio
import json
import threading

import pytest

from streamclip.events.bus import EventBus
from streamclip.events.log import EventLog, EventValidationError
from streamclip.models.events import (
    ClipIntentPayload,
    EventType,
    TranscriptSegmentPayload,
    make_event,
)


def test_append_then_replay_round_trip(tmp_path):
    log = EventLog(tmp_path)
    written = [
        make_event("s1", EventType.SESSION_START, {"sessionId": "s1", "workflow": "streamer"}),
        make_event("s1", EventType.CLIP_INTENT_START, ClipIntentPayload(t=1.5, source="button")),
        make_event("s1", EventType.TRANSCRIPT_SEGMENT,
                   TranscriptSegmentPayload(speaker_id="speaker_0", text="hi", t0=1, t1=2)),
        make_event("s1", EventType.SESSION_END, {"sessionId": "s1", "duration": 12.0}),
    ]
    for event in written:
        log.append(event)

    replayed = list(log.replay("s1"))
    assert replayed == written


def test_wire_format_uses_camel_case(tmp_path):
    log = EventLog(tmp_path)
    log.append(make_event("s1", EventType.TRANSCRIPT_SEGMENT,
                          TranscriptSegmentPayload(speaker_id="speaker_1", text="yo", t0=0, t1=1)))
    line = log.path_for("s1").read_text().strip()
    data = json.loads(line)
    assert data["sessionId"] == "s1"
    assert data["payload"]["speakerId"] == "speaker_1"
    assert "observability" not in data


def test_invalid_payload_is_not_written_or_sent(tmp_path):
    bus = EventBus()
    sub = bus.subscribe()
    log = EventLog(tmp_path, bus)
    bad = {
        "id": "x",
        "sessionId": "s1",
        "ts": 1,
        "type": "CLIP_INTENT_END",
        "payload": {"t": -4},
    }
    with pytest.raises(EventValidationError):
        log.append(bad)
    assert not log.path_for("s1").exists()
    assert sub.pending() == 0


def test_unknown_event_type_rejected(tmp_path):
    log = EventLog(tmp_path)
    with pytest.raises(EventValidationError):
        log.append({"id": "x", "sessionId": "s1", "ts": 1, "type": "NOPE", "payload": {}})


def test_append_publishes_serialized_line(tmp_path):
    bus = EventBus()
    sub = bus.subscribe()
    log = EventLog(tmp_path, bus)
    event = log.append(make_event("s1", EventType.MOMENT_MARKER, {"label": "goal", "t": 3.0}))
    line = sub.get_nowait()
    assert json.loads(line)["id"] == event.id


def test_concurrent_appends_do_not_interleave(tmp_path):
    log = EventLog(tmp_path)

    def writer(n):
        for i in range(50):
            log.append(make_event("s1", EventType.MOMENT_MARKER,
                                  {"label": f"w{n}-{i}" * 20, "t": float(i)}))

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    events = list(log.replay("s1"))
    assert len(events) == 200


def test_append_async_writes_then_publishes(tmp_path):
    bus = EventBus()
    sub = bus.subscribe()
    log = EventLog(tmp_path, bus)

    async def main():
        return await log.append_async(make_event(
            "s1",
            EventType.TRANSCRIPT_SEGMENT,
            TranscriptSegmentPayload(text="hi", t0=0.5, t1=1.0),
        ))

    event = asyncio.run(main())
    assert [e.id for e in log.replay("s1")] == [event.id]
    assert json.loads(sub.get_nowait())["id"] == event.id


def test_append_async_rejects_invalid_event(tmp_path):
    log = EventLog(tmp_path)
    with pytest.raises(EventValidationError):
        asyncio.run(log.append_async(
            {"id": "x", "sessionId": "s1", "ts": 1, "type": "CLIP_INTENT_END", "payload": {"t": -1}}
        ))
    assert not log.path_for("s1").exists()
