import threading

import pytest

from streamclip.models.session import SessionStartRequest, Workflow
from streamclip.session.registry import (
    NoActiveSessionError,
    SessionAlreadyActiveError,
    SessionRegistry,
)


class Clock:
    def __init__(self, now=1_000_000):
        self.now = now

    def __call__(self):
        return self.now


def test_start_then_second_start_rejected():
    registry = SessionRegistry(Clock())
    session = registry.start(SessionStartRequest(session_id="s1", workflow=Workflow.PODCAST))
    assert session.started_at_ms == 1_000_000
    with pytest.raises(SessionAlreadyActiveError):
        registry.start(SessionStartRequest())


def test_only_one_concurrent_start_wins():
    registry = SessionRegistry(Clock())
    wins, losses = [], []

    def attempt():
        try:
            wins.append(registry.start(SessionStartRequest()))
        except SessionAlreadyActiveError:
            losses.append(1)

    threads = [threading.Thread(target=attempt) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(wins) == 1
    assert len(losses) == 7


def test_operations_without_session_raise():
    registry = SessionRegistry(Clock())
    with pytest.raises(NoActiveSessionError):
        registry.mark_clip_start()
    with pytest.raises(NoActiveSessionError):
        registry.stop()


def test_clip_window_uses_pending_mark():
    clock = Clock()
    registry = SessionRegistry(clock)
    registry.start(SessionStartRequest())
    clock.now += 12_000
    assert registry.mark_clip_start() == pytest.approx(12.0)
    clock.now += 8_000
    assert registry.close_clip() == (pytest.approx(12.0), pytest.approx(20.0))
    assert registry.active.clip_start_mark is None


def test_clip_window_defaults_to_thirty_seconds():
    clock = Clock()
    registry = SessionRegistry(clock)
    registry.start(SessionStartRequest())
    clock.now += 45_000
    assert registry.close_clip() == (pytest.approx(15.0), pytest.approx(45.0))
    # early in the session the window is clamped at zero
    assert registry.close_clip(t=10) == (0.0, 10.0)


def test_new_mark_overwrites_pending_one():
    registry = SessionRegistry(Clock())
    registry.start(SessionStartRequest())
    registry.mark_clip_start(3)
    registry.mark_clip_start(7)
    assert registry.close_clip(t=9) == (7.0, 9.0)
