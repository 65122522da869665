"""Append-only per-session event log with broadcast fan-out."""

from __future__ import annotations

import asyncio
import threading
from pathlib import Path
from typing import Any, Iterator

from pydantic import ValidationError

from streamclip.events.bus import EventBus
from streamclip.models.events import EventEnvelope
from streamclip.utils.io import append_line
from streamclip.utils.progress import log_step

EVENTS_FILE = "events.jsonl"


class EventValidationError(ValueError):
    """Raised when an event does not match its schema. Nothing is written."""

    def __init__(self, message: str, errors: list[dict] | None = None):
        self.errors = errors or []
        super().__init__(message)


class EventLog:
    """Durable record of session events.

    ``append`` writes the event to ``<sessions_dir>/<session_id>/events.jsonl``
    before handing it to the broadcast bus, so the file order is authoritative
    even when a listener misses a message.
    """

    def __init__(self, sessions_dir: Path | str, bus: EventBus[str] | None = None):
        self.sessions_dir = Path(sessions_dir)
        self.bus: EventBus[str] = bus if bus is not None else EventBus()
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def path_for(self, session_id: str) -> Path:
        return self.sessions_dir / session_id / EVENTS_FILE

    def _lock_for(self, session_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(session_id)
            if lock is None:
                lock = self._locks[session_id] = threading.Lock()
            return lock

    def append(self, event: EventEnvelope | dict[str, Any]) -> EventEnvelope:
        """Validate, persist and broadcast one event."""
        envelope = self._validate(event)
        line = envelope.to_json()
        self._write(envelope.session_id, line)
        return self._publish(envelope, line)

    async def append_async(self, event: EventEnvelope | dict[str, Any]) -> EventEnvelope:
        """Like :meth:`append`, but the disk write runs in a worker thread.

        For callers on a latency-sensitive loop such as a live audio stream.
        """
        envelope = self._validate(event)
        line = envelope.to_json()
        await asyncio.to_thread(self._write, envelope.session_id, line)
        return self._publish(envelope, line)

    @staticmethod
    def _validate(event: EventEnvelope | dict[str, Any]) -> EventEnvelope:
        try:
            if isinstance(event, EventEnvelope):
                # Re-validate: envelopes are mutable after construction.
                return EventEnvelope.model_validate(event.model_dump())
            return EventEnvelope.model_validate(event)
        except ValidationError as e:
            raise EventValidationError(f"Invalid event: {e}", e.errors()) from e

    def _write(self, session_id: str, line: str) -> None:
        with self._lock_for(session_id):
            append_line(self.path_for(session_id), line)

    def _publish(self, envelope: EventEnvelope, line: str) -> EventEnvelope:
        reached = self.bus.publish(line)
        log_step(
            "Events",
            f"{envelope.type.value} appended "
            f"[dim]({envelope.session_id[:8]}, {reached} listener(s))[/dim]",
        )
        return envelope

    def replay(self, session_id: str) -> Iterator[EventEnvelope]:
        """Yield the session's events in the order they were written."""
        path = self.path_for(session_id)
        if not path.exists():
            return
        yield from read_events(path)


def read_events(path: Path | str) -> Iterator[EventEnvelope]:
    """Parse an events.jsonl file."""
    with open(path, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line:
                yield EventEnvelope.model_validate_json(line)
