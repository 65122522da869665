"""Registry for the single active capture session."""

from __future__ import annotations

import threading
import uuid
from typing import Callable

from streamclip.models.events import now_ms
from streamclip.models.session import Session, SessionStartRequest

DEFAULT_CLIP_SECONDS = 30.0


class SessionError(RuntimeError):
    """Base class for session lifecycle errors."""


class SessionAlreadyActiveError(SessionError):
    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session already active: {session_id}")


class NoActiveSessionError(SessionError):
    def __init__(self) -> None:
        super().__init__("No active session")


class SessionRegistry:
    """Holds at most one Session.

    Creation is a compare-and-set under a lock, so two concurrent starts
    cannot both succeed.
    """

    def __init__(self, clock: Callable[[], int] = now_ms):
        self._clock = clock
        self._lock = threading.Lock()
        self._session: Session | None = None

    @property
    def active(self) -> Session | None:
        return self._session

    def require(self) -> Session:
        session = self._session
        if session is None:
            raise NoActiveSessionError()
        return session

    def now_ms(self) -> int:
        return self._clock()

    def start(self, request: SessionStartRequest) -> Session:
        with self._lock:
            if self._session is not None:
                raise SessionAlreadyActiveError(self._session.id)
            self._session = Session(
                id=request.session_id or str(uuid.uuid4()),
                workflow=request.workflow,
                capture_mode=request.capture_mode,
                title=request.title,
                participants=list(request.participants),
                started_at_ms=self._clock(),
            )
            return self._session

    def stop(self) -> Session:
        """Clear and return the active session."""
        with self._lock:
            session = self.require()
            self._session = None
            return session

    def elapsed_seconds(self) -> float:
        return self.require().elapsed_seconds(self._clock())

    def mark_clip_start(self, t: float | None = None) -> float:
        """Open a highlight window. A pending mark is overwritten."""
        with self._lock:
            session = self.require()
            if t is None:
                t = session.elapsed_seconds(self._clock())
            if t < 0:
                raise ValueError(f"Clip start must be non-negative: {t}")
            session.clip_start_mark = float(t)
            return session.clip_start_mark

    def close_clip(
        self,
        t: float | None = None,
        *,
        default_length: float = DEFAULT_CLIP_SECONDS,
    ) -> tuple[float, float]:
        """Close the highlight window and return ``(t0, t1)``.

        Without a pending mark the window defaults to the ``default_length``
        seconds before ``t1``.
        """
        with self._lock:
            session = self.require()
            t1 = session.elapsed_seconds(self._clock()) if t is None else float(t)
            if t1 < 0:
                raise ValueError(f"Clip end must be non-negative: {t1}")
            mark = session.clip_start_mark
            t0 = mark if mark is not None else max(0.0, t1 - default_length)
            session.clip_start_mark = None
            return t0, t1

    def record_clip(self) -> None:
        with self._lock:
            if self._session is not None:
                self._session.clip_count += 1
