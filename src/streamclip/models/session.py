"""Capture session models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class Workflow(str, Enum):
    STREAMER = "streamer"
    WRITERS_ROOM = "writers_room"
    BRAINSTORM = "brainstorm"
    DEBATE = "debate"
    PODCAST = "podcast"


class CaptureMode(str, Enum):
    AUDIO = "audio"
    VIDEO = "video"
    AV = "av"


class Participant(BaseModel):
    """A participant in the capture session."""

    id: str
    name: str


class SessionStartRequest(BaseModel):
    """Parameters for starting a capture session."""

    session_id: str | None = None
    workflow: Workflow = Workflow.STREAMER
    capture_mode: CaptureMode = CaptureMode.AV
    title: str | None = None
    participants: list[Participant] = Field(default_factory=list)


class Session(BaseModel):
    """The single active capture session.

    Everything except ``clip_start_mark`` is fixed at creation.
    """

    id: str
    workflow: Workflow
    capture_mode: CaptureMode
    title: str | None = None
    participants: list[Participant] = Field(default_factory=list)
    started_at_ms: int
    clip_start_mark: float | None = None
    clip_count: int = 0

    def elapsed_seconds(self, now_ms: int) -> float:
        return max(0.0, (now_ms - self.started_at_ms) / 1000.0)
