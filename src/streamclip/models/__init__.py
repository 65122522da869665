"""Pydantic data models for streamclip."""

from streamclip.models.config import (
    BroadcastConfig,
    CaptureConfig,
    MediaConfig,
    ObsConfig,
    SttConfig,
)
from streamclip.models.events import EventEnvelope, EventType, make_event
from streamclip.models.media import BufferOffsets, ClipArtifact, ErrorInfo
from streamclip.models.session import Session, SessionStartRequest
from streamclip.models.transcript import TranscriptSegment, Word

__all__ = [
    "BroadcastConfig",
    "CaptureConfig",
    "MediaConfig",
    "ObsConfig",
    "SttConfig",
    "EventEnvelope",
    "EventType",
    "make_event",
    "BufferOffsets",
    "ClipArtifact",
    "ErrorInfo",
    "Session",
    "SessionStartRequest",
    "TranscriptSegment",
    "Word",
]
