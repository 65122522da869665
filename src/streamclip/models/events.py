"""Event envelope models — the canonical record written to the session log."""

from __future__ import annotations

import time
import uuid
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel


class EventType(str, Enum):
    SESSION_START = "SESSION_START"
    SESSION_END = "SESSION_END"
    TRANSCRIPT_SEGMENT = "TRANSCRIPT_SEGMENT"
    MOMENT_MARKER = "MOMENT_MARKER"
    CLIP_INTENT_START = "CLIP_INTENT_START"
    CLIP_INTENT_END = "CLIP_INTENT_END"
    ARTIFACT_CLIP_CREATED = "ARTIFACT_CLIP_CREATED"
    ARTIFACT_FRAME_CREATED = "ARTIFACT_FRAME_CREATED"
    OUTPUT_CREATED = "OUTPUT_CREATED"
    OUTPUT_VALIDATED = "OUTPUT_VALIDATED"


class WireModel(BaseModel):
    """Base for models serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class SessionStartPayload(WireModel):
    session_id: str
    workflow: str
    title: str | None = None


class SessionEndPayload(WireModel):
    session_id: str
    duration: float | None = None
    clip_count: int | None = None
    output_count: int | None = None


class TranscriptSegmentPayload(WireModel):
    speaker_id: str | None = None
    text: str
    t0: float
    t1: float
    confidence: float | None = None


class MomentMarkerPayload(WireModel):
    label: str
    t: float
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    notes: str | None = None


class ClipIntentPayload(WireModel):
    t: float = Field(ge=0.0)
    source: Literal["gesture", "voice", "button", "api"] = "api"
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)


class ArtifactClipPayload(WireModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    artifact_id: str
    path: str
    t0: float
    t1: float
    thumbnail_artifact_id: str | None = None
    thumbnail_path: str | None = None
    duration: float | None = None


class ArtifactFramePayload(WireModel):
    artifact_id: str
    path: str
    t: float
    source_name: str | None = None


class OutputPayload(WireModel):
    output_id: str
    category: str
    title: str | None = None
    text: str
    refs: list[str] = Field(default_factory=list)
    meta: dict[str, Any] = Field(default_factory=dict)


class OutputValidatedPayload(WireModel):
    output_id: str
    ok: bool
    issues: list[str] = Field(default_factory=list)


PAYLOAD_MODELS: dict[EventType, type[WireModel]] = {
    EventType.SESSION_START: SessionStartPayload,
    EventType.SESSION_END: SessionEndPayload,
    EventType.TRANSCRIPT_SEGMENT: TranscriptSegmentPayload,
    EventType.MOMENT_MARKER: MomentMarkerPayload,
    EventType.CLIP_INTENT_START: ClipIntentPayload,
    EventType.CLIP_INTENT_END: ClipIntentPayload,
    EventType.ARTIFACT_CLIP_CREATED: ArtifactClipPayload,
    EventType.ARTIFACT_FRAME_CREATED: ArtifactFramePayload,
    EventType.OUTPUT_CREATED: OutputPayload,
    EventType.OUTPUT_VALIDATED: OutputValidatedPayload,
}


class Observability(WireModel):
    """Tracing identifiers attached to an event."""

    provider: str = "opik"
    trace_id: str | None = None
    span_id: str | None = None
    url: str | None = None


class EventEnvelope(WireModel):
    """A typed, timestamped record appended to a session log."""

    id: str
    session_id: str = Field(min_length=1)
    ts: int = Field(ge=0)
    type: EventType
    payload: dict[str, Any]
    observability: Observability | None = None

    @model_validator(mode="after")
    def _check_payload(self) -> "EventEnvelope":
        model = PAYLOAD_MODELS[self.type]
        try:
            model.model_validate(self.payload)
        except ValidationError as exc:
            fields = ", ".join(
                ".".join(str(p) for p in err["loc"]) or "payload"
                for err in exc.errors()
            )
            raise ValueError(f"invalid {self.type.value} payload ({fields})") from exc
        return self

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


def now_ms() -> int:
    return int(time.time() * 1000)


def make_event(
    session_id: str,
    event_type: EventType,
    payload: WireModel | dict[str, Any],
    *,
    ts: int | None = None,
    observability: Observability | None = None,
) -> EventEnvelope:
    """Build an envelope with a fresh id and the current timestamp."""
    if isinstance(payload, WireModel):
        payload = payload.to_wire()
    return EventEnvelope(
        id=str(uuid.uuid4()),
        session_id=session_id,
        ts=now_ms() if ts is None else ts,
        type=event_type,
        payload=payload,
        observability=observability,
    )
