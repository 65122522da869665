"""Provider interface, status and local events for streaming transcription."""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import AsyncIterator, Literal, Protocol, Union

from pydantic import BaseModel, Field
from websockets.exceptions import WebSocketException

from streamclip.events.bus import Subscription
from streamclip.models.transcript import TranscriptSegment

# Failures of the provider connection that trigger a reconnect
TRANSPORT_ERRORS = (OSError, asyncio.TimeoutError, WebSocketException)


class SttError(Exception):
    """Raised when a provider refuses to start."""


class ProviderStatus(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    TRANSCRIBING = "transcribing"
    RECONNECTING = "reconnecting"
    ERROR = "error"
    STOPPED = "stopped"


READY_STATES = (ProviderStatus.CONNECTED, ProviderStatus.TRANSCRIBING)


class SttStartConfig(BaseModel):
    """Per-run settings passed to ``start``."""

    session_id: str
    session_started_at_ms: int
    audio_source: Literal["obs", "microphone"] | None = None
    audio_device_name: str | None = None
    sample_rate: int | None = None  # falls back to SttConfig.sample_rate
    channels: int | None = None
    language: str | None = None
    enable_diarization: bool = True
    enable_interim_results: bool = True
    enable_punctuation: bool = True
    keywords: list[str] = Field(default_factory=list)


class StatusChangeEvent(BaseModel):
    type: Literal["status_change"] = "status_change"
    status: ProviderStatus
    message: str | None = None


class TranscriptEvent(BaseModel):
    type: Literal["transcript"] = "transcript"
    segment: TranscriptSegment


class SttErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    error: str
    code: str | None = None
    recoverable: bool


class ConnectionEvent(BaseModel):
    type: Literal["connection_opened", "connection_closed"]
    timestamp: int


class SpeechStartedEvent(BaseModel):
    type: Literal["speech_started"] = "speech_started"


class UtteranceEndEvent(BaseModel):
    type: Literal["utterance_end"] = "utterance_end"


SttEvent = Union[
    StatusChangeEvent,
    TranscriptEvent,
    SttErrorEvent,
    ConnectionEvent,
    SpeechStartedEvent,
    UtteranceEndEvent,
]


class TranscriptionTransport(Protocol):
    """One live connection to a transcription service."""

    async def connect(self) -> None: ...
    async def send_audio(self, data: bytes) -> None: ...
    async def keep_alive(self) -> None: ...
    async def close(self) -> None: ...

    def messages(self) -> AsyncIterator[dict]:
        """Decoded provider messages until the connection ends."""
        ...


class SttProvider(Protocol):
    name: str

    @property
    def status(self) -> ProviderStatus: ...

    async def start(self, start_config: SttStartConfig) -> None: ...
    async def stop(self) -> None: ...
    async def send_audio(self, data: bytes) -> None: ...
    def subscribe(self, maxsize: int | None = None) -> Subscription[SttEvent]: ...
    def is_ready(self) -> bool: ...
