"""Deepgram live transcription over a WebSocket.

The provider is a small state machine::

    idle -> connecting -> connected <-> transcribing
                 ^             |
                 |             v  (unexpected close / failed connect)
                 +-------- reconnecting ---> error (attempts exhausted)

SpeechStarted moves connected to transcribing and UtteranceEnd moves it back.
``stop()`` is valid from every state and always ends in ``idle``.
"""

from __future__ import annotations

import asyncio
import json
from typing import AsyncIterator, Callable
from urllib.parse import urlencode

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed

from streamclip.events.bus import EventBus, Subscription
from streamclip.events.log import EventLog, EventValidationError
from streamclip.models.config import SttConfig
from streamclip.models.events import EventType, TranscriptSegmentPayload, make_event, now_ms
from streamclip.models.transcript import TranscriptSegment, Word
from streamclip.stt.base import (
    READY_STATES,
    TRANSPORT_ERRORS,
    ConnectionEvent,
    ProviderStatus,
    SpeechStartedEvent,
    StatusChangeEvent,
    SttError,
    SttErrorEvent,
    SttEvent,
    SttStartConfig,
    TranscriptEvent,
    TranscriptionTransport,
    UtteranceEndEvent,
)
from streamclip.stt.scheduling import ScheduledTask, backoff_delay_ms
from streamclip.utils.progress import log_error, log_step, log_warning

UTTERANCE_END_MS = 1000
ENDPOINTING_MS = 300
KEYWORD_BOOST = 2


def build_listen_url(config: SttConfig, start: SttStartConfig) -> str:
    """Query-string for the live listen endpoint."""
    params: list[tuple[str, str]] = [
        ("model", config.model),
        ("language", start.language or config.language),
        ("smart_format", _flag(config.smart_format)),
        ("punctuate", _flag(start.enable_punctuation)),
        ("diarize", _flag(start.enable_diarization)),
        ("interim_results", _flag(start.enable_interim_results)),
        ("utterance_end_ms", str(UTTERANCE_END_MS)),
        ("vad_events", "true"),
        ("encoding", "linear16"),
        ("sample_rate", str(start.sample_rate or config.sample_rate)),
        ("channels", str(start.channels or config.channels)),
        ("endpointing", str(ENDPOINTING_MS)),
    ]
    params.extend(("keywords", f"{k}:{KEYWORD_BOOST}") for k in start.keywords)
    return f"{config.endpoint_url}?{urlencode(params)}"


def _flag(value: bool) -> str:
    return "true" if value else "false"


def parse_results_message(message: dict, offset: float = 0.0) -> TranscriptSegment | None:
    """Turn a ``Results`` message into a segment, or None if it has no text.

    Word timings are used when present; ``offset`` shifts stream-relative
    seconds to session-relative ones.
    """
    alternatives = (message.get("channel") or {}).get("alternatives") or []
    if not alternatives:
        return None
    best = alternatives[0]
    text = (best.get("transcript") or "").strip()
    if not text:
        return None

    raw_words = best.get("words") or []
    if raw_words:
        t0 = raw_words[0].get("start", 0.0)
        t1 = raw_words[-1].get("end", t0)
    else:
        t0 = message.get("start") or 0.0
        t1 = t0 + (message.get("duration") or 0.0)

    speaker = raw_words[0].get("speaker") if raw_words else None
    words = [
        Word(
            word=w.get("word", ""),
            start=w.get("start", 0.0) + offset,
            end=w.get("end", 0.0) + offset,
            confidence=w.get("confidence", 0.0),
            speaker=w.get("speaker"),
            punctuated_word=w.get("punctuated_word"),
        )
        for w in raw_words
    ]
    return TranscriptSegment(
        speaker_id=f"speaker_{speaker}" if speaker is not None else None,
        text=text,
        t0=t0 + offset,
        t1=t1 + offset,
        confidence=best.get("confidence") or 0.0,
        is_final=message.get("is_final") is True,
        words=words,
    )


class DeepgramTransport:
    """``TranscriptionTransport`` over the Deepgram live WebSocket."""

    def __init__(self, url: str, api_key: str):
        self.url = url
        self.api_key = api_key
        self._ws: ClientConnection | None = None

    async def connect(self) -> None:
        self._ws = await connect(
            self.url,
            additional_headers={"Authorization": f"Token {self.api_key}"},
            open_timeout=None,
        )

    async def send_audio(self, data: bytes) -> None:
        if self._ws is not None:
            await self._ws.send(data)

    async def keep_alive(self) -> None:
        if self._ws is not None:
            await self._ws.send(json.dumps({"type": "KeepAlive"}))

    async def close(self) -> None:
        ws, self._ws = self._ws, None
        if ws is None:
            return
        try:
            await ws.send(json.dumps({"type": "CloseStream"}))
        except ConnectionClosed:
            pass
        await ws.close()

    async def messages(self) -> AsyncIterator[dict]:
        if self._ws is None:
            return
        async for raw in self._ws:
            if isinstance(raw, bytes):
                continue
            try:
                yield json.loads(raw)
            except ValueError:
                log_warning("Deepgram sent an unreadable message")


TransportFactory = Callable[[SttStartConfig], TranscriptionTransport]


class DeepgramProvider:
    """Streaming transcription with reconnect, keep-alive and diarization.

    Every segment goes to local subscribers; final segments are also
    appended to the session's event log as TRANSCRIPT_SEGMENT.
    """

    name = "deepgram"

    def __init__(
        self,
        config: SttConfig | None = None,
        *,
        event_log: EventLog | None = None,
        transport_factory: TransportFactory | None = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.config = config or SttConfig()
        self.event_log = event_log
        self._transport_factory = transport_factory or self._default_transport
        self._clock = clock
        self._events: EventBus[SttEvent] = EventBus(self.config.subscriber_queue_size)

        self._status = ProviderStatus.IDLE
        self._start_config: SttStartConfig | None = None
        self._transport: TranscriptionTransport | None = None
        self._reader: asyncio.Task | None = None
        self._keepalive: asyncio.Task | None = None
        self._reconnect: ScheduledTask | None = None
        self._attempts = 0
        self._generation = 0
        self._offset = 0.0

        if not self.config.api_key:
            log_warning("Deepgram API key not set (DEEPGRAM_API_KEY)")

    def _default_transport(self, start: SttStartConfig) -> TranscriptionTransport:
        return DeepgramTransport(build_listen_url(self.config, start), self.config.api_key or "")

    @property
    def status(self) -> ProviderStatus:
        return self._status

    @property
    def session_id(self) -> str | None:
        return self._start_config.session_id if self._start_config else None

    @property
    def reconnect_attempts(self) -> int:
        return self._attempts

    @property
    def pending_reconnect(self) -> ScheduledTask | None:
        task = self._reconnect
        return task if task is not None and not task.done() else None

    def is_ready(self) -> bool:
        return self._status in READY_STATES

    def subscribe(self, maxsize: int | None = None) -> Subscription[SttEvent]:
        return self._events.subscribe(maxsize, name="stt")

    def _emit(self, event: SttEvent) -> None:
        self._events.publish(event)

    def _set_status(self, status: ProviderStatus, message: str | None = None) -> None:
        self._status = status
        self._emit(StatusChangeEvent(status=status, message=message))
        log_step("STT", f"Status: {status.value}" + (f" - {message}" if message else ""))

    async def start(self, start_config: SttStartConfig) -> None:
        if self._status in READY_STATES:
            raise SttError("Deepgram is already connected; stop it first")
        if not self.config.api_key:
            raise SttError("Deepgram API key is required (set DEEPGRAM_API_KEY)")

        await self._teardown()
        self._generation += 1
        self._start_config = start_config
        self._attempts = 0
        await self._connect(self._generation)

    async def _connect(self, generation: int) -> None:
        if generation != self._generation or self._start_config is None:
            return
        self._set_status(ProviderStatus.CONNECTING)
        transport = self._transport_factory(self._start_config)
        self._transport = transport
        try:
            await asyncio.wait_for(
                transport.connect(), timeout=self.config.connect_timeout_seconds
            )
        except TRANSPORT_ERRORS as e:
            if generation != self._generation:
                return
            self._transport = None
            message = "Connection timeout" if isinstance(e, asyncio.TimeoutError) else str(e)
            log_error(f"Deepgram connect failed: {message}")
            self._emit(SttErrorEvent(
                error=message,
                recoverable=self._attempts < self.config.max_reconnect_attempts,
            ))
            await self._handle_reconnection(generation)
            return

        if generation != self._generation:
            # stopped while the socket was opening
            await self._close_transport(transport)
            return

        # Stream time 0 is now; shift transcripts to session time
        self._offset = max(0.0, (self._clock() - self._start_config.session_started_at_ms) / 1000)
        self._attempts = 0
        self._set_status(ProviderStatus.CONNECTED)
        self._emit(ConnectionEvent(type="connection_opened", timestamp=self._clock()))
        self._keepalive = asyncio.create_task(self._keepalive_loop(transport))
        self._reader = asyncio.create_task(self._read_loop(transport, generation))

    async def _read_loop(self, transport: TranscriptionTransport, generation: int) -> None:
        try:
            async for message in transport.messages():
                await self._handle_message(message)
        except TRANSPORT_ERRORS as e:
            log_warning(f"Deepgram connection error: {e}")

        if generation != self._generation:
            return
        log_step("STT", "Connection closed")
        self._emit(ConnectionEvent(type="connection_closed", timestamp=self._clock()))
        self._cancel_keepalive()
        self._transport = None
        self._reader = None
        await self._handle_reconnection(generation)

    async def _handle_reconnection(self, generation: int) -> None:
        if generation != self._generation:
            return
        if self._status in (ProviderStatus.STOPPED, ProviderStatus.IDLE):
            return

        if self._attempts >= self.config.max_reconnect_attempts:
            self._set_status(ProviderStatus.ERROR, "Max reconnection attempts reached")
            self._emit(SttErrorEvent(error="Max reconnection attempts reached", recoverable=False))
            return

        self._set_status(ProviderStatus.RECONNECTING)
        self._attempts += 1
        delay_ms = backoff_delay_ms(
            self._attempts, self.config.reconnect_base_ms, self.config.reconnect_max_ms
        )
        log_step(
            "STT",
            f"Reconnecting in {delay_ms}ms "
            f"(attempt {self._attempts}/{self.config.max_reconnect_attempts})",
        )
        self._reconnect = ScheduledTask(
            delay_ms / 1000,
            lambda: self._connect(generation),
            name="deepgram-reconnect",
        )

    async def _keepalive_loop(self, transport: TranscriptionTransport) -> None:
        interval = self.config.keepalive_interval_seconds
        while True:
            await asyncio.sleep(interval)
            if self._status not in READY_STATES:
                continue
            try:
                await transport.keep_alive()
            except TRANSPORT_ERRORS as e:
                log_warning(f"Deepgram keep-alive failed: {e}")

    async def _handle_message(self, message: dict) -> None:
        kind = message.get("type")
        if kind == "Results":
            segment = parse_results_message(message, self._offset)
            if segment is not None:
                await self._on_segment(segment)
        elif kind == "SpeechStarted":
            if self._status != ProviderStatus.TRANSCRIBING:
                self._set_status(ProviderStatus.TRANSCRIBING)
            self._emit(SpeechStartedEvent())
        elif kind == "UtteranceEnd":
            if self._status == ProviderStatus.TRANSCRIBING:
                self._set_status(ProviderStatus.CONNECTED)
            self._emit(UtteranceEndEvent())
        elif kind == "Metadata":
            log_step("STT", f"Metadata: {json.dumps(message)[:200]}")

    async def _on_segment(self, segment: TranscriptSegment) -> None:
        self._emit(TranscriptEvent(segment=segment))
        session_id = self.session_id
        if not segment.is_final or self.event_log is None or session_id is None:
            return
        payload = TranscriptSegmentPayload(
            speaker_id=segment.speaker_id,
            text=segment.text,
            t0=segment.t0,
            t1=segment.t1,
            confidence=segment.confidence,
        )
        try:
            await self.event_log.append_async(
                make_event(session_id, EventType.TRANSCRIPT_SEGMENT, payload)
            )
        except (EventValidationError, OSError) as e:
            log_error(f"Could not record transcript segment: {e}")

    async def send_audio(self, data: bytes) -> None:
        """Forward audio while connected; dropped otherwise."""
        if self._status not in READY_STATES or self._transport is None:
            return
        try:
            await self._transport.send_audio(data)
        except TRANSPORT_ERRORS as e:
            log_warning(f"Error sending audio: {e}")

    async def stop(self) -> None:
        self._generation += 1
        self._set_status(ProviderStatus.STOPPED)
        await self._teardown()
        self._start_config = None
        self._attempts = 0
        self._set_status(ProviderStatus.IDLE)
        log_step("STT", "Stopped")

    def _cancel_keepalive(self) -> None:
        if self._keepalive is not None:
            self._keepalive.cancel()
            self._keepalive = None

    async def _teardown(self) -> None:
        if self._reconnect is not None:
            self._reconnect.cancel()
            self._reconnect = None
        self._cancel_keepalive()
        reader, self._reader = self._reader, None
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
        transport, self._transport = self._transport, None
        if transport is not None:
            await self._close_transport(transport)

    async def _close_transport(self, transport: TranscriptionTransport) -> None:
        try:
            await transport.close()
        except TRANSPORT_ERRORS as e:
            log_warning(f"Error closing Deepgram connection: {e}")
