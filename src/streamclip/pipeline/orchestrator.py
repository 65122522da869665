"""Capture orchestration: sessions, clips, frames and transcription."""

from __future__ import annotations

import uuid
from pathlib import Path

from pydantic import BaseModel, Field

from streamclip.clipping.extract import ClipRequest, extract_clip
from streamclip.events.bus import EventBus
from streamclip.events.log import EventLog
from streamclip.media.ffmpeg import MediaError, MediaRunner
from streamclip.models.config import CaptureConfig
from streamclip.models.events import (
    ArtifactClipPayload,
    ArtifactFramePayload,
    ClipIntentPayload,
    EventType,
    SessionEndPayload,
    SessionStartPayload,
    make_event,
)
from streamclip.models.media import ErrorInfo
from streamclip.models.session import Session, SessionStartRequest
from streamclip.obs.controller import RecordingController
from streamclip.session.registry import DEFAULT_CLIP_SECONDS, SessionRegistry
from streamclip.stt.base import SttStartConfig
from streamclip.stt.manager import SttManager, SttStatus
from streamclip.utils.progress import log, log_step, log_success, log_warning

FRAMES_DIR = "frames"


class ClipResult(BaseModel):
    """Outcome of closing a clip window.

    ``saved`` is whether the replay buffer save request went through;
    ``trimmed`` is whether a clip file was produced.
    """

    artifact_id: str
    t0: float
    t1: float
    saved: bool = False
    trimmed: bool = False
    replay_buffer_path: str | None = None
    clip_path: str | None = None
    thumbnail_path: str | None = None
    clip_duration: float | None = None
    error: ErrorInfo | None = None
    warnings: list[str] = Field(default_factory=list)


class FrameResult(BaseModel):
    ok: bool
    artifact_id: str | None = None
    path: str | None = None
    t: float | None = None
    error: ErrorInfo | None = None


class SessionSummary(BaseModel):
    session_id: str
    started_at_ms: int
    ended_at_ms: int
    duration: float  # seconds
    clip_count: int


class SessionStatus(BaseModel):
    active: bool
    session: Session | None = None
    elapsed: float | None = None


class MediaStatus(BaseModel):
    ffmpeg: bool
    ffprobe: bool
    ready: bool
    ffmpeg_path: str
    ffprobe_path: str


class CaptureService:
    """The operations exposed to the API layer and the CLI.

    Collaborators are built from ``config`` unless passed in.
    """

    def __init__(
        self,
        config: CaptureConfig | None = None,
        *,
        registry: SessionRegistry | None = None,
        event_log: EventLog | None = None,
        controller: RecordingController | None = None,
        runner: MediaRunner | None = None,
        stt: SttManager | None = None,
    ):
        self.config = config or CaptureConfig()
        self.registry = registry or SessionRegistry()
        self.event_log = event_log or EventLog(
            self.config.sessions_dir, EventBus(self.config.broadcast.queue_size)
        )
        self.controller = controller or RecordingController.from_config(self.config.obs)
        self.runner = runner or MediaRunner(
            self.config.media.ffmpeg_path, self.config.media.ffprobe_path
        )
        self.stt = stt or SttManager(self.config.stt, event_log=self.event_log)

    @property
    def bus(self) -> EventBus[str]:
        return self.event_log.bus

    def session_dir(self, session_id: str) -> Path:
        return Path(self.config.sessions_dir) / session_id

    async def connect(self) -> bool:
        """Connect to the recording tool; the service works without it."""
        return await self.controller.connect()

    # -- sessions --------------------------------------------------------

    async def start_session(self, request: SessionStartRequest) -> Session:
        session = self.registry.start(request)
        try:
            self.session_dir(session.id).mkdir(parents=True, exist_ok=True)

            await self.controller.ensure_replay_buffer()

            self.event_log.append(make_event(
                session.id,
                EventType.SESSION_START,
                SessionStartPayload(
                    session_id=session.id,
                    workflow=session.workflow.value,
                    title=session.title,
                ),
                ts=session.started_at_ms,
            ))
        except BaseException:
            # Free the slot; the session never started.
            self.registry.stop()
            raise
        log(f"[bold]Session started[/bold] {session.id} ({session.workflow.value})")
        return session

    async def stop_session(self) -> SessionSummary:
        session = self.registry.require()

        if self.stt.status().session_id == session.id:
            await self.stt.stop()

        ended_at = self.registry.now_ms()
        summary = SessionSummary(
            session_id=session.id,
            started_at_ms=session.started_at_ms,
            ended_at_ms=ended_at,
            duration=max(0.0, (ended_at - session.started_at_ms) / 1000),
            clip_count=session.clip_count,
        )
        self.event_log.append(make_event(
            session.id,
            EventType.SESSION_END,
            SessionEndPayload(
                session_id=session.id,
                duration=summary.duration,
                clip_count=summary.clip_count,
            ),
            ts=ended_at,
        ))
        self.registry.stop()
        log_success(
            f"Session {session.id} ended after {summary.duration:.1f}s "
            f"with {summary.clip_count} clip(s)"
        )
        return summary

    def session_status(self) -> SessionStatus:
        session = self.registry.active
        if session is None:
            return SessionStatus(active=False)
        return SessionStatus(
            active=True,
            session=session,
            elapsed=session.elapsed_seconds(self.registry.now_ms()),
        )

    # -- clips -----------------------------------------------------------

    def clip_start(
        self,
        t: float | None = None,
        *,
        source: str = "api",
        confidence: float | None = None,
    ) -> float:
        """Open a clip window at ``t`` (default: now). Returns ``t``."""
        session = self.registry.require()
        t = self.registry.mark_clip_start(t)
        self.event_log.append(make_event(
            session.id,
            EventType.CLIP_INTENT_START,
            ClipIntentPayload(t=t, source=source, confidence=confidence),
        ))
        return t

    async def clip_end(
        self,
        t: float | None = None,
        *,
        source: str = "api",
        confidence: float | None = None,
        replay_buffer_path: str | None = None,
    ) -> ClipResult:
        """Close the clip window and cut it out of the replay buffer.

        Steps run strictly in order:
        1. Append CLIP_INTENT_END
        2. Save the replay buffer
        3. Resolve the buffer file (given path, notified path, directory scan)
        4. Extract clip + thumbnail
        5. Append ARTIFACT_CLIP_CREATED (only when a clip was produced)

        Extraction failures are reported on the result, not raised.
        """
        session = self.registry.require()
        t0, t1 = self.registry.close_clip(t, default_length=DEFAULT_CLIP_SECONDS)
        self.event_log.append(make_event(
            session.id,
            EventType.CLIP_INTENT_END,
            ClipIntentPayload(t=t1, source=source, confidence=confidence),
        ))

        result = ClipResult(artifact_id=str(uuid.uuid4()), t0=t0, t1=t1)

        requested_at = self.registry.now_ms()
        saved_path = await self.controller.save_replay_buffer()
        result.saved = saved_path is not None
        result.replay_buffer_path = saved_path
        if not result.saved:
            result.warnings.append("Replay buffer save failed")

        buffer_path = self.controller.resolve_replay_buffer(replay_buffer_path)
        if buffer_path is None:
            result.warnings.append("No replay buffer file available; clip not extracted")
            log_warning(f"Clip {result.artifact_id} recorded without a file")
            return result
        result.replay_buffer_path = str(buffer_path)

        media = self.config.media
        request = ClipRequest(
            replay_buffer_path=str(buffer_path),
            t0=t0,
            t1=t1,
            session_dir=str(self.session_dir(session.id)),
            artifact_id=result.artifact_id,
            session_started_at_ms=session.started_at_ms,
            replay_buffer_saved_at_ms=requested_at,
            replay_buffer_seconds=self.config.obs.replay_buffer_seconds,
            format=media.clip_format,
            profile=media.profile,
            thumbnail_width=media.thumbnail_width,
            thumbnail_quality=media.thumbnail_quality,
        )
        try:
            artifact = await extract_clip(self.runner, request)
        except MediaError as e:
            log_warning(f"Clip {result.artifact_id} not extracted [{e.code.value}]: {e}")
            result.error = ErrorInfo(message=str(e), code=e.code.value)
            return result

        result.trimmed = True
        result.clip_path = artifact.clip_path
        result.thumbnail_path = artifact.thumbnail_path
        result.clip_duration = artifact.duration_seconds
        if artifact.thumbnail_error is not None:
            result.warnings.append(f"Thumbnail not created: {artifact.thumbnail_error.message}")

        self.registry.record_clip()
        self.event_log.append(make_event(
            session.id,
            EventType.ARTIFACT_CLIP_CREATED,
            ArtifactClipPayload(
                artifact_id=artifact.artifact_id,
                path=artifact.clip_path,
                t0=t0,
                t1=t1,
                thumbnail_path=artifact.thumbnail_path,
                duration=artifact.duration_seconds,
                profile=artifact.profile,
                format=Path(artifact.clip_path).suffix.lstrip("."),
            ),
        ))
        return result

    async def take_frame(self, source_name: str) -> FrameResult:
        """Save a still of ``source_name`` into the session's frames dir."""
        if not source_name:
            raise ValueError("source_name is required")
        session = self.registry.require()
        artifact_id = str(uuid.uuid4())
        path = self.session_dir(session.id) / FRAMES_DIR / f"{artifact_id}.png"
        t = session.elapsed_seconds(self.registry.now_ms())

        if not await self.controller.take_screenshot(source_name, path):
            return FrameResult(
                ok=False,
                error=ErrorInfo(message=f"Screenshot of {source_name!r} failed"),
            )

        self.event_log.append(make_event(
            session.id,
            EventType.ARTIFACT_FRAME_CREATED,
            ArtifactFramePayload(
                artifact_id=artifact_id, path=str(path), t=t, source_name=source_name
            ),
        ))
        log_step("Frame", f"Captured {source_name} → {path}")
        return FrameResult(ok=True, artifact_id=artifact_id, path=str(path), t=t)

    # -- transcription ---------------------------------------------------

    async def stt_start(
        self,
        *,
        provider: str | None = None,
        language: str | None = None,
        keywords: list[str] | None = None,
        diarization: bool = True,
        interim_results: bool = True,
        sample_rate: int | None = None,
        channels: int | None = None,
    ) -> SttStatus:
        session = self.registry.require()
        start_config = SttStartConfig(
            session_id=session.id,
            session_started_at_ms=session.started_at_ms,
            language=language,
            keywords=keywords or [],
            enable_diarization=diarization,
            enable_interim_results=interim_results,
            sample_rate=sample_rate,
            channels=channels,
        )
        await self.stt.start(start_config, provider)
        return self.stt.status()

    async def stt_stop(self) -> SttStatus:
        await self.stt.stop()
        return self.stt.status()

    def stt_status(self) -> SttStatus:
        return self.stt.status()

    async def send_audio(self, data: bytes) -> None:
        await self.stt.send_audio(data)

    # -- media & lifecycle -----------------------------------------------

    async def media_status(self) -> MediaStatus:
        tools = await self.runner.availability()
        return MediaStatus(
            ffmpeg=tools.ffmpeg,
            ffprobe=tools.ffprobe,
            ready=tools.ready,
            ffmpeg_path=self.runner.ffmpeg_path,
            ffprobe_path=self.runner.ffprobe_path,
        )

    async def shutdown(self) -> None:
        if self.registry.active is not None:
            await self.stop_session()
        await self.stt.stop()
        await self.controller.disconnect()
