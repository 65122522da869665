"""streamclip run — an interactive live capture session."""

from __future__ import annotations

import asyncio
from pathlib import Path

import click

from streamclip.events.server import ListenerServer
from streamclip.models.config import CaptureConfig
from streamclip.models.session import CaptureMode, SessionStartRequest, Workflow
from streamclip.pipeline.orchestrator import CaptureService, ClipResult
from streamclip.stt.audio import pcm_chunks, pcm_format
from streamclip.stt.base import SttError
from streamclip.utils.progress import log, log_error, log_step, log_success, log_warning

CHUNK_MS = 100

HELP = "[s] clip start  [e] clip end  [f] frame  [t] status  [q] quit"


async def _stream_audio(service: CaptureService, audio_file: Path) -> None:
    """Feed a file to the transcription provider at real-time pace."""
    for chunk in pcm_chunks(audio_file, CHUNK_MS):
        await service.send_audio(chunk)
        await asyncio.sleep(CHUNK_MS / 1000)
    log_step("Audio", f"Finished streaming {audio_file.name}")


def _report_clip(result: ClipResult) -> None:
    window = f"[{result.t0:.1f}s → {result.t1:.1f}s]"
    if result.trimmed:
        log_success(f"Clip {result.artifact_id[:8]} {window}: {result.clip_path}")
    elif result.error:
        log_error(f"Clip {window} not extracted [{result.error.code}]: {result.error.message}")
    for warning in result.warnings:
        log_warning(warning)


async def _run(
    config: CaptureConfig,
    request: SessionStartRequest,
    audio_file: Path | None,
    frame_source: str | None,
    use_stt: bool,
) -> None:
    service = CaptureService(config)
    server = ListenerServer(
        service.bus,
        config.broadcast.host,
        config.broadcast.port,
        queue_size=config.broadcast.queue_size,
    )
    await server.start()
    await service.connect()

    session = await service.start_session(request)
    stream_task: asyncio.Task | None = None
    try:
        if use_stt and audio_file is not None:
            fmt = pcm_format(audio_file)
            try:
                await service.stt_start(sample_rate=fmt.sample_rate, channels=fmt.channels)
            except (SttError, NotImplementedError) as e:
                log_error(f"Transcription not started: {e}")
            else:
                stream_task = asyncio.create_task(_stream_audio(service, audio_file))

        log(f"Session [cyan]{session.id}[/cyan] live. {HELP}")
        while True:
            key = await asyncio.to_thread(
                click.prompt, "streamclip", default="", show_default=False
            )
            key = key.strip().lower()
            if key == "s":
                t = service.clip_start()
                log_step("Clip", f"Start marked at {t:.1f}s")
            elif key == "e":
                _report_clip(await service.clip_end())
            elif key == "f":
                if not frame_source:
                    log_warning("No frame source configured (use --frame-source)")
                    continue
                frame = await service.take_frame(frame_source)
                if frame.ok:
                    log_success(f"Frame saved: {frame.path}")
                else:
                    log_error(frame.error.message if frame.error else "Frame failed")
            elif key == "t":
                status = service.session_status()
                stt = service.stt_status()
                log(
                    f"Elapsed {status.elapsed or 0:.1f}s, "
                    f"clips {status.session.clip_count if status.session else 0}, "
                    f"STT {stt.status or 'off'}"
                )
            elif key == "q":
                break
            elif key:
                log(HELP)
    finally:
        if stream_task is not None:
            stream_task.cancel()
        await service.shutdown()
        await server.stop()


@click.command()
@click.option(
    "--workflow",
    type=click.Choice([w.value for w in Workflow]),
    default=Workflow.STREAMER.value,
    help="Session workflow",
)
@click.option(
    "--capture-mode",
    type=click.Choice([m.value for m in CaptureMode]),
    default=CaptureMode.AV.value,
)
@click.option("--title", default=None, help="Session title")
@click.option("--session-id", default=None, help="Session id (default: random UUID)")
@click.option(
    "--audio-file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Audio file streamed to transcription (16-bit PCM)",
)
@click.option("--frame-source", default=None, help="OBS source captured by [f]")
@click.option("--no-stt", is_flag=True, help="Do not start transcription")
@click.pass_obj
def run_cmd(
    config: CaptureConfig,
    workflow: str,
    capture_mode: str,
    title: str | None,
    session_id: str | None,
    audio_file: str | None,
    frame_source: str | None,
    no_stt: bool,
) -> None:
    """Run a live capture session with clip hotkeys."""
    request = SessionStartRequest(
        session_id=session_id,
        workflow=Workflow(workflow),
        capture_mode=CaptureMode(capture_mode),
        title=title,
    )
    try:
        asyncio.run(_run(
            config,
            request,
            Path(audio_file) if audio_file else None,
            frame_source,
            not no_stt,
        ))
    except KeyboardInterrupt:
        log_warning("Interrupted")
        raise SystemExit(130)
