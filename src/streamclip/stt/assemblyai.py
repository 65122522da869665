"""AssemblyAI real-time transcription provider (stub)."""

from __future__ import annotations

from streamclip.models.config import SttConfig


class AssemblyAIProvider:
    """Streaming transcription via AssemblyAI."""

    name = "assemblyai"

    def __init__(self, config: SttConfig | None = None, **kwargs) -> None:
        # Would implement:
        # 1. Fetch a temporary token
        # 2. Open wss://api.assemblyai.com/v2/realtime/ws
        # 3. Map PartialTranscript / FinalTranscript to segments
        raise NotImplementedError(
            "AssemblyAI provider not yet implemented. "
            "Use stt.provider='deepgram' in config."
        )
