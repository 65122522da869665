"""Owner of the single active transcription provider."""

from __future__ import annotations

import asyncio
from typing import Callable

from pydantic import BaseModel

from streamclip.events.log import EventLog
from streamclip.models.config import SttConfig
from streamclip.stt.assemblyai import AssemblyAIProvider
from streamclip.stt.base import SttError, SttProvider, SttStartConfig
from streamclip.stt.deepgram import DeepgramProvider
from streamclip.stt.whisper import WhisperProvider
from streamclip.utils.progress import log_step

ProviderFactory = Callable[..., SttProvider]

PROVIDERS: dict[str, ProviderFactory] = {
    "deepgram": DeepgramProvider,
    "assemblyai": AssemblyAIProvider,
    "whisper": WhisperProvider,
}


class SttStatus(BaseModel):
    active: bool
    provider: str | None = None
    status: str | None = None
    session_id: str | None = None


class SttManager:
    """Creates, starts and stops one provider at a time.

    Creation, start and stop are serialized by an ``asyncio.Lock``;
    ``send_audio`` is not, so audio never waits behind a reconnect.
    """

    def __init__(
        self,
        config: SttConfig | None = None,
        *,
        event_log: EventLog | None = None,
        factories: dict[str, ProviderFactory] | None = None,
    ):
        self.config = config or SttConfig()
        self.event_log = event_log
        self._factories = dict(factories or PROVIDERS)
        self._provider: SttProvider | None = None
        self._lock = asyncio.Lock()

    @property
    def provider(self) -> SttProvider | None:
        return self._provider

    def list_providers(self) -> list[str]:
        return list(self._factories)

    def is_available(self, name: str) -> bool:
        """Whether ``name`` is implemented and has credentials configured."""
        if name == "deepgram":
            return bool(self.config.api_key)
        return False

    async def create_provider(self, name: str | None = None) -> SttProvider:
        async with self._lock:
            return await self._create(name)

    async def _create(self, name: str | None) -> SttProvider:
        name = name or self.config.provider
        factory = self._factories.get(name)
        if factory is None:
            raise SttError(
                f"Unknown STT provider: {name} (expected one of {', '.join(self._factories)})"
            )
        if self._provider is not None:
            await self._provider.stop()
            self._provider = None
        self._provider = factory(self.config, event_log=self.event_log)
        log_step("STT", f"Provider created: {name}")
        return self._provider

    async def start(self, start_config: SttStartConfig, provider: str | None = None) -> SttProvider:
        async with self._lock:
            current = self._provider
            if current is None or (provider is not None and provider != current.name):
                current = await self._create(provider)
            await current.start(start_config)
            return current

    async def stop(self) -> None:
        async with self._lock:
            if self._provider is not None:
                await self._provider.stop()
                self._provider = None

    async def send_audio(self, data: bytes) -> None:
        provider = self._provider
        if provider is not None:
            await provider.send_audio(data)

    def status(self) -> SttStatus:
        provider = self._provider
        if provider is None:
            return SttStatus(active=False)
        return SttStatus(
            active=True,
            provider=provider.name,
            status=provider.status.value,
            session_id=getattr(provider, "session_id", None),
        )
