"""Best-effort control of the recording tool's replay buffer."""

from __future__ import annotations

import asyncio
import base64
import binascii
from pathlib import Path

from streamclip.models.config import ObsConfig
from streamclip.obs.client import CONTROL_ERRORS, ControlClient, ObsWebSocketClient
from streamclip.obs.scan import find_latest_replay_buffer
from streamclip.utils.progress import log_error, log_step, log_success, log_warning
from streamclip.utils.retry import retry_connect

# Returned when the save request succeeded but no path was reported in time
OBS_MANAGED = "(obs-managed)"


class RecordingController:
    """Wraps a control client; every operation degrades instead of raising."""

    def __init__(self, client: ControlClient, config: ObsConfig | None = None):
        self.client = client
        self.config = config or ObsConfig()
        self._last_replay_buffer_path: str | None = None
        self._saved = asyncio.Event()
        self.client.on("ReplayBufferSaved", self._on_replay_buffer_saved)

    @classmethod
    def from_config(cls, config: ObsConfig) -> "RecordingController":
        client = ObsWebSocketClient(
            config.url,
            config.password,
            request_timeout=config.request_timeout_seconds,
        )
        return cls(client, config)

    @property
    def connected(self) -> bool:
        return self.client.identified

    @property
    def last_replay_buffer_path(self) -> str | None:
        return self._last_replay_buffer_path

    def _on_replay_buffer_saved(self, data: dict) -> None:
        path = data.get("savedReplayPath")
        if path:
            self._last_replay_buffer_path = path
            log_step("OBS", f"Replay buffer saved: {path}")
        self._saved.set()

    async def connect(self) -> bool:
        """Connect with retries. Returns False and stays disconnected on failure."""
        if self.connected:
            return True

        @retry_connect(self.config.connect_attempts)
        async def _attempt() -> None:
            await self.client.connect()

        try:
            await _attempt()
        except CONTROL_ERRORS as e:
            log_error(f"Could not connect to OBS at {self.config.url}: {e}")
            return False
        log_success(f"Connected to OBS at {self.config.url}")
        return True

    async def disconnect(self) -> None:
        try:
            await self.client.disconnect()
        except CONTROL_ERRORS as e:
            log_warning(f"Error while disconnecting from OBS: {e}")

    async def ensure_replay_buffer(self) -> bool:
        """Start the replay buffer if it is not already running."""
        try:
            status = await self.client.call("GetReplayBufferStatus")
            if status.get("outputActive"):
                return True
            await self.client.call("StartReplayBuffer")
        except CONTROL_ERRORS as e:
            log_warning(f"Could not ensure replay buffer is running: {e}")
            return False
        log_step("OBS", "Replay buffer started")
        return True

    async def save_replay_buffer(self) -> str | None:
        """Flush the replay buffer to disk.

        Returns the saved path when the notification arrives within the
        configured timeout, ``OBS_MANAGED`` when it does not, and None when
        the request itself failed.
        """
        self._last_replay_buffer_path = None
        self._saved.clear()
        try:
            await self.client.call("SaveReplayBuffer")
        except CONTROL_ERRORS as e:
            log_warning(f"Replay buffer save failed: {e}")
            return None

        timeout = self.config.save_notification_timeout_ms / 1000
        try:
            await asyncio.wait_for(self._saved.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            log_warning(f"No ReplayBufferSaved notification within {timeout:.1f}s")
        return self._last_replay_buffer_path or OBS_MANAGED

    async def take_screenshot(self, source_name: str, output_path: Path | str) -> bool:
        """Write one PNG frame of ``source_name`` to ``output_path``."""
        output_path = Path(output_path)
        try:
            response = await self.client.call(
                "GetSourceScreenshot",
                {"sourceName": source_name, "imageFormat": "png"},
            )
        except CONTROL_ERRORS as e:
            log_warning(f"Screenshot of {source_name!r} failed: {e}")
            return False

        image_data = response.get("imageData", "")
        # data:image/png;base64,<payload>
        _, _, encoded = image_data.partition(",")
        try:
            image = base64.b64decode(encoded or image_data, validate=True)
        except (binascii.Error, ValueError) as e:
            log_warning(f"Screenshot of {source_name!r} returned unreadable data: {e}")
            return False
        if not image:
            log_warning(f"Screenshot of {source_name!r} returned no image")
            return False

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_bytes(image)
        except OSError as e:
            log_warning(f"Could not write screenshot to {output_path}: {e}")
            return False
        return True

    def resolve_replay_buffer(self, provided: str | None = None) -> Path | None:
        """Pick the replay file to cut from.

        Order: the caller's path, the last notified path, then the newest
        recent file in the configured output directory.
        """
        for candidate in (provided, self._last_replay_buffer_path):
            if candidate and candidate != OBS_MANAGED and Path(candidate).is_file():
                return Path(candidate)
        if self.config.replay_output_dir:
            return find_latest_replay_buffer(
                self.config.replay_output_dir, self.config.scan_max_age_seconds
            )
        return None
