"""Cancellable delayed work and reconnect backoff."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable


def backoff_delay_ms(attempt: int, base_ms: int = 1000, cap_ms: int = 30000) -> int:
    """Delay before reconnect ``attempt`` (1-based): ``min(base * 2^(n-1), cap)``."""
    if attempt < 1:
        raise ValueError(f"attempt must be >= 1, got {attempt}")
    return min(base_ms * 2 ** (attempt - 1), cap_ms)


class ScheduledTask:
    """Runs ``action`` after ``delay`` seconds unless cancelled first."""

    def __init__(
        self,
        delay: float,
        action: Callable[[], Awaitable[None]],
        *,
        name: str | None = None,
    ):
        self.delay = delay
        self._action = action
        self._fired = False
        self._task = asyncio.create_task(self._run(), name=name)

    async def _run(self) -> None:
        await asyncio.sleep(self.delay)
        self._fired = True
        await self._action()

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def cancelled(self) -> bool:
        return self._task.cancelled()

    def done(self) -> bool:
        return self._task.done()

    def cancel(self) -> None:
        """Abort the task; a no-op once it has finished."""
        if not self._task.done():
            self._task.cancel()

    async def wait(self) -> None:
        await self._task
