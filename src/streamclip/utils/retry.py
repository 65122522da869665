"""Retry decorators using tenacity."""

from __future__ import annotations

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)


def retry_connect(max_attempts: int = 3, *, max_wait: float = 4.0):
    """Retry decorator for establishing network connections.

    Only transient socket-level failures are retried; the last exception is
    re-raised once attempts are exhausted.
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=max_wait),
        retry=retry_if_exception_type((TimeoutError, ConnectionError, OSError)),
        reraise=True,
    )
