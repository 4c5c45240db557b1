"""Bounded retry around a single awaitable operation.

Two policies are used in this project:

- generation calls: exponential (``backoff=2``), retrying only on ``RateLimited``;
- the scheduled post job: fixed delay (``backoff=1``), retrying on any error.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from core.errors import RetryExhausted

log = logging.getLogger("vmfit.retry")

T = TypeVar("T")


async def call_with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    name: str,
    max_attempts: int = 3,
    delay: float = 0.0,
    backoff: float = 1.0,
    retry_on: Optional[Callable[[BaseException], bool]] = None,
    recorder: Any = None,
) -> T:
    """Run *operation* until it succeeds or *max_attempts* is reached.

    Each failure is recorded before deciding. Errors rejected by *retry_on* are
    re-raised at once. After the last attempt, ``RetryExhausted`` is raised with the
    last error attached.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")
    if delay < 0:
        raise ValueError("delay must be >= 0")

    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except Exception as e:
            if recorder is not None:
                await recorder.record(
                    "Retryable Call Failed",
                    {"operation": name, "attempt": attempt, "error": str(e)},
                    "warn",
                )
            else:
                log.warning("%s failed (attempt %d/%d): %s", name, attempt, max_attempts, e)

            if retry_on is not None and not retry_on(e):
                log.error("%s: non-retryable error, giving up: %s", name, e)
                raise

            if attempt == max_attempts:
                log.error("%s: failed after %d attempt(s).", name, max_attempts)
                raise RetryExhausted(name, attempt, e) from e

            wait = delay * (backoff ** (attempt - 1))
            log.info("%s: retry in %.1fs (attempt %d/%d).", name, wait, attempt, max_attempts)
            await asyncio.sleep(wait)
