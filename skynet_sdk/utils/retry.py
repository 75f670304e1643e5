"""
Bounded async retry with exponential backoff and jitter.

Used by the HTTP transport around single portal requests. Retries are always
bounded by an attempt count and, optionally, a total time budget, because a
request may run while a SkyDB entry lock is held and other writers are queued
behind it.

Example
-------
from skynet_sdk.utils.retry import aretry_call

result = await aretry_call(fetch, retries=3, base=0.2, max_delay=2.0,
                           retry_if=lambda e: getattr(e, "retryable", False))
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from typing import Any, Awaitable, Callable, Optional, Sequence, Tuple, Type, TypeVar, Union

__all__ = ["RetryError", "backoff_delay", "aretry_call"]

logger = logging.getLogger(__name__)

T = TypeVar("T")

class RetryError(RuntimeError):
    """Raised when all retry attempts are exhausted."""

    def __init__(self, last_exception: BaseException, attempts: int) -> None:
        super().__init__(f"exhausted after {attempts} attempts: {last_exception!r}")
        self.last_exception = last_exception
        self.attempts = attempts


def backoff_delay(attempt: int, *, base: float, max_delay: float) -> float:
    """
    Full-jitter backoff delay (in seconds) for the given attempt (1-based):
    U(0, min(base * 2**(attempt-1), max_delay)).
    """
    attempt = max(attempt, 1)
    cap = min(base * (2 ** (attempt - 1)), max_delay)
    return random.uniform(0.0, cap)


def _should_retry(
    exc: BaseException,
    exceptions: Tuple[Type[BaseException], ...],
    retry_if: Optional[Callable[[BaseException], bool]],
) -> bool:
    if not isinstance(exc, exceptions):
        return False
    if retry_if is not None:
        return bool(retry_if(exc))
    return True


async def aretry_call(
    fn: Callable[..., Awaitable[T]],
    *args: Any,
    retries: int = 3,
    base: float = 0.2,
    max_delay: float = 2.0,
    exceptions: Union[Type[BaseException], Sequence[Type[BaseException]]] = Exception,
    retry_if: Optional[Callable[[BaseException], bool]] = None,
    total_timeout: Optional[float] = None,
    **kwargs: Any,
) -> T:
    """
    Await `fn(*args, **kwargs)`, retrying up to `retries` times.

    Exceptions that do not match `exceptions` / `retry_if` propagate untouched.
    When the budget is spent a `RetryError` wrapping the last failure is raised.
    """
    if isinstance(exceptions, type):
        exc_types: Tuple[Type[BaseException], ...] = (exceptions,)
    else:
        exc_types = tuple(exceptions)

    deadline = time.monotonic() + total_timeout if total_timeout is not None else None

    attempt = 0
    while True:
        attempt += 1
        try:
            return await fn(*args, **kwargs)
        except Exception as exc:
            if not _should_retry(exc, exc_types, retry_if):
                raise
            if attempt > retries:
                raise RetryError(exc, attempts=attempt) from exc

            sleep_s = backoff_delay(attempt, base=base, max_delay=max_delay)
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise RetryError(exc, attempts=attempt) from exc
                sleep_s = min(sleep_s, remaining)

            logger.warning("attempt %d failed (%s); retrying in %.2fs", attempt, exc, sleep_s)
            await asyncio.sleep(sleep_s)
