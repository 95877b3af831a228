"""Retry logic for mutating remote calls."""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.stop import stop_base

from ..errors import matches_signature

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff settings for mutating calls.

    Args:
        max_attempts: Attempts before giving up (None: until the timeout)
        min_wait: Minimum wait time between retries (seconds)
        max_wait: Maximum wait time between retries (seconds)
    """
    max_attempts: Optional[int] = None
    min_wait: float = 1
    max_wait: float = 10


class stop_at_deadline(stop_base):
    """Stop once ``clock`` reaches ``deadline``."""

    def __init__(self, deadline: float, clock: Callable[[], float] = time.monotonic):
        self.deadline = deadline
        self.clock = clock

    def __call__(self, retry_state) -> bool:
        return self.clock() >= self.deadline


async def call_with_retry(
    func: Callable[[], Awaitable[T]],
    signatures: tuple[str, ...],
    timeout: float,
    policy: RetryPolicy = RetryPolicy(),
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    description: str = "remote call",
    clock: Callable[[], float] = time.monotonic,
) -> T:
    """Call ``func``, retrying errors that match a transient signature.

    Retries stop once ``timeout`` seconds have passed on ``clock`` (or the
    attempt limit is hit). The call then gets exactly one final attempt
    whose outcome is returned or raised as-is. Errors that match no
    signature are raised immediately.

    Args:
        func: Zero-argument coroutine function issuing the call
        signatures: Error codes or message fragments worth retrying
        timeout: Retry window in seconds
        policy: Backoff settings
        sleep: Async sleep used between attempts
        description: Label for log messages
        clock: Monotonic clock the retry window is measured on
    """
    stop = stop_at_deadline(clock() + timeout, clock)
    if policy.max_attempts is not None:
        stop = stop | stop_after_attempt(policy.max_attempts)

    retrying = AsyncRetrying(
        stop=stop,
        wait=wait_exponential(multiplier=1, min=policy.min_wait, max=policy.max_wait),
        retry=retry_if_exception(lambda e: matches_signature(e, signatures)),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        sleep=sleep,
        reraise=False,
    )

    try:
        return await retrying(func)
    except RetryError as e:
        logger.warning(
            f"{description}: retries exhausted ({e.last_attempt.exception()}), "
            f"making one final attempt"
        )
        return await func()
