"""Bounded exponential-backoff retry for remote calls"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from .config import DEFAULT_MAX_RETRIES, RETRY_BASE_DELAY
from .errors import TransientRemoteError, is_transient_error

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to retry a transient failure and how long to wait.

    The delay before retry ``n`` (1-based) is ``base_delay * 2 ** (n - 1)``.
    """
    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay: float = RETRY_BASE_DELAY

    def delay_for(self, attempt: int) -> float:
        return self.base_delay * (2 ** attempt)


DEFAULT_RETRY_POLICY = RetryPolicy()


async def with_retry(
    op: Callable[[], Awaitable[T]],
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    label: str = "remote call",
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """
    Run ``op`` and retry it on transient-overload failures.

    Args:
        op: Zero-argument coroutine factory; called once per attempt
        policy: Retry bound and base delay
        label: Name used in log lines
        sleep: Awaitable sleep, replaceable in tests

    Returns:
        Result of the first successful attempt

    Raises:
        TransientRemoteError: If every attempt failed with an overload signature
        Exception: Any non-transient error, immediately and unchanged
    """
    last_error = None
    for attempt in range(policy.max_retries + 1):
        try:
            return await op()
        except Exception as e:
            if not is_transient_error(e):
                raise
            last_error = e
            if attempt == policy.max_retries:
                break
            wait_time = policy.delay_for(attempt)
            logger.warning(
                f"[Retry] {label} overloaded ({e}), retry {attempt + 1}/{policy.max_retries} in {wait_time}s"
            )
            await sleep(wait_time)

    raise TransientRemoteError(
        f"{label} unavailable after {policy.max_retries} retries: {last_error}"
    ) from last_error
