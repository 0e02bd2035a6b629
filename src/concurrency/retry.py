# src/concurrency/retry.py — v1
"""Quote-call retry policy with exponential backoff.

Retryable: timeouts, network failures, HTTP 429/500/503. Everything
else, validation and mapping errors in particular, fails on the first
attempt. Delay before retry n (0-based) is base_delay * 2**n.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, TypeVar

from rateshop.core.errors import RETRYABLE_STATUS_CODES, RateShopError, RetryExhausted

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class RetryConfig:
    max_retries: int = 2
    base_delay_s: float = 1.0
    backoff_factor: float = 2.0
    jitter: bool = False


@dataclass(frozen=True)
class RetryOutcome(Generic[T]):
    value: T
    attempts: int

    @property
    def retried(self) -> bool:
        return self.attempts > 1


def classify_error(error: BaseException) -> str | None:
    """Map an exception to a retryable class, or None when it must fail fast."""
    if isinstance(error, RateShopError):
        if not error.retryable:
            return None
        status = getattr(error, "status_code", None)
        if status == 429:
            return "rate_limit"
        if status in RETRYABLE_STATUS_CODES:
            return "server_error"
        msg = str(error).lower()
        return "timeout" if "timeout" in msg else "network"

    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return "timeout"
    if isinstance(error, ConnectionError):
        return "network"

    # Foreign exceptions from carrier integrations: classify by message
    msg = str(error).lower()
    if "timeout" in msg or "timed out" in msg:
        return "timeout"
    if "network" in msg:
        return "network"
    if "429" in msg:
        return "rate_limit"
    if "500" in msg or "503" in msg:
        return "server_error"
    return None


def is_retryable(error: BaseException) -> bool:
    return classify_error(error) is not None


def compute_delay(config: RetryConfig, attempt: int) -> float:
    """Compute delay for a given retry (0-based)."""
    delay = config.base_delay_s * (config.backoff_factor ** attempt)
    if config.jitter:
        delay *= 0.5 + random.random()  # noqa: S311
    return delay


async def with_retry(
    op: Callable[[], Awaitable[T]],
    config: RetryConfig | None = None,
    *,
    label: str = "operation",
    sleep: Sleep = asyncio.sleep,
) -> RetryOutcome[T]:
    """Execute an async operation, retrying retryable failures.

    Returns:
        RetryOutcome with the value and the number of attempts made.

    Raises:
        RetryExhausted: on a non-retryable failure or when retries run out.
            Carries the last error and the attempt count.
    """
    cfg = config or RetryConfig()
    attempts = 0

    while True:
        attempts += 1
        try:
            value = await op()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            kind = classify_error(e)
            retries_used = attempts - 1
            if kind is None or retries_used >= cfg.max_retries:
                if kind is not None:
                    logger.warning(
                        "%s: %s, giving up after %d attempt(s)", label, kind, attempts,
                    )
                raise RetryExhausted(e, attempts) from e

            delay = compute_delay(cfg, retries_used)
            logger.warning(
                "%s: %s (attempt %d/%d), retrying in %.2fs",
                label, kind, attempts, cfg.max_retries + 1, delay,
            )
            await sleep(delay)
            continue
        return RetryOutcome(value=value, attempts=attempts)
