"""Retry logic with exponential backoff for generation API calls."""

import asyncio
import logging
import os
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)

# Jitter keeps parallel requests from hammering a rate-limited API in lockstep
JITTER_MIN_MULTIPLIER = 0.5
JITTER_MAX_MULTIPLIER = 1.5

RETRYABLE_STATUS_CODES = {429, 503}
RETRYABLE_MESSAGE_MARKERS = (
    "rate limit",
    "rate_limit",
    "resource_exhausted",
    "resource exhausted",
    "overloaded",
    "server is busy",
)


def get_status_code(error: BaseException) -> Optional[int]:
    """HTTP status carried by an SDK or httpx error, if any"""
    status = getattr(error, "status_code", None)
    if isinstance(status, int):
        return status
    response = getattr(error, "response", None)
    status = getattr(response, "status_code", None)
    return status if isinstance(status, int) else None


def is_retryable_error(error: BaseException) -> bool:
    """True for rate-limit and server-busy responses; everything else is terminal"""
    if get_status_code(error) in RETRYABLE_STATUS_CODES:
        return True
    message = str(error).lower()
    return any(marker in message for marker in RETRYABLE_MESSAGE_MARKERS)


@dataclass
class RetryConfig:
    """Retry configuration."""

    max_attempts: int = 3
    initial_delay: float = 1.0  # seconds
    max_delay: float = 30.0  # seconds
    exponential_base: float = 2.0
    jitter: bool = True
    is_retryable: Callable[[BaseException], bool] = field(default=is_retryable_error)

    @classmethod
    def from_env(cls) -> "RetryConfig":
        return cls(
            max_attempts=int(os.getenv("GATEWAY_MAX_ATTEMPTS", "3")),
            initial_delay=float(os.getenv("GATEWAY_INITIAL_DELAY", "1.0")),
        )


class RetryExhaustedError(Exception):
    """Raised when all retry attempts are exhausted."""

    pass


async def retry_with_backoff(
    func: Callable[[], Awaitable[T]], config: Optional[RetryConfig] = None
) -> T:
    """
    Retry an async function with exponential backoff.

    Only errors accepted by `config.is_retryable` are retried; any other error
    propagates immediately.

    Args:
        func: Async function to retry
        config: Retry configuration

    Returns:
        Result of successful function call

    Raises:
        RetryExhaustedError: If all retry attempts fail
    """
    config = config or RetryConfig()
    last_exception: Optional[Exception] = None

    for attempt in range(config.max_attempts):
        try:
            result = await func()
            if attempt > 0:
                logger.info(f"Retry succeeded on attempt {attempt + 1}")
            return result

        except Exception as e:
            if not config.is_retryable(e):
                raise

            last_exception = e

            if attempt + 1 >= config.max_attempts:
                logger.error(
                    f"All retry attempts exhausted ({config.max_attempts} attempts)"
                )
                break

            delay = min(
                config.initial_delay * (config.exponential_base**attempt),
                config.max_delay,
            )
            if config.jitter:
                delay = delay * random.uniform(JITTER_MIN_MULTIPLIER, JITTER_MAX_MULTIPLIER)

            logger.warning(
                f"Attempt {attempt + 1}/{config.max_attempts} failed: {e}. "
                f"Retrying in {delay:.2f}s..."
            )

            await asyncio.sleep(delay)

    raise RetryExhaustedError(
        f"Failed after {config.max_attempts} attempts"
    ) from last_exception
