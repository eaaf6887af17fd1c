"""
Retry utilities with exponential backoff and jitter for outbound calls.
"""

import asyncio
import errno
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

import httpx

from refashion.core.exceptions import RetryExhaustedError
from refashion.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

RETRYABLE_HTTP_CODES = {429, 500, 502, 503, 504}

TRANSIENT_MESSAGE_MARKERS = (
    "overloaded",
    "rate limit",
    "UNAVAILABLE",
    "RESOURCE_EXHAUSTED",
    "DEADLINE_EXCEEDED",
    "INTERNAL",
)

NETWORK_ERROR_CODES = {"ENOTFOUND", "ECONNRESET", "ETIMEDOUT", "ECONNREFUSED", "ENETUNREACH"}

NETWORK_ERRNOS = {
    errno.ECONNRESET,
    errno.ETIMEDOUT,
    errno.ECONNREFUSED,
    errno.ENETUNREACH,
}

NETWORK_ERROR_TYPES = (httpx.TransportError, ConnectionError, TimeoutError, asyncio.TimeoutError)

JITTER_RATIO = 0.25


@dataclass(frozen=True)
class RetryOptions:
    """Backoff configuration. Delays are in seconds."""

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    backoff_multiplier: float = 2.0
    jitter: bool = True


# Calls prone to provider-side overload (Gemini, Fal.ai submission)
HIGH_TOLERANCE_RETRY = RetryOptions(
    max_retries=4,
    base_delay=2.0,
    max_delay=60.0,
    backoff_multiplier=2.0,
    jitter=True,
)

# Generic HTTP calls
STANDARD_RETRY = RetryOptions(
    max_retries=3,
    base_delay=1.0,
    max_delay=10.0,
    backoff_multiplier=2.0,
    jitter=True,
)


def _status_of(error: BaseException) -> Optional[int]:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    for attr in ("status", "status_code"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    return None


def is_retryable_error(error: BaseException) -> bool:
    """
    Decide whether an error is transient and worth another attempt.

    Args:
        error: The exception raised by the operation

    Returns:
        True if the operation should be retried
    """
    status = _status_of(error)
    if status in RETRYABLE_HTTP_CODES:
        return True

    code = getattr(error, "code", None)
    if isinstance(code, int) and code in RETRYABLE_HTTP_CODES:
        return True
    if isinstance(code, str) and code in NETWORK_ERROR_CODES:
        return True

    message = str(error)
    if any(marker in message for marker in TRANSIENT_MESSAGE_MARKERS):
        return True

    if isinstance(error, OSError) and error.errno in NETWORK_ERRNOS:
        return True

    if isinstance(error, NETWORK_ERROR_TYPES):
        return True

    return False


def calculate_delay(
    attempt: int,
    options: RetryOptions,
    rng: Callable[[], float] = random.random,
) -> float:
    """
    Compute the wait before a retry attempt.

    Args:
        attempt: Attempt number being scheduled (1 for the first retry)
        options: Backoff configuration
        rng: Source of uniform numbers in [0, 1)

    Returns:
        Delay in seconds, never negative
    """
    if attempt <= 0:
        return 0.0

    delay = options.base_delay * (options.backoff_multiplier ** (attempt - 1))
    delay = min(delay, options.max_delay)

    if options.jitter:
        jitter_amount = delay * JITTER_RATIO
        delay += (rng() - 0.5) * 2 * jitter_amount

    return max(delay, 0.0)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    options: Optional[RetryOptions] = None,
    context: str = "API call",
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """
    Run an async operation with bounded retries and exponential backoff.

    Args:
        operation: Zero-argument callable returning an awaitable
        options: Backoff configuration (defaults to RetryOptions())
        context: Name of the operation, used in logs and in the final error
        sleep: Awaitable sleep used between attempts

    Returns:
        Result of the first successful attempt

    Raises:
        RetryExhaustedError: If every attempt failed or a non-retryable error occurred
    """
    options = options or RetryOptions()
    max_attempts = options.max_retries + 1
    last_error: Optional[BaseException] = None
    attempts_made = 0

    for attempt in range(max_attempts):
        if attempt > 0:
            delay = calculate_delay(attempt, options)
            logger.info(
                "Retrying operation",
                context=context,
                attempt=attempt + 1,
                max_attempts=max_attempts,
                delay_seconds=round(delay, 3),
            )
            await sleep(delay)

        attempts_made = attempt + 1
        try:
            result = await operation()
        except Exception as exc:
            last_error = exc
            logger.warning(
                "Operation attempt failed",
                context=context,
                attempt=attempts_made,
                max_attempts=max_attempts,
                error=str(exc),
            )

            if not is_retryable_error(exc):
                logger.info("Error is not retryable", context=context, attempt=attempts_made)
                break

            if attempts_made == max_attempts:
                logger.info("Max attempts reached", context=context, max_attempts=max_attempts)
            continue

        if attempt > 0:
            logger.info(
                "Operation succeeded after retry",
                context=context,
                attempt=attempts_made,
                max_attempts=max_attempts,
            )
        return result

    logger.error(
        "Operation failed",
        context=context,
        attempts=attempts_made,
        error=str(last_error),
    )
    raise RetryExhaustedError(context, attempts_made, last_error) from last_error


async def with_gemini_retry(
    operation: Callable[[], Awaitable[T]],
    context: str = "Gemini API call",
) -> T:
    """Retry wrapper for calls prone to provider overload."""
    return await with_retry(operation, HIGH_TOLERANCE_RETRY, context)


async def with_http_retry(
    operation: Callable[[], Awaitable[T]],
    context: str = "HTTP API call",
) -> T:
    """Retry wrapper for general HTTP API calls."""
    return await with_retry(operation, STANDARD_RETRY, context)
