"""Retry logic with exponential backoff"""

import asyncio
from typing import Awaitable, Callable, Optional

from loguru import logger

from .backoff import backoff_delay
from .config import (
    DEFAULT_BACKOFF_BASE_MS,
    DEFAULT_MAX_RETRIES,
    RATE_LIMIT_STATUS,
    SERVER_ERROR_STATUS,
)
from .exceptions import CircuitOpenError, HttpStatusError, RequestTimeoutError
from .models import ErrorType

RETRYABLE_ERROR_TYPES = frozenset({ErrorType.TRANSIENT, ErrorType.RATE_LIMIT})


async def retry_with_backoff(
    func: Callable[..., Awaitable],
    *args,
    max_retries: int = DEFAULT_MAX_RETRIES,
    backoff_base_ms: int = DEFAULT_BACKOFF_BASE_MS,
    on_retry: Optional[Callable[[int, Exception], Awaitable[None]]] = None,
    sleep: Callable[[float], Awaitable] = asyncio.sleep,
    **kwargs,
):
    """
    Execute function with exponential backoff retry logic.

    Only retryable failures (timeouts, 429, 5xx) are retried; anything else
    propagates from the attempt that raised it. When the budget runs out the
    last error is re-raised unchanged.

    Args:
        func: Async function to execute
        max_retries: Maximum number of retry attempts
        backoff_base_ms: Delay after the first failure, doubled per attempt
        on_retry: Optional callback called on each retry: on_retry(attempt, error)
        sleep: Coroutine used to wait between attempts (seconds)
    """
    attempt = 0

    while True:
        try:
            result = await func(*args, **kwargs)

            if attempt > 0:
                logger.success(f"✓ Recovered after {attempt} retries")

            return result

        except Exception as e:
            error_type = classify_error(e)

            if error_type not in RETRYABLE_ERROR_TYPES:
                raise

            if attempt >= max_retries:
                logger.error(f"❌ Failed after {max_retries} retries: {e}")
                raise

            delay_ms = backoff_delay(attempt, backoff_base_ms)
            logger.warning(
                f"⚠️ Attempt {attempt + 1}/{max_retries + 1} failed "
                f"({error_type.value}): {e}"
            )
            logger.info(f"   Retrying in {delay_ms}ms...")

            if on_retry:
                await on_retry(attempt, e)

            await sleep(delay_ms / 1000)
            attempt += 1


def classify_error(error: Exception) -> ErrorType:
    """Classify error for appropriate handling"""
    if isinstance(error, CircuitOpenError):
        return ErrorType.CIRCUIT_OPEN
    elif isinstance(error, RequestTimeoutError):
        return ErrorType.TRANSIENT
    elif isinstance(error, HttpStatusError):
        if error.status == RATE_LIMIT_STATUS:
            return ErrorType.RATE_LIMIT
        elif error.status >= SERVER_ERROR_STATUS:
            return ErrorType.TRANSIENT
        else:
            return ErrorType.PERMANENT
    else:
        return ErrorType.PERMANENT


def is_retryable(error: Exception) -> bool:
    return classify_error(error) in RETRYABLE_ERROR_TYPES
