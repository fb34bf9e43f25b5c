"""Retry helper for generic data operations."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog

from flip_platform.core.exceptions import AuthenticationError, AuthorizationError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Failure classes that a retry cannot fix
NON_RETRYABLE: tuple[type[BaseException], ...] = (AuthenticationError, AuthorizationError)


async def execute_with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 8.0,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
) -> T:
    """Run ``operation`` with capped exponential backoff.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        max_attempts: Total number of attempts (>= 1)
        base_delay: Delay before the second attempt, in seconds
        max_delay: Upper bound for any single delay
        retry_on: Exception types that trigger a retry

    Returns:
        The operation's result

    Raises:
        The last error once attempts are exhausted, or immediately for
        authentication/authorization failures.
    """
    attempt = 1
    while True:
        try:
            return await operation()
        except NON_RETRYABLE:
            raise
        except retry_on as e:
            if attempt >= max_attempts:
                logger.error(
                    "retry_exhausted",
                    attempts=attempt,
                    error=str(e),
                )
                raise

            wait_time = min(max_delay, base_delay * (2 ** (attempt - 1)))
            logger.warning(
                "retrying_operation",
                attempt=attempt,
                max_attempts=max_attempts,
                wait_time=wait_time,
                error=str(e),
            )
            await asyncio.sleep(wait_time)
            attempt += 1
