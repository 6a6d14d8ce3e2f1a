"""Bounded retry with a fixed delay for flaky async operations."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    delay: float = 2.0,
    *,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    description: str = "operation",
) -> T:
    """Run ``operation`` until it succeeds or ``max_attempts`` is reached.

    Args:
        operation: Zero-argument callable returning a fresh awaitable per attempt.
        max_attempts: Total number of attempts, including the first one.
        delay: Seconds to sleep between attempts. The delay does not grow.
        retry_on: Exception types that trigger another attempt. Anything
            else propagates immediately.
        description: Name used in log events.

    Returns:
        The result of the first successful attempt.

    Raises:
        ValueError: If max_attempts is less than 1.
        Exception: The error from the last attempt, unchanged.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except retry_on as e:
            if attempt >= max_attempts:
                logger.warning(
                    "retry_attempts_exhausted",
                    operation=description,
                    attempts=attempt,
                    error=str(e),
                )
                raise

            logger.warning(
                "retry_attempt_failed",
                operation=description,
                attempt=attempt,
                max_attempts=max_attempts,
                delay_seconds=delay,
                error=str(e),
            )
            await asyncio.sleep(delay)

    raise AssertionError("unreachable")
