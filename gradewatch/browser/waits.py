"""Race several page conditions and keep the first one that becomes true."""

import asyncio
from collections.abc import Awaitable, Mapping
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


async def first_ready(
    waiters: Mapping[str, Awaitable[Any]],
    timeout: float,
) -> str | None:
    """Wait for the first of several named awaitables to succeed.

    Every awaitable is scheduled as a task. The name of the first one to
    finish without raising is returned and all others are cancelled. A waiter
    that raises is dropped from the race.

    Args:
        waiters: Mapping of name to awaitable (coroutine, task or future).
        timeout: Deadline in seconds for the whole race.

    Returns:
        Name of the winning waiter, or None if every waiter failed before
        the deadline.

    Raises:
        asyncio.TimeoutError: If nothing succeeded before the deadline.
    """
    tasks = {asyncio.ensure_future(aw): name for name, aw in waiters.items()}
    pending = set(tasks)
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout

    try:
        while pending:
            remaining = deadline - loop.time()
            if remaining <= 0:
                break

            done, pending = await asyncio.wait(
                pending, timeout=remaining, return_when=asyncio.FIRST_COMPLETED
            )
            winner = None
            for task in done:
                if task.cancelled():
                    continue
                error = task.exception()
                if error is None:
                    winner = winner or tasks[task]
                else:
                    logger.debug(
                        "race_waiter_failed", waiter=tasks[task], error=str(error)
                    )
            if winner is not None:
                return winner

        if not pending:
            return None

        raise asyncio.TimeoutError(
            f"None of {sorted(waiters)} became ready within {timeout}s"
        )

    finally:
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
