import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from loguru import logger

T = TypeVar("T")


async def retry_operation(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 1.0,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
) -> T:
    """
    Await `operation()` until it succeeds or `max_retries` attempts have failed.

    After failed attempt i (0-indexed) waits base_delay * 2**i seconds before the
    next one. The error of the last attempt is re-raised on exhaustion. Errors
    that do not match `retry_on` are raised immediately.
    """
    if max_retries < 1:
        raise ValueError(f"max_retries must be at least 1, got {max_retries}")

    for attempt in range(max_retries):
        try:
            return await operation()
        except retry_on as e:
            if attempt == max_retries - 1:
                logger.error(f"Operation failed after {max_retries} attempts: {e}")
                raise
            wait_time = base_delay * (2**attempt)
            logger.warning(
                f"Operation failed: {e}. Retrying in {wait_time}s... (Attempt {attempt + 1}/{max_retries})"
            )
            await asyncio.sleep(wait_time)

    # unreachable: the loop either returns or raises
    raise RuntimeError("retry_operation exited without a result")
