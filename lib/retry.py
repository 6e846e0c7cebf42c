import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from lib.logger import setup_logger

logger = setup_logger(__name__)

T = TypeVar("T")


@dataclass
class RetryResult(Generic[T]):
    succeeded: bool
    attempts: int
    value: T | None = None
    error: str | None = None


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    attempts: int,
    delay: float,
    accept: Callable[[T], bool] | None = None,
    label: str = "operation",
) -> RetryResult[T]:
    """
    Run an async operation up to `attempts` times with a fixed delay in between.

    Intermediate failures are logged, never raised. An attempt fails when the
    operation raises or when `accept` rejects its return value.

    Args:
        operation: Zero-argument coroutine factory; called once per attempt
        attempts: Maximum number of attempts
        delay: Seconds to sleep between attempts (not after the last one)
        accept: Optional predicate deciding whether a returned value is good enough
        label: Human-readable name used in log lines

    Returns:
        RetryResult with the accepted value, or the last error message
    """
    value: T | None = None
    last_error: str | None = None

    for attempt in range(1, attempts + 1):
        try:
            value = await operation()
        except Exception as e:
            last_error = str(e) or e.__class__.__name__
            logger.warning(f"{label} attempt {attempt}/{attempts} failed: {last_error}")
        else:
            if accept is None or accept(value):
                if attempt > 1:
                    logger.info(f"{label} succeeded on attempt {attempt}/{attempts}")
                return RetryResult(succeeded=True, attempts=attempt, value=value)
            last_error = f"{label} returned an unacceptable result"
            logger.warning(f"{label} attempt {attempt}/{attempts} rejected")

        if attempt < attempts:
            await asyncio.sleep(delay)

    return RetryResult(succeeded=False, attempts=attempts, value=value, error=last_error)
