"""Fixed-attempt retry helper for News Signal Bot."""

import time
from collections.abc import Callable
from typing import TypeVar

from .logging_config import ExecutionLogger

T = TypeVar("T")


def retry(
    attempts: int,
    delay: float,
    fn: Callable[[], T],
    logger: ExecutionLogger | None = None,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
) -> T:
    """Call fn until it returns without raising, at most `attempts` times.

    Waits a fixed `delay` seconds between attempts (never after the last one).

    Args:
        attempts: Maximum number of calls (values below 1 are treated as 1)
        delay: Seconds to sleep between attempts
        fn: Zero-argument callable to invoke
        logger: Optional logger for per-attempt warnings
        retry_on: Exception types that trigger another attempt

    Returns:
        The first successful result

    Raises:
        The exception from the last attempt when every attempt fails
    """
    attempts = max(1, attempts)

    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except retry_on as e:
            if logger:
                logger.warning(
                    f"Attempt {attempt}/{attempts} failed: {e}",
                    attempt=attempt,
                    error=str(e),
                )
            if attempt == attempts:
                raise
            time.sleep(delay)
