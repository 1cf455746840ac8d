import asyncio
import logging
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def backoff_delay(attempt: int, base_delay: float, max_delay: Optional[float] = None) -> float:
    """Delay before retrying after failed attempt number ``attempt`` (1-based)."""
    delay = base_delay * (2 ** (attempt - 1))
    if max_delay is not None:
        delay = min(delay, max_delay)
    return delay


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    base_delay: float = 2.0,
    max_delay: Optional[float] = None,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    give_up_on: Tuple[Type[BaseException], ...] = (),
    description: str = "operation",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run ``operation`` up to ``max_attempts`` times with exponential backoff.

    Exceptions listed in ``give_up_on`` propagate immediately. Anything in
    ``retry_on`` is retried; the last one is re-raised once attempts run out.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")
    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except give_up_on:
            raise
        except retry_on as e:
            if attempt == max_attempts:
                logger.error(f"{description} failed after {max_attempts} attempt(s): {e}")
                raise
            delay = backoff_delay(attempt, base_delay, max_delay)
            logger.warning(f"{description} attempt {attempt}/{max_attempts} failed: {e}; retrying in {delay:.1f}s")
            await sleep(delay)
    raise AssertionError("unreachable")
