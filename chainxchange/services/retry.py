import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from chainxchange.core.config import settings
from chainxchange.core.exceptions import RateLimitedError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryPolicy:
    """Bounded retry that only waits out upstream rate limits.

    A ``RateLimitedError`` sleeps for the provider's ``retry_after`` hint and
    tries again; every attempt, rate limited or not, counts toward
    ``max_attempts``. Any other error is raised on the spot.
    """

    def __init__(
        self,
        max_attempts: Optional[int] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.max_attempts = max_attempts if max_attempts is not None else settings.COINGECKO_MAX_ATTEMPTS
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._sleep = sleep

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        last_error: Optional[RateLimitedError] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                return await operation()
            except RateLimitedError as e:
                last_error = e
                if attempt == self.max_attempts:
                    break
                logger.warning(
                    f"Rate limited (attempt {attempt}/{self.max_attempts}), "
                    f"retrying in {e.retry_after}s"
                )
                await self._sleep(e.retry_after)

        logger.error(f"Giving up after {self.max_attempts} rate-limited attempts")
        raise last_error
