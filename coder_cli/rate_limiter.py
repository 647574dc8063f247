"""Retry with exponential backoff and jitter for model requests."""

import asyncio
import random
from typing import Awaitable, Callable, TypeVar

import structlog

from coder_cli.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")


class RateLimiter:
    """Run an async operation, retrying failures with exponential backoff.

    The delay before retry ``n`` (1-indexed) is ``base_delay * 2 ** (n - 1)``
    plus up to 50% additive jitter. An operation is attempted at most
    ``max_retries + 1`` times; the last exception is re-raised unchanged.
    """

    def __init__(
        self,
        base_delay: float = 1.0,
        max_retries: int = 5,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: random.Random | None = None,
        logger: structlog.BoundLogger | None = None,
    ):
        """Initialize the limiter.

        Args:
            base_delay: Base delay in seconds
            max_retries: Retries after the first attempt
            sleep: Awaitable sleep function (injectable for tests)
            rng: Random source used for jitter
            logger: Optional logger override
        """
        if base_delay < 0:
            raise ValueError("base_delay must be non-negative")
        if max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        self.base_delay = base_delay
        self.max_retries = max_retries
        self._sleep = sleep
        self._rng = rng or random.Random()
        self.log = logger or log

    def exponential_delay(self, retry_count: int) -> float:
        """Backoff term without jitter for a 1-indexed retry."""
        return self.base_delay * (2 ** (retry_count - 1))

    def calculate_delay(self, retry_count: int) -> float:
        """Backoff delay with jitter for a 1-indexed retry."""
        exponential = self.exponential_delay(retry_count)
        jitter = self._rng.uniform(0, exponential * 0.5)
        return exponential + jitter

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        context: str = "API call",
    ) -> T:
        """Await ``operation()``, retrying on any exception.

        Raises:
            The last exception raised by ``operation`` once retries are spent
        """
        retries = 0
        while True:
            try:
                return await operation()
            except Exception as exc:
                retries += 1
                if retries > self.max_retries:
                    self.log.error(
                        "Max retries exceeded",
                        context=context,
                        max_retries=self.max_retries,
                        error=str(exc),
                    )
                    raise

                delay = self.calculate_delay(retries)
                self.log.warning(
                    "Retrying after failure",
                    context=context,
                    attempt=retries,
                    max_retries=self.max_retries,
                    delay_seconds=round(delay, 3),
                    error=str(exc),
                )
                await self._sleep(delay)
