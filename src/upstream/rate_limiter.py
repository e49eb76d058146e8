"""Concurrency limiter for upstream race platform calls."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

logger = logging.getLogger(__name__)


class UpstreamLimiter:
    """Bounds the number of in-flight requests to the upstream platform.

    The upstream has no documented rate limit, so instead of reading quota
    headers we cap concurrency. Every participant walk runs in parallel but
    each page request has to pass through the same semaphore.
    """

    def __init__(self, max_concurrency: int = 8):
        """Initialize limiter.

        Parameters
        ----------
        max_concurrency : int
            Maximum number of simultaneous upstream requests (>= 1)
        """
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.max_concurrency = max_concurrency
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._in_flight = 0

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """Hold one request slot for the duration of the block."""
        if self._semaphore.locked():
            logger.debug(
                f"Upstream limiter saturated ({self.max_concurrency} in flight), waiting"
            )
        async with self._semaphore:
            self._in_flight += 1
            try:
                yield
            finally:
                self._in_flight -= 1
