"""Result cache for ranking computations.

Short-TTL memoization keyed by view and date parameters. Values are derived
data only: anything stored here can be recomputed at any time, and failures
are never written back.
"""

import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Optional

from loguru import logger

from src.config import get_settings
from src.core.lifespan import manager

settings = get_settings()


def make_cache_key(view: str, *parts: object) -> str:
    """Build a deterministic cache key, e.g. ``weekly_2025-10-13_2025-10-19``."""
    return "_".join([view, *(str(part) for part in parts)])


class RankingCache:
    """In-process TTL cache shared by all ranking views.

    The event loop is single threaded, so plain dict reads and writes are
    safe across concurrent requests; the last writer wins.
    """

    def __init__(
        self,
        default_ttl: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Create an empty cache.

        Parameters
        ----------
        default_ttl : float
            Seconds an entry stays fresh when ``set`` gets no explicit ttl
        clock : callable
            Monotonic time source (injectable for tests)
        """
        self.default_ttl = default_ttl
        self._clock = clock
        self._data: dict[str, tuple[float, Any]] = {}

    def __len__(self) -> int:
        return len(self._data)

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None on a miss or expired entry."""
        entry = self._data.get(key)
        if entry is None:
            return None

        expires_at, value = entry
        if self._clock() >= expires_at:
            self._data.pop(key, None)
            logger.debug("Cache entry expired", key=key)
            return None

        logger.debug("Cache hit", key=key)
        return value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store a value for ``ttl`` seconds (default: ``default_ttl``)."""
        ttl = self.default_ttl if ttl is None else ttl
        self._data[key] = (self._clock() + ttl, value)
        logger.debug("Cache entry written", key=key, ttl=ttl)

    def clear(self) -> None:
        """Drop every entry (used after adjustment writes)."""
        count = len(self._data)
        self._data.clear()
        if count:
            logger.info("Ranking cache cleared", entries=count)


@manager.add
@asynccontextmanager
async def cache_lifespan() -> AsyncIterator[dict]:
    """
    Create the shared ranking cache on startup, drop it on shutdown.
    """
    logger.info("Initializing ranking cache")

    cache = RankingCache(default_ttl=settings.DAILY_CACHE_TTL_SECONDS)

    yield {"ranking_cache": cache}

    logger.info("Clearing ranking cache")
    cache.clear()
