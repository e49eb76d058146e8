"""Upstream client lifecycle.

One ``httpx.AsyncClient`` (connection pool) and one limiter are shared by
every request for the lifetime of the app.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
from loguru import logger

from src.config import get_settings
from src.core.lifespan import manager
from src.upstream.client import AsyncRaceClient
from src.upstream.rate_limiter import UpstreamLimiter


@manager.add
@asynccontextmanager
async def upstream_lifespan() -> AsyncIterator[dict]:
    """
    Open the shared upstream connection pool on startup, close it on shutdown.
    """
    settings = get_settings()

    logger.info(
        "Initializing upstream client",
        base_url=settings.UPSTREAM_BASE_URL,
        max_concurrency=settings.UPSTREAM_MAX_CONCURRENCY,
        timeout=settings.UPSTREAM_TIMEOUT_SECONDS,
    )

    http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(settings.UPSTREAM_TIMEOUT_SECONDS),
        limits=httpx.Limits(max_connections=settings.UPSTREAM_MAX_CONCURRENCY * 2),
        follow_redirects=True,
    )
    limiter = UpstreamLimiter(settings.UPSTREAM_MAX_CONCURRENCY)
    race_client = AsyncRaceClient.from_settings(settings, http_client, limiter)

    yield {"race_client": race_client}

    logger.info("Closing upstream client")
    await http_client.aclose()
