"""FastAPI dependencies for accessing application state."""

from typing import Optional, cast

from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import APIKeyHeader

from src.adjustments.store import AdjustmentStore, SqlAdjustmentStore
from src.config import get_settings
from src.core.cache import RankingCache
from src.rankings.service import RankingService
from src.roster.service import RosterService
from src.upstream.client import AsyncRaceClient

# Optional so that deployments without ADMIN_API_KEY keep the form open
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def get_race_client(request: Request) -> AsyncRaceClient:
    """
    Get the shared upstream client from application state.
    """
    return cast(AsyncRaceClient, request.state.race_client)


async def get_ranking_cache(request: Request) -> RankingCache:
    """
    Get the shared ranking cache from application state.
    """
    return cast(RankingCache, request.state.ranking_cache)


async def get_adjustment_store(request: Request) -> AdjustmentStore:
    """
    Get the adjustment store for the configured backend.

    The database backend wraps the session maker per request; the memory
    backend hands out the single process-wide store.
    """
    if get_settings().ADJUSTMENT_BACKEND == "database":
        return SqlAdjustmentStore(request.state.session_maker)
    return cast(AdjustmentStore, request.state.adjustment_store)


def get_roster_service() -> RosterService:
    return RosterService(get_settings().ROSTER_PATH)


async def get_ranking_service(
    race_client: AsyncRaceClient = Depends(get_race_client),
    store: AdjustmentStore = Depends(get_adjustment_store),
    cache: RankingCache = Depends(get_ranking_cache),
    roster_service: RosterService = Depends(get_roster_service),
) -> RankingService:
    """
    Assemble the ranking pipeline for one request.

    Usage:
        @router.post("/weekly-km")
        async def weekly(service: RankingService = Depends(get_ranking_service)):
            ...
    """
    return RankingService(
        race_client=race_client,
        adjustment_store=store,
        cache=cache,
        roster_service=roster_service,
        settings=get_settings(),
    )


async def verify_admin_api_key(
    api_key: Optional[str] = Security(api_key_header),
) -> None:
    """
    Verify admin API key from X-API-Key header.

    No-op when ``ADMIN_API_KEY`` is not configured.

    Raises
    ------
    HTTPException
        403 if a key is configured and the header is missing or wrong
    """
    expected = get_settings().ADMIN_API_KEY
    if expected and api_key != expected:
        raise HTTPException(status_code=403, detail="Invalid API key")
