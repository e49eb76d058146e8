"""API endpoint for a single member's daily distances."""

from fastapi import APIRouter, Depends, HTTPException, Path
from loguru import logger

from src.config import get_settings
from src.core.cache import RankingCache
from src.dependencies import get_race_client, get_ranking_cache
from src.members.schemas import MemberDaily
from src.members.service import MemberService
from src.upstream.client import AsyncRaceClient
from src.upstream.exceptions import UpstreamException

router = APIRouter(prefix="/api/member", tags=["members"])


@router.get("/{member_id}", response_model=MemberDaily)
async def get_member(
    member_id: int = Path(..., ge=1),
    race_client: AsyncRaceClient = Depends(get_race_client),
    cache: RankingCache = Depends(get_ranking_cache),
):
    """Daily distance table scraped from the member's profile page."""
    service = MemberService(race_client, cache, ttl=get_settings().MEMBER_CACHE_TTL_SECONDS)
    try:
        return await service.get_member_daily(member_id)
    except UpstreamException as e:
        logger.error("Failed to fetch member data", member_id=member_id, error=str(e))
        raise HTTPException(status_code=502, detail=f"Failed to fetch member data: {e}")
