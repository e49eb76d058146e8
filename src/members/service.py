"""Member profile lookups (per-day distance table)."""

from datetime import datetime, timezone

from loguru import logger

from src.core.cache import RankingCache, make_cache_key
from src.members.schemas import MemberDaily
from src.upstream.client import AsyncRaceClient


class MemberService:
    def __init__(self, race_client: AsyncRaceClient, cache: RankingCache, ttl: float):
        self.race_client = race_client
        self.cache = cache
        self.ttl = ttl

    async def get_member_daily(self, member_id: int) -> MemberDaily:
        """Scraped daily distances for one member, cached for ``ttl`` seconds.

        Raises
        ------
        FetchFailure
            If the member page cannot be fetched
        """
        cache_key = make_cache_key("member", member_id)
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.info("Returning cached member data", member_id=member_id)
            return cached

        daily = await self.race_client.get_member_daily(member_id)
        result = MemberDaily(
            member_id=member_id,
            daily_data=daily,
            last_update=datetime.now(timezone.utc),
        )

        self.cache.set(cache_key, result, ttl=self.ttl)
        logger.info("Fetched member data", member_id=member_id, days=len(daily))
        return result
