"""Service layer for ranking views.

Every view runs the same pipeline: fold participant totals from the
upstream feed, merge adjustments once, rank. The views only differ in the
window they ask for and the shape of their rows.
"""

import asyncio
import hashlib
from datetime import date
from typing import Optional

from loguru import logger

from src.adjustments.service import AdjustmentService, adjusted_km
from src.adjustments.store import AdjustmentStore
from src.config import Settings
from src.core.cache import RankingCache, make_cache_key
from src.rankings.assembler import build_team_aggregates, rank
from src.rankings.calculator import race_window, today_at_offset
from src.rankings.folder import DateRangeFolder, unique_ids
from src.rankings.schemas import (
    DailyKmEntry,
    PeriodTotal,
    PersonalRanking,
    TeamAggregate,
    TeamRanking,
    WeeklyKmEntry,
)
from src.rankings.walker import PaginationWalker
from src.roster.service import Roster, RosterService
from src.upstream.client import AsyncRaceClient
from src.upstream.schemas import TeamRankingPage, UpstreamMember, UpstreamTeam


def ids_digest(participant_ids: list[int]) -> str:
    """Short stable fingerprint of an ordered id list for cache keys."""
    joined = ",".join(str(pid) for pid in participant_ids)
    return hashlib.sha1(joined.encode()).hexdigest()[:12]


def format_km(km: float) -> str:
    return f"{km:.2f}"


class RankingService:
    """Computes daily, weekly, weekly-team and overall rankings."""

    def __init__(
        self,
        race_client: AsyncRaceClient,
        adjustment_store: AdjustmentStore,
        cache: RankingCache,
        roster_service: RosterService,
        settings: Settings,
    ):
        self.race_client = race_client
        self.adjustments = AdjustmentService(adjustment_store)
        self.cache = cache
        self.roster_service = roster_service
        self.settings = settings
        self.folder = DateRangeFolder(
            PaginationWalker(race_client, max_pages=settings.MAX_PAGES_PER_PARTICIPANT)
        )

    def today(self) -> date:
        return today_at_offset(self.settings.UPSTREAM_UTC_OFFSET_HOURS)

    def race_window(self) -> tuple[Optional[date], date]:
        return race_window(
            self.today(), self.settings.RACE_START_DATE, self.settings.RACE_END_DATE
        )

    # =========================================================================
    # Window views
    # =========================================================================

    async def period_totals(
        self, participant_ids: list[int], start_date: date, end_date: date
    ) -> list[PeriodTotal]:
        """Folded and adjusted totals, one per distinct participant."""
        totals = await self.folder.fold_many(participant_ids, start_date, end_date)
        return await self.adjustments.apply_adjustments(totals, start_date, end_date)

    async def daily_ranking(
        self, participant_ids: list[int], day: Optional[date] = None
    ) -> list[DailyKmEntry]:
        """Rank participants by adjusted km on a single day.

        Parameters
        ----------
        participant_ids : list[int]
            Participants to include
        day : date | None
            Target day; today (upstream time zone) when None

        Returns
        -------
        list[DailyKmEntry]
            Entries sorted by ``km`` descending with dense ranks
        """
        day = day or self.today()
        ids = unique_ids(participant_ids)
        cache_key = make_cache_key("daily", day, ids_digest(ids))

        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.info("Returning cached daily ranking", date=str(day))
            return cached

        totals = await self.period_totals(ids, day, day)
        entries = [
            DailyKmEntry(
                participant_id=total.participant_id,
                date=day,
                km=total.total_km,
                original_km=total.base_km,
                adjustment_km=total.adjustment_km,
                violation_km=total.violation_km,
            )
            for total in totals
        ]
        ranked = rank(entries, key=lambda entry: entry.km)

        self.cache.set(cache_key, ranked, ttl=self.settings.DAILY_CACHE_TTL_SECONDS)
        logger.info("Computed daily ranking", date=str(day), members=len(ranked))
        return ranked

    async def weekly_ranking(
        self, participant_ids: list[int], start_date: date, end_date: date
    ) -> list[WeeklyKmEntry]:
        """Rank participants by adjusted km over an inclusive window."""
        ids = unique_ids(participant_ids)
        cache_key = make_cache_key("weekly", start_date, end_date, ids_digest(ids))

        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.info(
                "Returning cached weekly ranking",
                start_date=str(start_date),
                end_date=str(end_date),
            )
            return cached

        totals = await self.period_totals(ids, start_date, end_date)
        ranked = rank(
            (WeeklyKmEntry(**total.model_dump()) for total in totals),
            key=lambda entry: entry.total_km,
        )

        self.cache.set(cache_key, ranked, ttl=self.settings.WEEKLY_CACHE_TTL_SECONDS)
        logger.info(
            "Computed weekly ranking",
            start_date=str(start_date),
            end_date=str(end_date),
            members=len(ranked),
        )
        return ranked

    async def weekly_team_ranking(
        self, start_date: date, end_date: date, sort_by: str = "totalKm"
    ) -> list[TeamAggregate]:
        """Team aggregates over the whole roster (banned participants included).

        Raises
        ------
        RosterUnavailable
            If the roster cannot be loaded
        """
        cache_key = make_cache_key("weekly_team", start_date, end_date, sort_by)
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.info(
                "Returning cached weekly team ranking",
                start_date=str(start_date),
                end_date=str(end_date),
            )
            return cached

        roster = await self.roster_service.load()
        totals = await self.period_totals(roster.member_ids, start_date, end_date)
        teams = build_team_aggregates(
            totals,
            team_of=roster.team_of,
            start_date=start_date,
            end_date=end_date,
            name_of=roster.name_of,
            sort_by=sort_by,
        )

        self.cache.set(cache_key, teams, ttl=self.settings.WEEKLY_CACHE_TTL_SECONDS)
        logger.info(
            "Computed weekly team ranking",
            start_date=str(start_date),
            end_date=str(end_date),
            teams=len(teams),
        )
        return teams

    # =========================================================================
    # Overall views (merged with the upstream listing)
    # =========================================================================

    async def _banned_members(
        self, roster: Roster, listed_ids: set[int]
    ) -> list[UpstreamMember]:
        """Whole-race totals for banned participants missing from the listing."""
        banned = [entry for entry in roster.banned if entry.member_id not in listed_ids]
        if not banned:
            return []

        start, end = self.race_window()
        totals = await self.folder.fold_many(
            [entry.member_id for entry in banned],
            start or date.min,
            end,
            dates=[],
        )
        km_by_id = {total.participant_id: total.total_km for total in totals}

        logger.info("Merging banned members into personal ranking", members=len(banned))
        return [
            UpstreamMember(
                id=entry.member_id,
                bib_number=entry.member_id,
                full_name=entry.name,
                team_name=entry.team_name,
                final_value=format_km(km_by_id.get(entry.member_id, 0.0)),
            )
            for entry in banned
        ]

    async def personal_ranking(self, page: int = 1) -> PersonalRanking:
        """Upstream personal ranking page, adjusted and re-ranked.

        Page 1 also carries the roster's banned participants.

        Raises
        ------
        UpstreamException
            If the upstream listing cannot be fetched
        RosterUnavailable
            If page 1 is requested and the roster cannot be loaded
        """
        cache_key = make_cache_key("personal", page)
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.info("Returning cached personal ranking", page=page)
            return cached

        listing = await self.race_client.get_personal_ranking(page)
        members = list(listing.members)

        if page == 1:
            roster = await self.roster_service.load()
            listed_ids = {member.participant_id for member in members}
            members.extend(await self._banned_members(roster, listed_ids))

        start, end = self.race_window()
        sums = await self.adjustments.load_sums(start, end) or {}

        adjusted = []
        for member in members:
            adjustment = sums.get(member.participant_id)
            if adjustment:
                member = member.model_copy(
                    update={
                        "adjustment_km": adjustment,
                        "final_value": format_km(adjusted_km(member.final_km, adjustment)),
                    }
                )
            adjusted.append(member)

        # Later pages continue the upstream numbering
        first_order = min((m.order for m in listing.members if m.order > 0), default=1)
        start = 1 if page == 1 else first_order

        result = PersonalRanking(
            members=rank(
                adjusted, key=lambda m: m.final_km, rank_field="order", start=start
            ),
            race_info=listing.race_info,
        )
        self.cache.set(cache_key, result, ttl=self.settings.OVERALL_CACHE_TTL_SECONDS)
        return result

    async def _team_pages(self) -> list[TeamRankingPage]:
        page_numbers = range(1, self.settings.TEAM_RANKING_PAGES + 1)
        results = await asyncio.gather(
            *(self.race_client.get_team_ranking(page) for page in page_numbers),
            return_exceptions=True,
        )

        pages: list[TeamRankingPage] = []
        for page, result in zip(page_numbers, results):
            if isinstance(result, BaseException):
                # Without page 1 there is no listing to degrade to
                if page == 1:
                    raise result
                logger.error(
                    "Failed to fetch team ranking page, skipping",
                    page=page,
                    error=str(result),
                )
                continue
            pages.append(result)
        return pages

    async def team_ranking(self) -> TeamRanking:
        """Upstream team ranking (all configured pages), adjusted and re-ranked.

        A team's ``final_value`` is shifted by the summed adjustments of its
        roster members over the race window, floored at zero.

        Raises
        ------
        UpstreamException
            If the first team ranking page cannot be fetched
        RosterUnavailable
            If the roster cannot be loaded
        """
        cache_key = make_cache_key("team")
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.info("Returning cached team ranking")
            return cached

        pages = await self._team_pages()
        teams: list[UpstreamTeam] = [team for page in pages for team in page.teams]

        roster = await self.roster_service.load()
        start, end = self.race_window()
        sums = await self.adjustments.load_sums(start, end) or {}

        team_sums: dict[str, float] = {}
        for bib_number, km in sums.items():
            team_name = roster.team_of(bib_number)
            if team_name is not None:
                team_sums[team_name] = team_sums.get(team_name, 0.0) + km

        adjusted = []
        for team in teams:
            adjustment = team_sums.get(team.name.strip())
            if adjustment:
                team = team.model_copy(
                    update={
                        "adjustment_km": adjustment,
                        "final_value": format_km(adjusted_km(team.final_km, adjustment)),
                    }
                )
            adjusted.append(team)

        result = TeamRanking(
            teams=rank(adjusted, key=lambda t: t.final_km, rank_field="order"),
            count_total_distance=pages[0].count_total_distance,
        )
        self.cache.set(cache_key, result, ttl=self.settings.OVERALL_CACHE_TTL_SECONDS)
        return result
