"""Pagination walker over a participant's activity feed.

The upstream feed is reverse-chronological, so the walker pages backwards
in time and stops as soon as a page ends before the requested window.
Pages for one participant are fetched strictly one after another.

Stop conditions, in the order they are checked:
- the page could not be fetched or parsed (any ``UpstreamException``, or
  a ``ValueError`` from record validation); the walk keeps what it
  accumulated so far and never retries
- the page has no activity entries
- the page has entries but none with a parseable date
- the last dated entry on the page is older than the window start
- the page ceiling was reached (logged as a warning)
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional, Protocol

from loguru import logger

from src.upstream.exceptions import UpstreamException
from src.upstream.schemas import ActivityPage

DEFAULT_MAX_PAGES = 50


class ActivitySource(Protocol):
    """Anything that can return one page of a participant's activity feed."""

    async def fetch_activity_page(self, participant_id: int, page: int) -> ActivityPage: ...


class StopReason(str, Enum):
    EMPTY_PAGE = "empty_page"
    NO_DATED_ENTRIES = "no_dated_entries"
    PAST_WINDOW = "past_window"
    FETCH_FAILURE = "fetch_failure"
    PAGE_CEILING = "page_ceiling"


@dataclass
class DayBucket:
    valid: float = 0.0
    violation: float = 0.0


@dataclass
class WalkResult:
    """Accumulated km for one participant inside a window.

    ``daily_breakdown`` only holds days that had at least one activity;
    the folder fills in the rest of the window with zeros.
    """

    participant_id: int
    valid_km: float = 0.0
    violation_km: float = 0.0
    daily_breakdown: dict[date, DayBucket] = field(default_factory=dict)
    pages_fetched: int = 0
    stop_reason: Optional[StopReason] = None


class PaginationWalker:
    """Drives an ``ActivitySource`` page by page for one participant."""

    def __init__(self, source: ActivitySource, max_pages: int = DEFAULT_MAX_PAGES):
        """Create a walker.

        Parameters
        ----------
        source : ActivitySource
            Page provider (the race client, or a fake in tests)
        max_pages : int
            Hard ceiling on pages fetched per participant per walk
        """
        if max_pages < 1:
            raise ValueError("max_pages must be at least 1")
        self.source = source
        self.max_pages = max_pages

    async def walk(
        self, participant_id: int, window_start: date, window_end: date
    ) -> WalkResult:
        """Accumulate valid and violation km inside ``[window_start, window_end]``.

        Parameters
        ----------
        participant_id : int
            Upstream member id
        window_start : date
            First day of the window (inclusive)
        window_end : date
            Last day of the window (inclusive)

        Returns
        -------
        WalkResult
            Totals and per-day buckets; ``stop_reason`` says why paging ended
        """
        result = WalkResult(participant_id=participant_id)
        page = 1

        while True:
            if page > self.max_pages:
                logger.warning(
                    "Page ceiling reached, totals may be incomplete",
                    member_id=participant_id,
                    max_pages=self.max_pages,
                )
                result.stop_reason = StopReason.PAGE_CEILING
                break

            try:
                activity_page = await self.source.fetch_activity_page(participant_id, page)
            except (UpstreamException, ValueError) as e:
                logger.error(
                    "Failed to fetch activity page, keeping partial totals",
                    member_id=participant_id,
                    page=page,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                result.stop_reason = StopReason.FETCH_FAILURE
                break

            result.pages_fetched = page

            if activity_page.is_empty:
                logger.debug("No more activities", member_id=participant_id, page=page)
                result.stop_reason = StopReason.EMPTY_PAGE
                break

            for activity in activity_page.activities:
                if not window_start <= activity.date <= window_end:
                    continue
                bucket = result.daily_breakdown.setdefault(activity.date, DayBucket())
                if activity.is_violation:
                    bucket.violation += activity.distance_km
                    result.violation_km += activity.distance_km
                else:
                    bucket.valid += activity.distance_km
                    result.valid_km += activity.distance_km

            last_seen_date = activity_page.last_seen_date
            if last_seen_date is None:
                logger.warning(
                    "Page has no dated entries, stopping",
                    member_id=participant_id,
                    page=page,
                    entries=activity_page.entry_count,
                )
                result.stop_reason = StopReason.NO_DATED_ENTRIES
                break

            if last_seen_date < window_start:
                logger.debug(
                    "Paged past window start",
                    member_id=participant_id,
                    page=page,
                    last_seen_date=str(last_seen_date),
                    window_start=str(window_start),
                )
                result.stop_reason = StopReason.PAST_WINDOW
                break

            page += 1

        logger.info(
            "Scraped member activities",
            member_id=participant_id,
            pages=result.pages_fetched,
            valid_km=result.valid_km,
            violation_km=result.violation_km,
            stop_reason=result.stop_reason.value if result.stop_reason else None,
        )
        return result
