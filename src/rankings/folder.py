"""Date-range folder: walk results -> period totals.

Fans out one walk per participant, all running concurrently, and joins
them once every walk has settled. Each participant sits behind its own
error boundary: whatever goes wrong inside a walk becomes an all-zero
total for that participant, so the output always holds exactly one total
per requested id.
"""

import asyncio
from datetime import date
from typing import Iterable, Optional

from loguru import logger

from src.rankings.calculator import date_range
from src.rankings.schemas import DailyTotal, PeriodTotal
from src.rankings.walker import PaginationWalker, WalkResult


def fold(
    walk: WalkResult,
    start_date: date,
    end_date: date,
    dates: Optional[list[date]] = None,
) -> PeriodTotal:
    """Build a period total from one walk.

    Parameters
    ----------
    walk : WalkResult
        Accumulated buckets for one participant
    start_date, end_date : date
        Inclusive window the walk covered
    dates : list[date], optional
        Days to report in the breakdown (default: every day of the window).
        Pass an empty list for whole-race totals where only the days with
        activity are listed.

    Returns
    -------
    PeriodTotal
        Unadjusted total; ``total_km`` equals the sum of the breakdown
    """
    if dates is None:
        dates = date_range(start_date, end_date)
    elif not dates:
        dates = sorted(walk.daily_breakdown)

    breakdown = []
    for day in dates:
        bucket = walk.daily_breakdown.get(day)
        breakdown.append(
            DailyTotal(
                date=day,
                km=bucket.valid if bucket else 0.0,
                violation_km=bucket.violation if bucket else 0.0,
            )
        )

    return PeriodTotal(
        participant_id=walk.participant_id,
        start_date=start_date,
        end_date=end_date,
        total_km=walk.valid_km,
        violation_km=walk.violation_km,
        daily_breakdown=breakdown,
    )


def zero_total(
    participant_id: int,
    start_date: date,
    end_date: date,
    dates: Optional[list[date]] = None,
) -> PeriodTotal:
    """All-zero total used when a participant's walk failed outright."""
    return fold(WalkResult(participant_id=participant_id), start_date, end_date, dates)


def unique_ids(participant_ids: Iterable[int]) -> list[int]:
    """Drop repeated ids, keeping first-seen order."""
    return list(dict.fromkeys(participant_ids))


class DateRangeFolder:
    """Computes period totals for many participants in parallel."""

    def __init__(self, walker: PaginationWalker):
        self.walker = walker

    async def fold_one(
        self,
        participant_id: int,
        start_date: date,
        end_date: date,
        dates: Optional[list[date]] = None,
    ) -> PeriodTotal:
        """Walk and fold one participant; never raises."""
        try:
            walk = await self.walker.walk(participant_id, start_date, end_date)
        except Exception as e:
            logger.opt(exception=e).error(
                "Member walk failed, reporting zero totals",
                member_id=participant_id,
                start_date=str(start_date),
                end_date=str(end_date),
                error_type=type(e).__name__,
            )
            return zero_total(participant_id, start_date, end_date, dates)
        return fold(walk, start_date, end_date, dates)

    async def fold_many(
        self,
        participant_ids: Iterable[int],
        start_date: date,
        end_date: date,
        dates: Optional[list[date]] = None,
    ) -> list[PeriodTotal]:
        """Period totals for every requested participant, in request order.

        Parameters
        ----------
        participant_ids : iterable of int
            Requested ids; duplicates are folded once
        start_date, end_date : date
            Inclusive window
        dates : list[date], optional
            Breakdown days, see ``fold``

        Returns
        -------
        list[PeriodTotal]
            Exactly one total per distinct requested id
        """
        ids = unique_ids(participant_ids)
        if dates is None:
            dates = date_range(start_date, end_date)

        logger.info(
            "Folding member totals",
            members=len(ids),
            start_date=str(start_date),
            end_date=str(end_date),
        )
        return list(
            await asyncio.gather(
                *(self.fold_one(pid, start_date, end_date, dates) for pid in ids)
            )
        )
