"""Adjustment merge engine.

Loads manual corrections for a date window, sums them per participant and
applies them to folded totals. Application is best effort: when the store
cannot be read the totals pass through unchanged.

Nothing here remembers whether a collection has already been adjusted;
callers must apply adjustments exactly once per ranking computation.
"""

from datetime import date
from typing import Iterable, Optional

from loguru import logger

from src.adjustments.schemas import Adjustment
from src.adjustments.store import AdjustmentStore
from src.rankings.schemas import PeriodTotal


def sum_by_participant(adjustments: Iterable[Adjustment]) -> dict[int, float]:
    """Add up adjustment km per BIB number (entries never overwrite each other)."""
    sums: dict[int, float] = {}
    for adj in adjustments:
        sums[adj.bib_number] = sums.get(adj.bib_number, 0.0) + adj.adjustment_km
    return sums


def adjusted_km(base_km: float, adjustment_km: float) -> float:
    """Apply a signed adjustment with a floor at zero."""
    return max(0.0, base_km + adjustment_km)


def apply_sums(
    totals: list[PeriodTotal], sums: dict[int, float]
) -> list[PeriodTotal]:
    """Return new totals with per-participant sums applied.

    Participants without a nonzero sum come back unchanged, with
    ``adjustment_km`` left unset.
    """
    adjusted: list[PeriodTotal] = []
    for total in totals:
        adjustment = sums.get(total.participant_id)
        if adjustment:
            total = total.model_copy(
                update={
                    "adjustment_km": adjustment,
                    "total_km": adjusted_km(total.total_km, adjustment),
                }
            )
        adjusted.append(total)
    return adjusted


class AdjustmentService:
    """Reads corrections from a store and merges them into ranking totals."""

    def __init__(self, store: AdjustmentStore):
        self.store = store

    async def load_sums(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Optional[dict[int, float]]:
        """Load adjustments inside ``[start_date, end_date]`` summed per participant.

        Parameters
        ----------
        start_date : date | None
            Inclusive lower bound (None = unbounded)
        end_date : date | None
            Inclusive upper bound (None = unbounded)

        Returns
        -------
        dict[int, float] | None
            BIB number -> summed km, or None when the store is unavailable
        """
        try:
            adjustments = await self.store.list(start_date=start_date, end_date=end_date)
        except Exception as e:
            logger.error(
                "Failed to load adjustments, ranking proceeds unadjusted",
                start_date=str(start_date),
                end_date=str(end_date),
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

        sums = sum_by_participant(adjustments)
        logger.debug(
            "Loaded adjustments",
            count=len(adjustments),
            participants=len(sums),
            start_date=str(start_date),
            end_date=str(end_date),
        )
        return sums

    async def apply_adjustments(
        self, totals: list[PeriodTotal], start_date: date, end_date: date
    ) -> list[PeriodTotal]:
        """Merge adjustments booked inside the window into ``totals``.

        Returns the input unchanged when the store cannot be read.
        """
        sums = await self.load_sums(start_date, end_date)
        if not sums:
            return list(totals)

        adjusted = apply_sums(totals, sums)
        applied = sum(1 for total in adjusted if total.adjustment_km is not None)
        if applied:
            logger.info(
                "Applied adjustments",
                participants=applied,
                start_date=str(start_date),
                end_date=str(end_date),
            )
        return adjusted
