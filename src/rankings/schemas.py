"""Pydantic schemas for ranking computations and API responses."""

import datetime as dt
from typing import Any, Literal, Optional

from pydantic import Field

from src.core.schemas import CamelModel
from src.upstream.schemas import UpstreamMember, UpstreamTeam


class DailyTotal(CamelModel):
    """Valid and violation km of one participant on one day.

    Attributes
    ----------
    date : date
        Calendar day
    km : float
        Sum of non-violation activities
    violation_km : float
        Sum of flagged activities (informational, never ranked)
    """

    date: dt.date
    km: float = 0.0
    violation_km: float = 0.0


class PeriodTotal(CamelModel):
    """Folded distance of one participant over an inclusive date window.

    ``total_km`` starts as the sum of the daily ``km`` values; the merge
    engine may shift it by ``adjustment_km`` (never below zero).
    """

    participant_id: int
    start_date: dt.date
    end_date: dt.date
    total_km: float = 0.0
    violation_km: float = 0.0
    daily_breakdown: list[DailyTotal] = []
    adjustment_km: Optional[float] = None

    @property
    def base_km(self) -> float:
        """Total before adjustments."""
        return sum(day.km for day in self.daily_breakdown)


# =========================================================================
# Requests
# =========================================================================


class DailyKmRequest(CamelModel):
    member_ids: list[int] = Field(..., min_length=1)
    date: Optional[dt.date] = None


class WeeklyKmRequest(CamelModel):
    member_ids: list[int] = Field(..., min_length=1)
    start_date: dt.date
    end_date: dt.date


class WeeklyTeamRequest(CamelModel):
    start_date: dt.date
    end_date: dt.date
    sort_by: Literal["totalKm", "avgKm"] = "totalKm"


# =========================================================================
# Responses
# =========================================================================


class DailyKmEntry(CamelModel):
    """One row of the daily ranking."""

    participant_id: int
    date: dt.date
    km: float
    original_km: float
    adjustment_km: Optional[float] = None
    violation_km: float = 0.0
    rank: int = 0


class WeeklyKmEntry(PeriodTotal):
    """One row of the weekly personal ranking."""

    rank: int = 0


class TeamMemberKm(CamelModel):
    participant_id: int
    member_name: str = ""
    km: float


class TeamAggregate(CamelModel):
    """Team totals for a window, built from member period totals.

    ``member_count`` counts the members included in this computation only.
    """

    team_name: str
    total_km: float
    member_count: int
    avg_km: float
    members: list[TeamMemberKm]
    start_date: dt.date
    end_date: dt.date
    rank: int = 0


class PersonalRanking(CamelModel):
    """Upstream personal ranking page after adjustments and re-ranking."""

    members: list[UpstreamMember]
    race_info: Optional[dict[str, Any]] = None


class TeamRanking(CamelModel):
    """Upstream team ranking (all pages) after adjustments and re-ranking."""

    teams: list[UpstreamTeam]
    count_total_distance: float = 0.0
