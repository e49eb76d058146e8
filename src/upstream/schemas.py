"""Pydantic schemas for data pulled from the upstream race platform."""

from datetime import date
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator


class ActivityRecord(BaseModel):
    """One scraped activity from a participant's feed.

    Ephemeral: produced by the page parser, consumed by the walker.
    """

    participant_id: int
    date: date
    distance_km: float
    is_violation: bool = False


class ActivityPage(BaseModel):
    """Result of fetching one page of a participant's activity feed.

    Attributes
    ----------
    activities : list[ActivityRecord]
        Entries whose date could be parsed
    entry_count : int
        Number of activity entries present in the markup, parseable or not
    """

    activities: list[ActivityRecord] = []
    entry_count: int = 0

    @property
    def is_empty(self) -> bool:
        return self.entry_count == 0

    @property
    def last_seen_date(self) -> Optional[date]:
        """Date of the last dated entry on the page (the oldest in feed order)."""
        if not self.activities:
            return None
        return self.activities[-1].date


class _Passthrough(BaseModel):
    """Upstream listing rows keep every field the platform sends."""

    model_config = ConfigDict(extra="allow")

    @field_validator("final_value", mode="before", check_fields=False)
    @classmethod
    def _stringify_final_value(cls, value: Any) -> str:
        if value is None or value == "":
            return "0"
        return str(value)

    @field_validator("order", mode="before", check_fields=False)
    @classmethod
    def _coerce_order(cls, value: Any) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return 0


class UpstreamMember(_Passthrough):
    """Row of the upstream personal ranking (ranking_personal)."""

    id: int
    full_name: str = ""
    team_name: Optional[str] = None
    avatar: Optional[str] = None
    final_value: str = "0"
    order: int = 0
    bib_number: Optional[int] = None
    adjustment_km: Optional[float] = None

    @field_validator("bib_number", mode="before")
    @classmethod
    def _blank_bib_is_none(cls, value: Any) -> Optional[int]:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        return value

    @property
    def participant_id(self) -> int:
        """Activity feeds and adjustments are keyed by BIB number when known."""
        return self.bib_number if self.bib_number else self.id

    @property
    def final_km(self) -> float:
        try:
            return float(self.final_value)
        except ValueError:
            return 0.0


class UpstreamTeam(_Passthrough):
    """Row of the upstream team ranking (ranking_team)."""

    name: str
    final_value: str = "0"
    order: int = 0
    adjustment_km: Optional[float] = None

    @property
    def final_km(self) -> float:
        try:
            return float(self.final_value)
        except ValueError:
            return 0.0


class PersonalRankingPage(BaseModel):
    """One page of the upstream personal ranking."""

    members: list[UpstreamMember]
    race_info: Optional[dict[str, Any]] = None


class TeamRankingPage(BaseModel):
    """One page of the upstream team ranking."""

    teams: list[UpstreamTeam]
    count_total_distance: float = 0.0


class MemberDailyDistance(BaseModel):
    """Row of the per-day table on a member's public page."""

    date: str
    km: float
