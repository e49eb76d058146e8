"""Ranking assembler: stable sort, dense re-ranking and team grouping."""

from collections.abc import Callable, Iterable, Sequence
from datetime import date
from typing import Optional, TypeVar

from pydantic import BaseModel

from src.rankings.schemas import PeriodTotal, TeamAggregate, TeamMemberKm

T = TypeVar("T", bound=BaseModel)

# Roster placeholder some entries carry instead of an empty team
NULL_TEAM_NAMES = {"", "null"}


def rank(
    entries: Iterable[T],
    key: Callable[[T], float],
    rank_field: str = "rank",
    start: int = 1,
) -> list[T]:
    """Sort descending by ``key`` and assign consecutive positions from ``start``.

    The sort is stable, so equal keys keep their input order. Any rank
    already present on the entries (e.g. the upstream ``order``) is
    overwritten. Entries are copied, never mutated.

    Parameters
    ----------
    entries : iterable of BaseModel
        Rows to rank
    key : callable
        Numeric sort key (km)
    rank_field : str
        Name of the field receiving the position
    start : int
        Position of the best row (a later listing page starts past 1)

    Returns
    -------
    list[BaseModel]
        New ranked rows, best first
    """
    ordered = sorted(entries, key=key, reverse=True)
    return [
        entry.model_copy(update={rank_field: position})
        for position, entry in enumerate(ordered, start=start)
    ]


def has_team(team_name: Optional[str]) -> bool:
    """False for missing, empty or literal "null" team names."""
    return team_name is not None and team_name.strip() not in NULL_TEAM_NAMES


def build_team_aggregates(
    totals: Sequence[PeriodTotal],
    team_of: Callable[[int], Optional[str]],
    start_date: date,
    end_date: date,
    name_of: Optional[Callable[[int], str]] = None,
    sort_by: str = "totalKm",
) -> list[TeamAggregate]:
    """Group participant totals into ranked team aggregates.

    Participants without a team are left out entirely: they add neither
    km nor members to any team.

    Parameters
    ----------
    totals : sequence of PeriodTotal
        Adjusted participant totals
    team_of : callable
        Participant id -> team name (or None)
    start_date, end_date : date
        Window the totals cover
    name_of : callable, optional
        Participant id -> display name
    sort_by : str
        ``"totalKm"`` or ``"avgKm"``

    Returns
    -------
    list[TeamAggregate]
        Ranked teams; members inside each team sorted by km descending
    """
    grouped: dict[str, list[TeamMemberKm]] = {}
    for total in totals:
        team_name = team_of(total.participant_id)
        if not has_team(team_name):
            continue
        grouped.setdefault(team_name.strip(), []).append(
            TeamMemberKm(
                participant_id=total.participant_id,
                member_name=name_of(total.participant_id) if name_of else "",
                km=total.total_km,
            )
        )

    teams = []
    for team_name, members in grouped.items():
        team_km = sum(member.km for member in members)
        teams.append(
            TeamAggregate(
                team_name=team_name,
                total_km=team_km,
                member_count=len(members),
                avg_km=team_km / len(members),
                members=sorted(members, key=lambda m: m.km, reverse=True),
                start_date=start_date,
                end_date=end_date,
            )
        )

    if sort_by == "avgKm":
        return rank(teams, key=lambda team: team.avg_km)
    return rank(teams, key=lambda team: team.total_km)
