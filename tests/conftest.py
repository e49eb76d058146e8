"""Shared pytest fixtures and fakes.

The fakes stand in for the upstream platform so that walks, folds and
ranking views can be exercised without network access.
"""

import json
from datetime import date
from pathlib import Path
from typing import Optional, Union

import pytest

from src.config import Settings
from src.upstream.exceptions import FetchFailure
from src.upstream.schemas import (
    ActivityPage,
    ActivityRecord,
    MemberDailyDistance,
    PersonalRankingPage,
    TeamRankingPage,
)

FIXTURES_DIR = Path(__file__).parent / "fixtures"

PageOrError = Union[ActivityPage, Exception]


def load_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


def make_page(participant_id: int, *entries: tuple) -> ActivityPage:
    """Build an activity page from ``(date, km)`` or ``(date, km, violation)`` tuples."""
    records = [
        ActivityRecord(
            participant_id=participant_id,
            date=entry[0],
            distance_km=entry[1],
            is_violation=entry[2] if len(entry) > 2 else False,
        )
        for entry in entries
    ]
    return ActivityPage(activities=records, entry_count=len(records))


class FakeActivitySource:
    """Serves scripted activity pages and records every fetch."""

    def __init__(self, feeds: Optional[dict[int, list[PageOrError]]] = None):
        self.feeds = feeds or {}
        self.calls: list[tuple[int, int]] = []

    async def fetch_activity_page(self, participant_id: int, page: int) -> ActivityPage:
        self.calls.append((participant_id, page))
        pages = self.feeds.get(participant_id, [])
        if page > len(pages):
            return ActivityPage()
        result = pages[page - 1]
        if isinstance(result, Exception):
            raise result
        return result

    def pages_fetched(self, participant_id: int) -> int:
        return sum(1 for pid, _ in self.calls if pid == participant_id)


class FakeRaceClient(FakeActivitySource):
    """Fake upstream client covering the feed, member pages and JSON rankings."""

    def __init__(
        self,
        feeds: Optional[dict[int, list[PageOrError]]] = None,
        personal_pages: Optional[dict[int, PersonalRankingPage]] = None,
        team_pages: Optional[dict[int, Union[TeamRankingPage, Exception]]] = None,
        member_daily: Optional[dict[int, list[MemberDailyDistance]]] = None,
    ):
        super().__init__(feeds)
        self.personal_pages = personal_pages or {}
        self.team_pages = team_pages or {}
        self.member_daily = member_daily or {}
        self.member_calls: list[int] = []

    async def get_personal_ranking(self, page: int = 1) -> PersonalRankingPage:
        if page not in self.personal_pages:
            raise FetchFailure(f"Server error 500 for page {page}", page=page, status_code=500)
        return self.personal_pages[page]

    async def get_team_ranking(self, page: int = 1) -> TeamRankingPage:
        result = self.team_pages.get(page, TeamRankingPage(teams=[]))
        if isinstance(result, Exception):
            raise result
        return result

    async def get_member_daily(self, member_id: int) -> list[MemberDailyDistance]:
        self.member_calls.append(member_id)
        if member_id not in self.member_daily:
            raise FetchFailure("Client error 404", participant_id=member_id, status_code=404)
        return self.member_daily[member_id]


ROSTER = [
    {"name": "An", "member_id": "101", "team_name": "Team Sunrise", "ban": False},
    {"name": "Binh", "member_id": "102", "team_name": "Team Sunrise", "ban": False},
    {"name": "Chau", "member_id": "103", "team_name": "Team Riverside", "ban": False},
    {"name": "Dung", "member_id": "104", "team_name": "null", "ban": False},
    {"name": "Huy", "member_id": "105", "team_name": "Team Riverside", "ban": True},
]


@pytest.fixture
def roster_path(tmp_path) -> Path:
    path = tmp_path / "user.json"
    path.write_text(json.dumps(ROSTER), encoding="utf-8")
    return path


@pytest.fixture
def settings() -> Settings:
    return Settings(
        RACE_START_DATE=date(2025, 10, 1),
        RACE_END_DATE=date(2025, 10, 31),
        MAX_PAGES_PER_PARTICIPANT=10,
        TEAM_RANKING_PAGES=2,
        ADMIN_API_KEY=None,
    )
