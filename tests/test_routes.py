"""Tests for the HTTP surface using FastAPI's TestClient.

Application state (upstream client, cache, store, roster) is replaced
through dependency overrides, so no lifespan runs and nothing leaves the
process.
"""

from datetime import date

import pytest
from fastapi.testclient import TestClient

import src.dependencies
from src.adjustments.store import InMemoryAdjustmentStore
from src.config import Settings
from src.core.cache import RankingCache
from src.dependencies import (
    get_adjustment_store,
    get_race_client,
    get_ranking_cache,
    get_roster_service,
)
from src.main import app
from src.roster.service import RosterService
from src.upstream.exceptions import FetchFailure
from src.upstream.schemas import (
    MemberDailyDistance,
    PersonalRankingPage,
    TeamRankingPage,
    UpstreamMember,
    UpstreamTeam,
)
from tests.conftest import FakeRaceClient, make_page

DAY = date(2025, 10, 15)


@pytest.fixture
def race_client():
    return FakeRaceClient(
        feeds={
            101: [make_page(101, (DAY, 5.0), (DAY, 1.5, True), (date(2025, 10, 12), 2.0))],
            102: [make_page(102, (DAY, 8.0), (date(2025, 10, 12), 1.0))],
            103: [make_page(103, (date(2025, 10, 14), 4.0), (date(2025, 10, 12), 1.0))],
        },
        personal_pages={
            2: PersonalRankingPage(
                members=[
                    UpstreamMember(id=1, bib_number=102, full_name="Binh", final_value="30", order=1),
                    UpstreamMember(id=2, bib_number=101, full_name="An", final_value="20", order=2),
                ],
                race_info={"name": "October Run"},
            )
        },
        team_pages={
            1: TeamRankingPage(
                teams=[
                    UpstreamTeam(name="Team Riverside", final_value="60", order=1),
                    UpstreamTeam(name="Team Sunrise", final_value="50", order=2),
                ],
                count_total_distance=110.0,
            ),
            2: FetchFailure("Server error 500", page=2, status_code=500),
        },
        member_daily={101: [MemberDailyDistance(date="21/10/2025", km=10.5)]},
    )


@pytest.fixture
def cache():
    return RankingCache()


@pytest.fixture
def store():
    return InMemoryAdjustmentStore()


@pytest.fixture
def api(race_client, cache, store, roster_path):
    app.dependency_overrides[get_race_client] = lambda: race_client
    app.dependency_overrides[get_ranking_cache] = lambda: cache
    app.dependency_overrides[get_adjustment_store] = lambda: store
    app.dependency_overrides[get_roster_service] = lambda: RosterService(roster_path)
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(api):
    response = api.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


class TestDailyKm:
    def test_ranking_in_camel_case(self, api):
        response = api.post("/api/daily-km", json={"memberIds": [102, 101], "date": "2025-10-15"})

        assert response.status_code == 200
        body = response.json()
        assert [row["participantId"] for row in body] == [102, 101]
        assert body[0] == {
            "participantId": 102,
            "date": "2025-10-15",
            "km": 8.0,
            "originalKm": 8.0,
            "violationKm": 0.0,
            "rank": 1,
        }
        assert body[1]["violationKm"] == 1.5

    def test_request_id_header(self, api):
        response = api.post(
            "/api/daily-km",
            json={"memberIds": [101], "date": "2025-10-15"},
            headers={"X-Request-ID": "trace-123"},
        )
        assert response.headers["X-Request-ID"] == "trace-123"

    def test_empty_member_list_rejected(self, api):
        response = api.post("/api/daily-km", json={"memberIds": []})
        assert response.status_code == 422


class TestWeeklyKm:
    def test_ranking(self, api):
        response = api.post(
            "/api/weekly-km",
            json={"memberIds": [101, 102, 103], "startDate": "2025-10-13", "endDate": "2025-10-19"},
        )

        assert response.status_code == 200
        body = response.json()
        assert [row["participantId"] for row in body] == [102, 101, 103]
        assert [row["rank"] for row in body] == [1, 2, 3]
        assert len(body[0]["dailyBreakdown"]) == 7
        assert body[0]["dailyBreakdown"][2] == {"date": "2025-10-15", "km": 8.0, "violationKm": 0.0}
        assert "adjustmentKm" not in body[0]

    def test_reversed_window(self, api):
        response = api.post(
            "/api/weekly-km",
            json={"memberIds": [101], "startDate": "2025-10-19", "endDate": "2025-10-13"},
        )
        assert response.status_code == 400

    def test_window_too_long(self, api):
        response = api.post(
            "/api/weekly-km",
            json={"memberIds": [101], "startDate": "2025-09-01", "endDate": "2025-10-31"},
        )
        assert response.status_code == 400
        assert "maximum" in response.json()["detail"]


class TestWeeklyTeamKm:
    def test_teams(self, api):
        response = api.post(
            "/api/weekly-team-km",
            json={"startDate": "2025-10-13", "endDate": "2025-10-19", "sortBy": "totalKm"},
        )

        assert response.status_code == 200
        body = response.json()
        assert [team["teamName"] for team in body] == ["Team Sunrise", "Team Riverside"]
        assert body[0]["totalKm"] == 13.0
        assert body[0]["memberCount"] == 2
        assert body[0]["members"][0] == {"participantId": 102, "memberName": "Binh", "km": 8.0}

    def test_invalid_sort(self, api):
        response = api.post(
            "/api/weekly-team-km",
            json={"startDate": "2025-10-13", "endDate": "2025-10-19", "sortBy": "name"},
        )
        assert response.status_code == 422

    def test_missing_roster(self, api, tmp_path):
        app.dependency_overrides[get_roster_service] = lambda: RosterService(tmp_path / "gone.json")

        response = api.post(
            "/api/weekly-team-km",
            json={"startDate": "2025-10-13", "endDate": "2025-10-19"},
        )

        assert response.status_code == 500


class TestOverallRankings:
    def test_personal_page(self, api):
        response = api.get("/api/race/personal/2")

        assert response.status_code == 200
        body = response.json()
        assert [m["full_name"] for m in body["members"]] == ["Binh", "An"]
        assert [m["order"] for m in body["members"]] == [1, 2]
        assert body["raceInfo"] == {"name": "October Run"}

    def test_personal_page_upstream_failure(self, api):
        response = api.get("/api/race/personal/1")
        assert response.status_code == 502

    def test_personal_page_must_be_positive(self, api):
        response = api.get("/api/race/personal/0")
        assert response.status_code == 422

    def test_team(self, api):
        response = api.get("/api/race/team")

        assert response.status_code == 200
        body = response.json()
        assert [t["name"] for t in body["teams"]] == ["Team Riverside", "Team Sunrise"]
        assert body["countTotalDistance"] == 110.0


class TestMember:
    def test_member_daily_is_cached(self, api, race_client):
        first = api.get("/api/member/101")
        second = api.get("/api/member/101")

        assert first.status_code == 200
        body = first.json()
        assert body["memberId"] == 101
        assert body["dailyData"] == [{"date": "21/10/2025", "km": 10.5}]
        assert "lastUpdate" in body
        assert second.json() == body
        assert race_client.member_calls == [101]

    def test_upstream_failure(self, api):
        response = api.get("/api/member/999")
        assert response.status_code == 502


class TestKmAdjustments:
    def test_create_list_delete(self, api):
        created = api.post(
            "/api/km-adjustments",
            json={"bibNumber": 101, "date": "2025-10-15", "adjustmentKm": 2.5, "reason": "GPS drift"},
        )
        assert created.status_code == 200
        adjustment = created.json()
        assert adjustment["bibNumber"] == 101
        assert adjustment["adjustmentKm"] == 2.5

        listed = api.get("/api/km-adjustments", params={"bibNumber": 101})
        assert [a["id"] for a in listed.json()] == [adjustment["id"]]
        assert api.get("/api/km-adjustments", params={"date": "2025-10-16"}).json() == []

        deleted = api.delete("/api/km-adjustments", params={"id": adjustment["id"]})
        assert deleted.status_code == 200
        assert deleted.json() == {"success": True}
        assert api.get("/api/km-adjustments").json() == []

    def test_adjustment_shows_up_in_next_ranking(self, api):
        """Writes clear cached rankings."""
        payload = {"memberIds": [101, 102], "date": "2025-10-15"}
        before = api.post("/api/daily-km", json=payload).json()
        assert before[0]["participantId"] == 102

        api.post(
            "/api/km-adjustments",
            json={"bibNumber": 101, "date": "2025-10-15", "adjustmentKm": 10.0},
        )
        after = api.post("/api/daily-km", json=payload).json()

        assert after[0]["participantId"] == 101
        assert after[0]["km"] == 15.0
        assert after[0]["adjustmentKm"] == 10.0

    @pytest.mark.parametrize(
        "payload",
        [
            {"date": "2025-10-15", "adjustmentKm": 1.0},
            {"bibNumber": 101, "adjustmentKm": 1.0},
            {"bibNumber": 101, "date": "2025-10-15"},
        ],
    )
    def test_missing_fields(self, api, payload):
        response = api.post("/api/km-adjustments", json=payload)
        assert response.status_code == 400

    def test_delete_requires_id(self, api):
        assert api.delete("/api/km-adjustments").status_code == 400

    def test_delete_unknown(self, api):
        assert api.delete("/api/km-adjustments", params={"id": "nope"}).status_code == 404

    def test_writes_require_api_key_when_configured(self, api, monkeypatch):
        monkeypatch.setattr(
            src.dependencies, "get_settings", lambda: Settings(ADMIN_API_KEY="secret")
        )
        payload = {"bibNumber": 101, "date": "2025-10-15", "adjustmentKm": 1.0}

        assert api.post("/api/km-adjustments", json=payload).status_code == 403
        assert (
            api.post(
                "/api/km-adjustments", json=payload, headers={"X-API-Key": "wrong"}
            ).status_code
            == 403
        )
        assert (
            api.post(
                "/api/km-adjustments", json=payload, headers={"X-API-Key": "secret"}
            ).status_code
            == 200
        )
        assert api.get("/api/km-adjustments").status_code == 200
