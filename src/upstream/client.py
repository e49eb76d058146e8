"""Async client for the upstream race platform."""

import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from src.config import Settings
from src.upstream.exceptions import FetchFailure, UpstreamParseError
from src.upstream.parser import ActivityPageParser, parse_member_daily_table
from src.upstream.rate_limiter import UpstreamLimiter
from src.upstream.schemas import (
    ActivityPage,
    MemberDailyDistance,
    PersonalRankingPage,
    TeamRankingPage,
    UpstreamMember,
    UpstreamTeam,
)

logger = logging.getLogger(__name__)


class AsyncRaceClient:
    """Async HTTP client for the race platform.

    Two surfaces are used: the HTML activity feed / member pages scraped
    like a browser would, and the JSON ranking API used by the mobile app.
    Nothing here retries; callers decide what a failure means.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        race_id: int,
        api_token: str = "",
        user_agent: str = "Mozilla/5.0",
        api_user_agent: str = "okhttp/5.0.0-alpha.14",
        limiter: Optional[UpstreamLimiter] = None,
        parser: Optional[ActivityPageParser] = None,
    ):
        """Initialize race platform client.

        Parameters
        ----------
        http_client : httpx.AsyncClient
            Shared connection pool (owned by the caller)
        base_url : str
            Platform root, e.g. ``https://84race.com``
        race_id : int
            Race whose JSON rankings are read
        api_token : str
            Fixed client identity token for the JSON API (``x-ap`` header)
        user_agent : str
            Browser user agent for scraped pages
        api_user_agent : str
            User agent for the JSON API
        limiter : UpstreamLimiter, optional
            Shared concurrency bound. If None, a private one is created.
        parser : ActivityPageParser, optional
            Markup extractor for activity feeds
        """
        self.http = http_client
        self.base_url = base_url.rstrip("/")
        self.race_id = race_id
        self.api_token = api_token
        self.user_agent = user_agent
        self.api_user_agent = api_user_agent
        self.limiter = limiter or UpstreamLimiter()
        self.parser = parser or ActivityPageParser()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        http_client: httpx.AsyncClient,
        limiter: Optional[UpstreamLimiter] = None,
    ) -> "AsyncRaceClient":
        return cls(
            http_client=http_client,
            base_url=settings.UPSTREAM_BASE_URL,
            race_id=settings.RACE_ID,
            api_token=settings.UPSTREAM_API_TOKEN,
            user_agent=settings.UPSTREAM_USER_AGENT,
            api_user_agent=settings.UPSTREAM_API_USER_AGENT,
            limiter=limiter,
        )

    @property
    def race_api_url(self) -> str:
        return f"{self.base_url}/api/v1/races/detail/{self.race_id}"

    async def _request(
        self,
        method: str,
        url: str,
        participant_id: Optional[int] = None,
        page: Optional[int] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send one request through the limiter.

        Raises
        ------
        FetchFailure
            On transport errors, timeouts and non-2xx responses
        """
        logger.debug(f"{method} {url} (member={participant_id}, page={page})")

        async with self.limiter.slot():
            try:
                response = await self.http.request(method, url, **kwargs)
            except httpx.TimeoutException as e:
                raise FetchFailure(
                    f"Timed out: {method} {url}",
                    participant_id=participant_id,
                    page=page,
                ) from e
            except httpx.HTTPError as e:
                raise FetchFailure(
                    f"Request failed: {method} {url}: {e}",
                    participant_id=participant_id,
                    page=page,
                ) from e

        self._handle_errors(response, participant_id=participant_id, page=page)
        return response

    def _handle_errors(
        self,
        response: httpx.Response,
        participant_id: Optional[int] = None,
        page: Optional[int] = None,
    ) -> None:
        if response.is_success:
            return

        kind = "Client" if 400 <= response.status_code < 500 else "Server"
        raise FetchFailure(
            f"{kind} error {response.status_code}: {response.text[:200]}",
            participant_id=participant_id,
            page=page,
            status_code=response.status_code,
        )

    def _api_headers(self) -> dict[str, str]:
        return {
            "Accept-Encoding": "gzip",
            "User-Agent": self.api_user_agent,
            "x-ap": self.api_token,
        }

    async def _get_api_data(self, url: str, params: Optional[dict] = None) -> dict:
        response = await self._request(
            "GET", url, params=params, headers=self._api_headers()
        )
        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamParseError(f"Invalid JSON from {url}") from e

        if not isinstance(payload, dict):
            raise UpstreamParseError(f"Unexpected payload type from {url}")
        data = payload.get("data") or {}
        if not isinstance(data, dict):
            raise UpstreamParseError(f"Unexpected 'data' field from {url}")
        return data

    # =========================================================================
    # Activity feed (HTML)
    # =========================================================================

    async def fetch_activity_page(self, participant_id: int, page: int) -> ActivityPage:
        """Fetch and parse one page of a participant's activity feed.

        Parameters
        ----------
        participant_id : int
            Positive upstream member identifier
        page : int
            1-based page number

        Returns
        -------
        ActivityPage
            Parsed entries, newest first

        Raises
        ------
        ValueError
            If participant_id or page is out of range
        FetchFailure
            If the page could not be fetched
        """
        if participant_id < 1:
            raise ValueError(f"participant_id must be positive, got {participant_id}")
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")

        url = f"{self.base_url}/personal/get_data_post/activities/{participant_id}"
        headers = {
            "accept": "text/html, */*; q=0.01",
            "accept-language": "vi,en-US;q=0.9,en;q=0.8",
            "content-type": "application/x-www-form-urlencoded; charset=UTF-8",
            "origin": self.base_url,
            "referer": f"{self.base_url}/member/{participant_id}",
            "user-agent": self.user_agent,
            "x-requested-with": "XMLHttpRequest",
        }
        response = await self._request(
            "POST",
            url,
            participant_id=participant_id,
            page=page,
            content=f"page={page}&listCateId=",
            headers=headers,
        )
        return self.parser.parse(response.text, participant_id)

    async def get_member_daily(self, member_id: int) -> list[MemberDailyDistance]:
        """Scrape the per-day distance table from a member's profile page."""
        response = await self._request(
            "GET",
            f"{self.base_url}/member/{member_id}",
            participant_id=member_id,
            headers={"user-agent": self.user_agent},
        )
        return parse_member_daily_table(response.text)

    # =========================================================================
    # Ranking API (JSON)
    # =========================================================================

    async def get_personal_ranking(self, page: int = 1) -> PersonalRankingPage:
        """Get one page of the race's personal ranking."""
        data = await self._get_api_data(f"{self.race_api_url}/ranking_personal/{page}")

        members: list[UpstreamMember] = []
        for item in data.get("members") or []:
            try:
                members.append(UpstreamMember.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping malformed personal ranking row: {e}")

        race_info = data.get("oneItem")
        return PersonalRankingPage(
            members=members,
            race_info=race_info if isinstance(race_info, dict) else None,
        )

    async def get_team_ranking(self, page: int = 1) -> TeamRankingPage:
        """Get one page of the race's team ranking."""
        data = await self._get_api_data(
            f"{self.race_api_url}/ranking_team", params={"page": page}
        )

        teams: list[UpstreamTeam] = []
        for item in data.get("teams") or []:
            try:
                teams.append(UpstreamTeam.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping malformed team ranking row: {e}")

        try:
            count_total_distance = float(data.get("countTotalDistance") or 0)
        except (TypeError, ValueError):
            count_total_distance = 0.0

        return TeamRankingPage(teams=teams, count_total_distance=count_total_distance)
