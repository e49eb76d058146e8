"""API endpoints for ranking views."""

from fastapi import APIRouter, Depends, HTTPException, Path
from loguru import logger

from src.config import get_settings
from src.dependencies import get_ranking_service
from src.rankings.calculator import validate_window
from src.rankings.schemas import (
    DailyKmEntry,
    DailyKmRequest,
    PersonalRanking,
    TeamAggregate,
    TeamRanking,
    WeeklyKmEntry,
    WeeklyKmRequest,
    WeeklyTeamRequest,
)
from src.rankings.service import RankingService
from src.roster.service import RosterUnavailable
from src.upstream.exceptions import UpstreamException

router = APIRouter(prefix="/api", tags=["rankings"])


def _check_window(start_date, end_date) -> None:
    try:
        validate_window(start_date, end_date, get_settings().MAX_RANGE_DAYS)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _roster_error(e: RosterUnavailable) -> HTTPException:
    logger.error("Ranking request failed: roster unavailable", error=str(e))
    return HTTPException(status_code=500, detail=str(e))


def _upstream_error(e: UpstreamException) -> HTTPException:
    logger.error("Ranking request failed: upstream listing unavailable", error=str(e))
    return HTTPException(status_code=502, detail=f"Upstream ranking unavailable: {e}")


@router.post(
    "/daily-km",
    response_model=list[DailyKmEntry],
    response_model_exclude_none=True,
)
async def get_daily_km(
    request: DailyKmRequest,
    service: RankingService = Depends(get_ranking_service),
):
    """Daily ranking for the given participants.

    Parameters
    ----------
    request : DailyKmRequest
        ``memberIds`` and an optional ``date`` (defaults to today, GMT+7)

    Returns
    -------
    list[DailyKmEntry]
        Sorted by adjusted km descending
    """
    return await service.daily_ranking(request.member_ids, request.date)


@router.post(
    "/weekly-km",
    response_model=list[WeeklyKmEntry],
    response_model_exclude_none=True,
)
async def get_weekly_km(
    request: WeeklyKmRequest,
    service: RankingService = Depends(get_ranking_service),
):
    """Weekly (or any inclusive window) personal ranking.

    Raises
    ------
    HTTPException
        400 if the window is reversed or too long
    """
    _check_window(request.start_date, request.end_date)
    return await service.weekly_ranking(
        request.member_ids, request.start_date, request.end_date
    )


@router.post("/weekly-team-km", response_model=list[TeamAggregate])
async def get_weekly_team_km(
    request: WeeklyTeamRequest,
    service: RankingService = Depends(get_ranking_service),
):
    """Team ranking over a window, computed from the whole roster.

    Raises
    ------
    HTTPException
        400 if the window is invalid, 500 if the roster cannot be loaded
    """
    _check_window(request.start_date, request.end_date)
    try:
        return await service.weekly_team_ranking(
            request.start_date, request.end_date, request.sort_by
        )
    except RosterUnavailable as e:
        raise _roster_error(e)


@router.get("/race/personal/{page}", response_model=PersonalRanking)
async def get_personal_ranking(
    page: int = Path(..., ge=1),
    service: RankingService = Depends(get_ranking_service),
):
    """Overall personal ranking page with adjustments applied."""
    try:
        return await service.personal_ranking(page)
    except RosterUnavailable as e:
        raise _roster_error(e)
    except UpstreamException as e:
        raise _upstream_error(e)


@router.get("/race/team", response_model=TeamRanking)
async def get_team_ranking(service: RankingService = Depends(get_ranking_service)):
    """Overall team ranking with member adjustments applied."""
    try:
        return await service.team_ranking()
    except RosterUnavailable as e:
        raise _roster_error(e)
    except UpstreamException as e:
        raise _upstream_error(e)
