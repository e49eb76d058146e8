"""Admin API for manual km adjustments."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from loguru import logger

from src.adjustments.schemas import Adjustment, AdjustmentCreate, DeleteResult
from src.adjustments.store import AdjustmentStore, AdjustmentStoreError
from src.core.cache import RankingCache
from src.dependencies import get_adjustment_store, get_ranking_cache, verify_admin_api_key

router = APIRouter(prefix="/api/km-adjustments", tags=["adjustments"])


def _store_error(e: AdjustmentStoreError) -> HTTPException:
    logger.error("Adjustment store unavailable", error=str(e))
    return HTTPException(status_code=503, detail="Adjustment store unavailable")


@router.get("", response_model=list[Adjustment])
async def list_adjustments(
    day: Optional[date] = Query(None, alias="date"),
    bib_number: Optional[int] = Query(None, alias="bibNumber"),
    store: AdjustmentStore = Depends(get_adjustment_store),
):
    """List adjustments, optionally filtered by day and BIB number."""
    try:
        return await store.list(date=day, bib_number=bib_number)
    except AdjustmentStoreError as e:
        raise _store_error(e)


@router.post(
    "",
    response_model=Adjustment,
    dependencies=[Depends(verify_admin_api_key)],
)
async def create_adjustment(
    request: AdjustmentCreate,
    store: AdjustmentStore = Depends(get_adjustment_store),
    cache: RankingCache = Depends(get_ranking_cache),
):
    """Create an adjustment and invalidate cached rankings.

    Raises
    ------
    HTTPException
        400 if ``bibNumber``, ``date`` or ``adjustmentKm`` is missing
    """
    if request.bib_number is None or request.date is None or request.adjustment_km is None:
        raise HTTPException(
            status_code=400,
            detail="Missing required fields: bibNumber, date, adjustmentKm",
        )

    try:
        adjustment = await store.create(
            bib_number=request.bib_number,
            date=request.date,
            adjustment_km=request.adjustment_km,
            reason=request.reason or "",
        )
    except AdjustmentStoreError as e:
        raise _store_error(e)

    cache.clear()
    logger.info(
        "Adjustment created",
        adjustment_id=adjustment.id,
        bib_number=adjustment.bib_number,
        date=str(adjustment.date),
        adjustment_km=adjustment.adjustment_km,
    )
    return adjustment


@router.delete(
    "",
    response_model=DeleteResult,
    dependencies=[Depends(verify_admin_api_key)],
)
async def delete_adjustment(
    adjustment_id: Optional[str] = Query(None, alias="id"),
    store: AdjustmentStore = Depends(get_adjustment_store),
    cache: RankingCache = Depends(get_ranking_cache),
):
    """Delete an adjustment by id and invalidate cached rankings."""
    if not adjustment_id:
        raise HTTPException(status_code=400, detail="Missing adjustment id")

    try:
        deleted = await store.delete(adjustment_id)
    except AdjustmentStoreError as e:
        raise _store_error(e)

    if not deleted:
        raise HTTPException(status_code=404, detail="Adjustment not found")

    cache.clear()
    logger.info("Adjustment deleted", adjustment_id=adjustment_id)
    return DeleteResult(success=True)
