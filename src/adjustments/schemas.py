"""Pydantic schemas for km adjustments."""

import datetime as dt
from datetime import date, datetime
from typing import Optional

from pydantic import ConfigDict

from src.core.schemas import CamelModel


class Adjustment(CamelModel):
    """Manual correction to a participant's counted distance for one day.

    Attributes
    ----------
    id : str
        Opaque identifier used for deletion
    bib_number : int
        Participant id the correction applies to
    date : date
        Day the correction is booked on
    adjustment_km : float
        Signed km delta
    reason : str
        Free text shown in the admin form
    created_at : datetime
        Creation time (UTC)
    """

    model_config = ConfigDict(from_attributes=True)

    id: str
    bib_number: int
    date: date
    adjustment_km: float
    reason: str = ""
    created_at: datetime


class AdjustmentCreate(CamelModel):
    """Body of ``POST /api/km-adjustments``.

    Every field is optional at the schema level so that missing fields are
    answered with a 400 by the route, like the admin form expects.
    """

    bib_number: Optional[int] = None
    date: Optional[dt.date] = None
    adjustment_km: Optional[float] = None
    reason: Optional[str] = None


class DeleteResult(CamelModel):
    success: bool
