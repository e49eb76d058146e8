"""Adjustment persistence.

The ranking engine only needs three operations (list with filters, create,
delete by id). Two interchangeable implementations are provided: a
process-local list and a SQLAlchemy table.
"""

import asyncio
import uuid
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import AsyncIterator, Optional, Protocol

from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.adjustments.models import KmAdjustment
from src.adjustments.schemas import Adjustment
from src.config import get_settings
from src.core.lifespan import manager


class AdjustmentStoreError(Exception):
    """Raised when the adjustment backend cannot be read or written."""

    pass


def new_adjustment_id(bib_number: int, day: date) -> str:
    return f"{bib_number}-{day.isoformat()}-{uuid.uuid4().hex[:12]}"


class AdjustmentStore(Protocol):
    """Storage contract used by the merge engine and the admin routes."""

    async def list(
        self,
        date: Optional[date] = None,
        bib_number: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[Adjustment]: ...

    async def create(
        self, bib_number: int, date: date, adjustment_km: float, reason: str = ""
    ) -> Adjustment: ...

    async def delete(self, adjustment_id: str) -> bool: ...


def _matches(
    adj: Adjustment,
    day: Optional[date],
    bib_number: Optional[int],
    start_date: Optional[date],
    end_date: Optional[date],
) -> bool:
    if day is not None and adj.date != day:
        return False
    if bib_number is not None and adj.bib_number != bib_number:
        return False
    if start_date is not None and adj.date < start_date:
        return False
    if end_date is not None and adj.date > end_date:
        return False
    return True


class InMemoryAdjustmentStore:
    """Adjustments kept in a process-local list (lost on restart)."""

    def __init__(self, adjustments: Optional[list[Adjustment]] = None):
        self._items: list[Adjustment] = list(adjustments or [])
        self._lock = asyncio.Lock()

    async def list(
        self,
        date: Optional[date] = None,
        bib_number: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[Adjustment]:
        return [
            adj
            for adj in self._items
            if _matches(adj, date, bib_number, start_date, end_date)
        ]

    async def create(
        self, bib_number: int, date: date, adjustment_km: float, reason: str = ""
    ) -> Adjustment:
        adjustment = Adjustment(
            id=new_adjustment_id(bib_number, date),
            bib_number=bib_number,
            date=date,
            adjustment_km=adjustment_km,
            reason=reason,
            created_at=datetime.now(timezone.utc),
        )
        async with self._lock:
            self._items.append(adjustment)
        return adjustment

    async def delete(self, adjustment_id: str) -> bool:
        async with self._lock:
            before = len(self._items)
            self._items = [adj for adj in self._items if adj.id != adjustment_id]
            return len(self._items) != before


class SqlAdjustmentStore:
    """Adjustments stored in the ``km_adjustments`` table.

    Opens one session per operation; driver errors surface as
    ``AdjustmentStoreError``.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    async def list(
        self,
        date: Optional[date] = None,
        bib_number: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[Adjustment]:
        query = select(KmAdjustment).order_by(KmAdjustment.created_at)
        if date is not None:
            query = query.filter(KmAdjustment.date == date)
        if bib_number is not None:
            query = query.filter(KmAdjustment.bib_number == bib_number)
        if start_date is not None:
            query = query.filter(KmAdjustment.date >= start_date)
        if end_date is not None:
            query = query.filter(KmAdjustment.date <= end_date)

        try:
            async with self.session_maker() as session:
                result = await session.execute(query)
                rows = list(result.scalars().all())
        except SQLAlchemyError as e:
            raise AdjustmentStoreError(f"Failed to list adjustments: {e}") from e

        return [Adjustment.model_validate(row) for row in rows]

    async def create(
        self, bib_number: int, date: date, adjustment_km: float, reason: str = ""
    ) -> Adjustment:
        row = KmAdjustment(
            id=new_adjustment_id(bib_number, date),
            bib_number=bib_number,
            date=date,
            adjustment_km=adjustment_km,
            reason=reason,
            created_at=datetime.now(timezone.utc),
        )
        try:
            async with self.session_maker() as session:
                session.add(row)
                await session.commit()
                await session.refresh(row)
        except SQLAlchemyError as e:
            raise AdjustmentStoreError(f"Failed to create adjustment: {e}") from e

        return Adjustment.model_validate(row)

    async def delete(self, adjustment_id: str) -> bool:
        try:
            async with self.session_maker() as session:
                result = await session.execute(
                    delete(KmAdjustment).where(KmAdjustment.id == adjustment_id)
                )
                await session.commit()
        except SQLAlchemyError as e:
            raise AdjustmentStoreError(f"Failed to delete adjustment: {e}") from e

        return result.rowcount > 0


@manager.add
@asynccontextmanager
async def adjustment_store_lifespan() -> AsyncIterator[dict]:
    """
    Provide the process-local adjustment store when the memory backend is
    configured. The database backend is built per request from the session
    maker instead.
    """
    settings = get_settings()
    if settings.ADJUSTMENT_BACKEND != "memory":
        yield {}
        return

    logger.warning("Adjustments are kept in memory and will be lost on restart")
    yield {"adjustment_store": InMemoryAdjustmentStore()}
