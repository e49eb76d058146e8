from contextlib import asynccontextmanager
from typing import AsyncIterator

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from src.config import get_settings
from src.core.lifespan import manager


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models"""

    pass


settings = get_settings()


def build_engine(database_url: str) -> AsyncEngine:
    """Create the async engine; SQLite does not take pool sizing options."""
    if database_url.startswith("sqlite"):
        return create_async_engine(database_url)
    return create_async_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
    )


async def create_tables(engine: AsyncEngine) -> None:
    """Create all model tables that do not exist yet."""
    # Register models on Base.metadata
    import src.adjustments.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@manager.add
@asynccontextmanager
async def database_lifespan() -> AsyncIterator[dict]:
    """
    Manage database connection lifecycle.
    Only active when adjustments are stored in the database.
    """
    if settings.ADJUSTMENT_BACKEND != "database":
        yield {}
        return

    logger.info("Initializing database connection pool")

    engine = build_engine(settings.DATABASE_URL)
    await create_tables(engine)

    session_maker = async_sessionmaker(
        engine,
        expire_on_commit=False,
    )

    logger.info("Database connection pool ready")

    yield {"session_maker": session_maker}

    logger.info("Shutting down database connection pool")
    await engine.dispose()
    logger.info("Database disconnected")
