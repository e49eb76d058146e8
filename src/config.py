from datetime import date
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # APP
    APP_NAME: str = "Race Km Leaderboard"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL

    # Upstream race platform
    UPSTREAM_BASE_URL: str = "https://84race.com"
    RACE_ID: int = 16790
    UPSTREAM_API_TOKEN: str = ""  # sent as x-ap to the JSON API
    UPSTREAM_USER_AGENT: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/139.0.0.0 Safari/537.36"
    )
    UPSTREAM_API_USER_AGENT: str = "okhttp/5.0.0-alpha.14"
    UPSTREAM_TIMEOUT_SECONDS: float = 15.0
    UPSTREAM_MAX_CONCURRENCY: int = 8
    UPSTREAM_UTC_OFFSET_HOURS: int = 7

    # Ranking computation
    MAX_PAGES_PER_PARTICIPANT: int = 50
    TEAM_RANKING_PAGES: int = 2
    MAX_RANGE_DAYS: int = 31
    RACE_START_DATE: date | None = None
    RACE_END_DATE: date | None = None

    # Result cache TTLs (seconds)
    DAILY_CACHE_TTL_SECONDS: int = 5 * 60
    WEEKLY_CACHE_TTL_SECONDS: int = 10 * 60
    OVERALL_CACHE_TTL_SECONDS: int = 5 * 60
    MEMBER_CACHE_TTL_SECONDS: int = 24 * 60 * 60

    # Roster
    ROSTER_PATH: str = "data/user.json"

    # Adjustments
    ADJUSTMENT_BACKEND: Literal["memory", "database"] = "memory"
    DATABASE_URL: str = "sqlite+aiosqlite:///./adjustments.db"

    # CORS
    CORS_ORIGINS: list[str] = ["*"]

    # Security (optional - adjustment writes are open when unset)
    ADMIN_API_KEY: str | None = None

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Cached settings only loads once"""
    return Settings()
