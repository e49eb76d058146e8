from datetime import datetime

from src.core.schemas import CamelModel
from src.upstream.schemas import MemberDailyDistance


class MemberDaily(CamelModel):
    """Per-day distance table of one member, as scraped from their profile."""

    member_id: int
    daily_data: list[MemberDailyDistance]
    last_update: datetime
