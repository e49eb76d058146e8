"""Pure date helpers for ranking windows.

No I/O - everything here can be tested in isolation.
"""

from datetime import date, datetime, timedelta, timezone


def date_range(start: date, end: date) -> list[date]:
    """Every calendar day from ``start`` to ``end``, both inclusive.

    Returns an empty list when ``end`` is before ``start``.
    """
    days = (end - start).days
    return [start + timedelta(days=offset) for offset in range(days + 1)]


def today_at_offset(utc_offset_hours: int, now: datetime | None = None) -> date:
    """Calendar day at a fixed UTC offset (the upstream reports GMT+7)."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone(timedelta(hours=utc_offset_hours))).date()


def race_window(
    today: date, race_start: date | None, race_end: date | None
) -> tuple[date | None, date]:
    """Window used for whole-race totals: race start up to today or race end."""
    end = today if race_end is None else min(today, race_end)
    return race_start, end


def validate_window(start: date, end: date, max_days: int) -> None:
    """Reject reversed or oversized windows.

    Raises
    ------
    ValueError
        If ``end`` is before ``start`` or the window spans more than
        ``max_days`` days
    """
    if end < start:
        raise ValueError("endDate must not be before startDate")
    span = (end - start).days + 1
    if span > max_days:
        raise ValueError(f"Date window spans {span} days, maximum is {max_days}")
