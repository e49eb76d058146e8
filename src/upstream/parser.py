"""Markup extraction for the upstream race platform.

Everything that knows about the platform's HTML lives here so that the
pagination logic only ever sees ``ActivityPage`` objects.
"""

import logging
import re
from datetime import date, datetime
from typing import Optional

from bs4 import BeautifulSoup, Tag

from src.upstream.schemas import ActivityPage, ActivityRecord, MemberDailyDistance

logger = logging.getLogger(__name__)

# "12.34 km", "5km"
_DISTANCE_PATTERN = re.compile(r"([\d.]+)\s*km")
_NON_NUMERIC = re.compile(r"[^\d.]")

# Upstream timestamps look like "21/10/2025 06:12:45 (GMT+7)"
ACTIVITY_DATE_FORMAT = "%d/%m/%Y"


def parse_activity_date(text: str) -> Optional[date]:
    """Extract the calendar day from an upstream timestamp.

    Parameters
    ----------
    text : str
        Raw text such as ``"21/10/2025 06:12:45 (GMT+7)"``

    Returns
    -------
    date | None
        Calendar day, or None when the text is empty or malformed
    """
    text = text.strip()
    if not text:
        return None
    try:
        return datetime.strptime(text.split(" ")[0], ACTIVITY_DATE_FORMAT).date()
    except ValueError:
        return None


def parse_distance_km(text: str) -> float:
    """Pull the km value out of a free-text distance field.

    Returns 0.0 when no ``<number> km`` token is present.
    """
    match = _DISTANCE_PATTERN.search(text)
    if not match:
        return 0.0
    try:
        return float(match.group(1))
    except ValueError:
        return 0.0


class ActivityPageParser:
    """Turns one page of a participant's activity feed into records.

    Selectors:
    - ``.post``: one activity entry
    - ``time``: localized timestamp
    - first ``.ibl`` of the first ``.cell``: distance text
    - ``h4.name.ellipsis`` carrying ``text-danger``: violation flag
    """

    violation_class = "text-danger"

    def parse(self, markup: str, participant_id: int) -> ActivityPage:
        soup = BeautifulSoup(markup, "html.parser")
        posts = soup.select(".post")

        records: list[ActivityRecord] = []
        for post in posts:
            record = self._parse_post(post, participant_id)
            if record is not None:
                records.append(record)

        return ActivityPage(activities=records, entry_count=len(posts))

    def _parse_post(self, post: Tag, participant_id: int) -> Optional[ActivityRecord]:
        time_el = post.find("time")
        activity_date = parse_activity_date(time_el.get_text()) if time_el else None
        if activity_date is None:
            logger.debug(f"Skipping undated activity entry for member {participant_id}")
            return None

        distance_text = ""
        cell = post.select_one(".cell")
        if cell is not None:
            ibl = cell.select_one(".ibl")
            if ibl is not None:
                distance_text = ibl.get_text(strip=True)

        name_el = post.select_one("h4.name.ellipsis")
        is_violation = bool(
            name_el is not None and self.violation_class in (name_el.get("class") or [])
        )

        return ActivityRecord(
            participant_id=participant_id,
            date=activity_date,
            distance_km=parse_distance_km(distance_text),
            is_violation=is_violation,
        )


def parse_member_daily_table(markup: str) -> list[MemberDailyDistance]:
    """Extract ``(date, km)`` rows from a member's public profile page."""
    soup = BeautifulSoup(markup, "html.parser")
    rows: list[MemberDailyDistance] = []

    for row in soup.select("table tbody tr"):
        cells = row.find_all("td")
        if len(cells) < 2:
            continue
        date_text = cells[0].get_text(strip=True)
        km_text = cells[1].get_text(strip=True)
        if not date_text or not km_text:
            continue
        try:
            km = float(_NON_NUMERIC.sub("", km_text))
        except ValueError:
            km = 0.0
        rows.append(MemberDailyDistance(date=date_text, km=km))

    return rows
