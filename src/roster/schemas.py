"""Pydantic schemas for the participant roster file."""

from typing import Optional

from pydantic import BaseModel, field_validator


class RosterEntry(BaseModel):
    """One participant as listed in ``user.json``.

    ``member_id`` is stored as a string in the file and parsed to int here.
    """

    name: str
    member_id: int
    team_name: Optional[str] = None
    gender: Optional[str] = None
    strava_id: Optional[str] = None
    ban: bool = False

    @field_validator("member_id", mode="before")
    @classmethod
    def _parse_member_id(cls, value):
        if isinstance(value, str):
            value = value.strip()
        return int(value)

    @field_validator("strava_id", mode="before")
    @classmethod
    def _stringify_strava_id(cls, value):
        return None if value is None else str(value)
