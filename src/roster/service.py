"""Roster loading and lookups."""

import asyncio
import json
from pathlib import Path
from typing import Optional

from loguru import logger
from pydantic import ValidationError

from src.rankings.assembler import has_team
from src.roster.schemas import RosterEntry


class RosterUnavailable(Exception):
    """Raised when the roster cannot be loaded; rankings cannot proceed."""

    pass


class Roster:
    """Participant list with team and ban lookups."""

    def __init__(self, entries: list[RosterEntry]):
        self.entries = entries
        self._by_id = {entry.member_id: entry for entry in entries}

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def member_ids(self) -> list[int]:
        return [entry.member_id for entry in self.entries]

    @property
    def banned(self) -> list[RosterEntry]:
        """Participants excluded from the upstream listing."""
        return [entry for entry in self.entries if entry.ban]

    def team_of(self, member_id: int) -> Optional[str]:
        """Team name, or None for unknown participants and placeholder teams."""
        entry = self._by_id.get(member_id)
        if entry is None or not has_team(entry.team_name):
            return None
        return entry.team_name.strip()

    def name_of(self, member_id: int) -> str:
        entry = self._by_id.get(member_id)
        return entry.name if entry else ""


def parse_roster(payload: object) -> Roster:
    """Validate a decoded roster payload, skipping malformed entries.

    Raises
    ------
    RosterUnavailable
        If the payload is not a list
    """
    if not isinstance(payload, list):
        raise RosterUnavailable("Roster must be a JSON list of participants")

    entries: list[RosterEntry] = []
    for index, item in enumerate(payload):
        try:
            entries.append(RosterEntry.model_validate(item))
        except (ValidationError, TypeError, ValueError) as e:
            logger.warning("Skipping invalid roster entry", index=index, error=str(e))
    return Roster(entries)


class RosterService:
    """Loads the roster JSON file on demand."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    async def load(self) -> Roster:
        """Read and validate the roster file.

        Raises
        ------
        RosterUnavailable
            If the file is missing, unreadable or not a JSON list
        """
        try:
            raw = await asyncio.to_thread(self.path.read_text, encoding="utf-8")
            payload = json.loads(raw)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Failed to load roster", path=str(self.path), error=str(e))
            raise RosterUnavailable(f"Failed to load roster from {self.path}") from e

        roster = parse_roster(payload)
        logger.debug("Roster loaded", path=str(self.path), participants=len(roster))
        return roster
