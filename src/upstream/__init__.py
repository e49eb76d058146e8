"""Async client for the upstream race platform."""

from src.upstream.client import AsyncRaceClient
from src.upstream.parser import ActivityPageParser

__all__ = ["AsyncRaceClient", "ActivityPageParser"]
