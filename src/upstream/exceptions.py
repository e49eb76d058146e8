"""Upstream race platform exceptions."""

from typing import Optional


class UpstreamException(Exception):
    """Base exception for upstream platform errors."""

    pass


class FetchFailure(UpstreamException):
    """Raised when an upstream request fails (network, timeout, non-2xx).

    Parameters
    ----------
    message : str
        Human readable reason
    participant_id : int, optional
        Participant whose feed was being fetched, if any
    page : int, optional
        Page number being fetched, if any
    status_code : int, optional
        HTTP status when the upstream answered with an error
    """

    def __init__(
        self,
        message: str,
        participant_id: Optional[int] = None,
        page: Optional[int] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.participant_id = participant_id
        self.page = page
        self.status_code = status_code


class UpstreamParseError(UpstreamException):
    """Raised when an upstream JSON payload has an unusable shape."""

    pass
