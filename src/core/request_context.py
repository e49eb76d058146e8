"""Request-scoped context (request id) shared through contextvars.

The id set by the middleware propagates into every task spawned while
serving the request, including the per-participant scraping fan-out, so
all of a ranking computation's log lines can be tied back to one request.
"""

import uuid
from contextvars import ContextVar
from typing import Optional

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id() -> Optional[str]:
    return request_id_var.get()


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def generate_request_id() -> str:
    """Return a new UUID4 string."""
    return str(uuid.uuid4())
