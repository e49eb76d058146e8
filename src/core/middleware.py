"""FastAPI middleware for request context and logging.

Add to the app in this order (last added runs first):
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestContextMiddleware)
"""

import json
import time

from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from src.core.request_context import generate_request_id, get_request_id, set_request_id

REQUEST_ID_HEADER = "X-Request-ID"

# Ranking requests carry member id lists; keep logged bodies small
MAX_BODY_LOG_SIZE = 2000

SKIP_PATHS = {"/health"}


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign a request id and echo it in the response headers.

    An incoming ``X-Request-ID`` (e.g. from a proxy) is reused so traces
    line up across services.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or generate_request_id()
        set_request_id(request_id)

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def _summarize_body(body_bytes: bytes):
    if len(body_bytes) > MAX_BODY_LOG_SIZE:
        return f"<body too large: {len(body_bytes)} bytes>"
    try:
        body = json.loads(body_bytes)
    except json.JSONDecodeError:
        return body_bytes.decode("utf-8", errors="replace")[:500]

    # Summarize long member id lists instead of logging them verbatim
    if isinstance(body, dict) and isinstance(body.get("memberIds"), list):
        body = {**body, "memberIds": f"<{len(body['memberIds'])} ids>"}
    return body


class LoggingMiddleware(BaseHTTPMiddleware):
    """Log request start and completion with timing.

    Skips ``/health`` to reduce noise.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path in SKIP_PATHS:
            return await call_next(request)

        request_id = get_request_id()
        start_time = time.perf_counter()

        log_data = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "query_params": str(request.query_params),
            "client_ip": request.client.host if request.client else None,
        }
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            try:
                body_bytes = await request.body()
                if body_bytes:
                    log_data["body"] = _summarize_body(body_bytes)
            except Exception as e:
                log_data["body"] = f"<error reading body: {e}>"

        logger.info("Request started", **log_data)

        response = await call_next(request)

        logger.info(
            "Request completed",
            request_id=request_id,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )

        return response
