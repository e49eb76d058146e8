from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

import src.adjustments.store  # noqa: F401 - registers adjustment store lifespan
import src.core.cache  # noqa: F401
import src.core.database  # noqa: F401
import src.core.logging_config  # noqa: F401 - registers logging lifespan
import src.upstream.service  # noqa: F401 - registers upstream client lifespan
from src.adjustments.router import router as adjustments_router
from src.config import get_settings
from src.core.lifespan import manager
from src.core.logging_config import configure_logging
from src.core.middleware import LoggingMiddleware, RequestContextMiddleware
from src.core.request_context import get_request_id
from src.members.router import router as members_router
from src.rankings.router import router as rankings_router

# Sinks must be installed before any module logs at import or startup
configure_logging()

settings = get_settings()

app_configs = {
    "title": settings.APP_NAME,
    "version": "1.0.0",
    "lifespan": manager,
}

if settings.ENVIRONMENT not in ("local", "staging"):
    app_configs["openapi_url"] = None

app = FastAPI(**app_configs)

# Last added runs first: the request id must exist before requests are logged
app.add_middleware(LoggingMiddleware)
app.add_middleware(RequestContextMiddleware)

if settings.CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(rankings_router)
app.include_router(members_router)
app.include_router(adjustments_router)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Last-resort 500 for errors no route translated.

    Upstream, roster and adjustment-store errors are mapped by the routes;
    anything reaching this handler is a bug and is logged with its
    traceback and request id.
    """
    request_id = get_request_id()
    logger.opt(exception=exc).error(
        "Unhandled exception",
        request_id=request_id,
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__,
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "request_id": request_id},
    )


@app.get("/health")
async def health():
    return {"status": "healthy"}
