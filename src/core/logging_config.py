"""Logging configuration using loguru.

Local runs get a colourised console format; staging and production emit one
JSON object per line so scrape runs can be filtered by member, page or
request id in the log aggregator.

Standard library loggers (httpx, uvicorn, SQLAlchemy and our own modules
that use ``logging.getLogger``) are routed into loguru as well.
"""

import json
import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator

from loguru import logger

from src.config import get_settings
from src.core.lifespan import manager

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = {
    "uvicorn": logging.INFO,
    "uvicorn.access": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "aiosqlite": logging.WARNING,
}


def serialize_record(record: dict) -> str:
    """Render a loguru record as a compact JSON line."""
    subset = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "logger": record["name"],
        "function": record["function"],
        "line": record["line"],
        "message": record["message"],
    }

    for key, value in record["extra"].items():
        if not key.startswith("_"):
            subset[key] = value

    if record["exception"]:
        exc_type, exc_value, _ = record["exception"]
        subset["exception"] = {
            "type": exc_type.__name__ if exc_type else None,
            "value": str(exc_value),
        }

    return json.dumps(subset, default=str)


def json_sink(message) -> None:
    print(serialize_record(message.record), file=sys.stderr)


class InterceptHandler(logging.Handler):
    """Routes standard logging records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find the caller outside of the logging module
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def configure_logging() -> None:
    """Configure loguru based on environment settings.

    Removes the default handler, installs the console or JSON sink and
    intercepts standard library logging.
    """
    settings = get_settings()

    logger.remove()

    if settings.ENVIRONMENT == "local":
        logger.add(
            sys.stderr,
            format=(
                "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
                "<level>{message}</level> | {extra}"
            ),
            level=settings.LOG_LEVEL,
            colorize=True,
        )
    else:
        logger.add(json_sink, level=settings.LOG_LEVEL)

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    for name, level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)


@manager.add
@asynccontextmanager
async def logging_lifespan() -> AsyncIterator[dict]:
    """Log application startup and shutdown events."""
    settings = get_settings()

    logger.info(
        "Application starting",
        app_name=settings.APP_NAME,
        environment=settings.ENVIRONMENT,
        log_level=settings.LOG_LEVEL,
        race_id=settings.RACE_ID,
        adjustment_backend=settings.ADJUSTMENT_BACKEND,
    )

    yield {}

    logger.info("Application shutting down")
