"""
Logging Configuration
loguru sinks for the service, with standard logging routed through them
"""

import logging
import sys
from typing import Any, Optional

from loguru import logger as loguru_logger

from chartshare.core.config import settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan> - <level>{message}</level>"
)
PLAIN_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[component]} - {message}"

# Libraries whose own loggers are too chatty below WARNING
QUIET_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "aiosqlite", "asyncpg")


class InterceptHandler(logging.Handler):
    """Forward standard logging records to loguru, keeping the original caller"""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = loguru_logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        loguru_logger.bind(component=record.name).opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def setup_logging() -> None:
    """
    Configure loguru for the service

    DEBUG gives coloured console lines; otherwise every record is one JSON
    document on stdout. LOG_FILE adds a rotating JSON file sink.
    """
    loguru_logger.remove()
    loguru_logger.configure(extra={"component": "chartshare", "environment": settings.ENVIRONMENT})

    if settings.DEBUG:
        loguru_logger.add(sys.stdout, format=CONSOLE_FORMAT, level="DEBUG", colorize=True)
    else:
        loguru_logger.add(sys.stdout, format=PLAIN_FORMAT, level=settings.LOG_LEVEL, serialize=True)

    if settings.LOG_FILE:
        loguru_logger.add(
            settings.LOG_FILE,
            format=PLAIN_FORMAT,
            rotation="50 MB",
            retention="14 days",
            compression="zip",
            level=settings.LOG_LEVEL,
            serialize=True,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in ("uvicorn", "uvicorn.access", "uvicorn.error", "fastapi"):
        logging.getLogger(name).handlers = [InterceptHandler()]
        logging.getLogger(name).propagate = False
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> Any:
    """Logger tagged with the calling module as its component"""
    return loguru_logger.bind(component=name)


def mask_token(token: Optional[str]) -> str:
    """First eight characters of a share token; full tokens never reach the logs"""
    if not token:
        return "null"
    return f"{token[:8]}..."
