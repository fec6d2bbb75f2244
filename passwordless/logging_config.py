"""Logging setup shared by the API, the CLI and the migrations.

Application modules log through the standard library; the HTTP layer logs
through structlog. Both end up on one stderr handler so request traces and
ceremony outcomes interleave in order.
"""

import logging
import sys
from typing import Literal

import structlog

from passwordless.settings import get_settings

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]

LOG_FORMAT = "%(levelname)s | %(name)s | %(message)s"

# Third-party loggers capped at WARNING unless listed otherwise
NOISY_LOGGERS: dict[str, int] = {
    "alembic.runtime.migration": logging.WARNING,
    "asyncio": logging.WARNING,
    "httpcore": logging.WARNING,
    "httpx": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "sqlalchemy.pool": logging.ERROR,
    "uvicorn.access": logging.WARNING,
}


def suppress_noisy_loggers() -> None:
    """Cap third-party loggers and drop handlers they installed themselves."""
    for name, level in NOISY_LOGGERS.items():
        logger = logging.getLogger(name)
        logger.setLevel(level)
        logger.handlers.clear()


def _configure_structlog() -> None:
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.processors.format_exc_info,
            structlog.processors.KeyValueRenderer(key_order=["event"], sort_keys=True),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def configure_logging(level: LogLevel | None = None) -> None:
    """Install the stderr handler and route structlog through it.

    Args:
        level: Override log level (defaults to settings.log_level)
    """
    log_level = getattr(logging, level or get_settings().log_level)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(handler)

    logging.getLogger("passwordless").setLevel(log_level)

    suppress_noisy_loggers()
    _configure_structlog()


# Configure logging on module import
configure_logging()
