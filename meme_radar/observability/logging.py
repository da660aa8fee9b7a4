"""
structlog configuration.

Production renders one JSON object per line; every other environment gets
the coloured console renderer. Records go to stderr so that CLI commands
can print JSON on stdout. Values bound with `bind_context` (the scan
service binds `cycle`) are attached to every record until cleared.
"""

import logging
import sys

import structlog
from structlog.types import Processor

from meme_radar.config.settings import get_settings

# Libraries that log every request at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "asyncio", "asyncpg")


def _renderer(production: bool) -> list[Processor]:
    if production:
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())]


def setup_logging(level: str | None = None) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        level: Overrides the LOG_LEVEL setting

    Usage:
        setup_logging()
        logger = structlog.get_logger(__name__)
        logger.info("Community scanned", community="stocks", posts=25)
    """
    settings = get_settings()
    log_level = getattr(logging, (level or settings.log_level).upper())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            *_renderer(settings.is_production),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=log_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_context(**kwargs) -> None:
    """Attach key/value pairs to every subsequent record in this context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
