"""
Structured logging configuration using structlog.

Provides JSON-formatted logs for production and pretty console
logs for development. Records from stdlib loggers (used by the alert,
extraction and ingestion modules) go through the same processor chain
via ``structlog.stdlib.ProcessorFormatter``, so every line shares one
format. Fields bound with ``structlog.contextvars`` (e.g. the API request
id) are merged into every entry.
"""

import logging
import sys

import structlog
from structlog.types import EventDict, Processor

from src.config.settings import get_settings

APP_NAME = "heart_monitor"

NOISY_LOGGERS = ("httpx", "httpcore", "asyncio", "discord", "uvicorn.access")


def add_app_context(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Tag every entry with the application name."""
    event_dict["app"] = APP_NAME
    return event_dict


def setup_logging(log_level: str | None = None) -> None:
    """
    Configure structured logging for the application.

    In production: JSON-formatted logs (easy to parse in log aggregators)
    In development: Pretty console output with colors

    Args:
        log_level: Overrides ``settings.log_level`` when given

    Usage:
        setup_logging()
        logger = structlog.get_logger()
        logger.info("Tier fired", message_id="123", tier="primary")
    """
    settings = get_settings()
    level = (log_level or settings.log_level).upper()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        add_app_context,
    ]

    if settings.is_production:
        renderer: Processor = structlog.processors.JSONRenderer()
        final_processors: list[Processor] = [
            structlog.processors.format_exc_info,
            renderer,
        ]
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)
        final_processors = [renderer]

    structlog.configure(
        processors=shared_processors
        + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta]
        + final_processors,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level, logging.INFO))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
