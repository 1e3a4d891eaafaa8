"""
structlog setup for the facet engine.

Console output while developing, one JSON object per line in production.
Raw attribute payloads can be arbitrarily long, so string fields are
clipped before rendering.

Usage:
    from core.logging import configure_logging, get_logger

    configure_logging(json_logs=settings.is_production, log_level=settings.log_level)
    logger = get_logger(__name__)
    logger.info("Catalog query complete", candidates=120, matched=14)
"""

import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor, WrappedLogger


MAX_FIELD_CHARS = 200

# Third-party loggers that report every HTTP round trip at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "hpack", "uvicorn.access")


def clip_long_fields(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Truncate string values longer than MAX_FIELD_CHARS (the event itself is kept)."""
    for key, value in event_dict.items():
        if key != "event" and isinstance(value, str) and len(value) > MAX_FIELD_CHARS:
            event_dict[key] = value[:MAX_FIELD_CHARS] + f"...(+{len(value) - MAX_FIELD_CHARS} chars)"
    return event_dict


def configure_logging(
    json_logs: bool = False,
    log_level: str = "INFO",
    include_timestamp: bool = True,
) -> None:
    """
    Configure structlog and route it through the standard library root logger.

    Args:
        json_logs: JSON lines instead of the colored console renderer.
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL.
        include_timestamp: Stamp each event with an ISO timestamp.
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        clip_long_fields,
    ]
    if include_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso", utc=True))

    if json_logs:
        processors += [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    level = logging.getLevelName(log_level.upper())
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, logging.getLogger().level))


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger, usually ``get_logger(__name__)``."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Attach key/values to every event logged from the current request context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
