"""structlog setup.

Every event carries the app version and environment. Events that need a
human (a saga that could not undo its first write, an unhandled exception)
are tagged ``alert=true`` so log-based alerting can match on one field.
"""

import logging

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from fithero.config import Settings

ALERT_EVENTS = frozenset({"ledger_compensation_failed", "unhandled_exception"})


def app_context(settings: Settings) -> Processor:
    version = settings.app_version
    environment = settings.environment

    def _add(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("app_version", version)
        event_dict.setdefault("environment", environment)
        return event_dict

    return _add


def tag_alerts(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
    if event_dict.get("event") in ALERT_EVENTS:
        event_dict["alert"] = True
    return event_dict


def setup_logging(settings: Settings) -> None:
    """JSON lines when deployed, coloured console output locally."""
    renderer: Processor = (
        structlog.processors.JSONRenderer() if settings.log_format == "json" else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            app_context(settings),
            tag_alerts,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if settings.debug else logging.WARNING)
