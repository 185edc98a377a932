"""
Structured logging configuration.

structlog builds the event dict and hands it to the standard library as
`extra` fields. python-json-logger renders each record as one JSON line.
"""
import logging
import sys
from typing import Any, Callable, Dict, Optional

import structlog
from pythonjsonlogger import jsonlogger

from merchant_demo.config import Settings, get_settings

EventDict = Dict[str, Any]


def app_context(settings: Settings) -> Callable[[Any, str, EventDict], EventDict]:
    """Build a processor that stamps every event with the app name and env."""
    context = {"app_name": settings.app_name, "app_env": settings.app_env}

    def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        for key, value in context.items():
            event_dict.setdefault(key, value)
        return event_dict

    return add_app_context


def setup_logging(settings: Optional[Settings] = None) -> None:
    """
    Configure structured logging with JSON output on stdout.

    Sets up:
    - Request ID tracking via contextvars
    - App name and environment on every line
    - One JSON object per record with timestamp, level and logger name
    """
    settings = settings or get_settings()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            app_context(settings),
            structlog.stdlib.render_to_log_kwargs,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.log_level))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    json_handler = logging.StreamHandler(sys.stdout)
    formatter = jsonlogger.JsonFormatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s",
        rename_fields={
            "asctime": "timestamp",
            "levelname": "level",
            "name": "logger",
            "message": "event",
        },
    )
    json_handler.setFormatter(formatter)
    root_logger.addHandler(json_handler)

    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("stripe").setLevel(logging.INFO)

    structlog.get_logger(__name__).info(
        "logging_configured",
        log_level=settings.log_level,
    )
