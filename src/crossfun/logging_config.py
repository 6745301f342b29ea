"""structlog setup.

Learn: structlog works out of the box, but the default chain does not
merge contextvars, so the request_id bound by RequestIdMiddleware would
never reach the output. configure_logging() installs that processor and
picks a renderer: colored console lines in development, one JSON object
per line everywhere else.
"""

import logging

import structlog

from crossfun.config import settings


def configure_logging(level: str | None = None, json_logs: bool | None = None) -> None:
    """Configure structlog once at startup."""
    level_name = (level or settings.log_level).upper()
    if json_logs is None:
        json_logs = settings.log_json or settings.environment != "development"

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level_name)
        ),
        cache_logger_on_first_use=True,
    )
