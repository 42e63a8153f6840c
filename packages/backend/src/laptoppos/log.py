"""structlog setup shared by the API server and the CLI.

Learn: Every module does `logger = structlog.get_logger()` and logs dotted
event names with keyword context. This function only decides how those
events are rendered: coloured console lines in development, JSON lines
when LAPTOPPOS_LOG_JSON is set (log shippers want one object per line).
"""

import logging

import structlog

from laptoppos.config import settings


def configure_logging(json: bool | None = None, level: str | None = None) -> None:
    """Configure structlog processors and the stdlib root level."""
    use_json = settings.log_json if json is None else json
    level_name = (level or settings.log_level).upper()

    logging.basicConfig(format="%(message)s", level=level_name)

    renderer = (
        structlog.processors.JSONRenderer()
        if use_json
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
        cache_logger_on_first_use=False,
    )
