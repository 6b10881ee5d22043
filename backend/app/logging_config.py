from __future__ import annotations

import logging
import sys

import structlog

from app.config.settings import settings


def setup_logging(level: str | None = None, json_logs: bool | None = None) -> None:
    log_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)
    use_json = settings.json_logs if json_logs is None else json_logs

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)

    renderer = (
        structlog.processors.JSONRenderer()
        if use_json
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
