"""Structured logging setup using structlog."""

from __future__ import annotations

import logging
import os
import sys

import structlog


SERVICE_NAME = "signal-brain"


def setup_logging(log_level: str = "INFO", **context: str) -> None:
    """Configure structlog. Set JSON_LOGS=1 for JSON output (VPS), default is console (dev).

    Every event carries ``service`` plus any extra ``context``, such as the
    monitored channel.
    """
    use_json = os.environ.get("JSON_LOGS", "").strip() in ("1", "true", "yes")

    renderer = (
        structlog.processors.JSONRenderer(ensure_ascii=False)
        if use_json
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(service=SERVICE_NAME, **context)

    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    logging.getLogger("telethon").setLevel(logging.WARNING)
