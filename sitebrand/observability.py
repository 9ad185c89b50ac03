"""Logging configuration for the extractor.

Components log through ``structlog`` on top of the standard library
``logging`` module so host applications can route or silence the output with
ordinary handlers.  Log events are operator-facing only; the ``warnings``
list of an extraction result stays the sole user-visible error channel.
"""

from __future__ import annotations

import json
import logging
from functools import partial

import structlog

from sitebrand.config import settings

_configured = False


def configure_logging(level: str | None = None, json_output: bool | None = None) -> None:
    """Configure stdlib logging and structlog (idempotent)."""
    global _configured
    if _configured:
        return

    level_name = (level or settings.log_level or "INFO").upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO), format="%(message)s")

    use_json = settings.log_json if json_output is None else json_output
    renderer = (
        structlog.processors.JSONRenderer(serializer=partial(json.dumps, ensure_ascii=False))
        if use_json
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.add_log_level,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    _configured = True
