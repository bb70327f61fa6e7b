"""
Structured logging for the calendar engine (structlog over stdlib logging).

Library code only asks for loggers; applications call ``setup_logging``
once at startup. Console output is used by default, JSON when
CALENDAR_ENGINE_LOG_FORMAT=json or the engine config asks for it.

Usage:
    from calendar_engine.logging_config import get_logger, setup_logging
    setup_logging()
    logger = get_logger(__name__)
    logger.info("search_complete", candidates=42, truncated=False)
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from calendar_engine.config_models import LoggingConfig


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _resolve(level: str | None, json_output: bool | None, config: LoggingConfig | None) -> tuple[int, bool]:
    """Explicit arguments win over the config section, which wins over the environment."""
    if config is not None:
        level = level or config.level
        json_output = config.json_output if json_output is None else json_output
    level = level or os.environ.get("CALENDAR_ENGINE_LOG_LEVEL", "INFO")
    if json_output is None:
        json_output = os.environ.get("CALENDAR_ENGINE_LOG_FORMAT", "").lower() == "json"
    return getattr(logging, level.upper(), logging.INFO), json_output


def setup_logging(
    level: str | None = None,
    json_output: bool | None = None,
    config: LoggingConfig | None = None,
) -> None:
    numeric_level, json_output = _resolve(level, json_output, config)

    structlog.configure(
        processors=[*_shared_processors(), structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric_level)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


@contextmanager
def operation_context(operation: str, **fields: Any) -> Iterator[None]:
    """Bind ``operation`` and extra fields to every log line inside the block."""
    with structlog.contextvars.bound_contextvars(operation=operation, **fields):
        yield


__all__ = ["get_logger", "operation_context", "setup_logging"]
