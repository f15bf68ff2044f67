"""Structured logging setup (structlog on top of the stdlib root logger).

LOG_FORMAT selects the renderer: "json" for log aggregation, "console"
for human-readable output. LOG_LEVEL is one of the stdlib level names.
"""
from __future__ import annotations

import logging
import sys
from enum import Enum
from typing import Any, MutableMapping

import structlog

_VALID_LOG_FORMATS = {"json", "console"}
_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _serialize_enums(
    _logger: object,
    _method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Replace Enum values with their .value so every renderer sees plain data."""
    for key, value in event_dict.items():
        if isinstance(value, Enum):
            event_dict[key] = value.value
    return event_dict


def _resolve_level(level: str) -> int:
    value = level.upper()
    if value not in _VALID_LOG_LEVELS:
        raise ValueError(f"Invalid LOG_LEVEL={level!r}. Must be one of {', '.join(sorted(_VALID_LOG_LEVELS))}.")
    return getattr(logging, value)


def _build_formatter(*, json_mode: bool, colors: bool) -> logging.Formatter:
    renderer = structlog.processors.JSONRenderer() if json_mode else structlog.dev.ConsoleRenderer(colors=colors)
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )


def setup_logging(level: str = "INFO", fmt: str = "console") -> None:
    """Configure structlog and route it through a single stdout handler.

    Safe to call more than once; the root handlers are replaced each time.
    """
    fmt = fmt.lower()
    if fmt not in _VALID_LOG_FORMATS:
        raise ValueError(f"Invalid LOG_FORMAT={fmt!r}. Must be 'json' or 'console'.")
    numeric_level = _resolve_level(level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            _serialize_enums,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_build_formatter(json_mode=fmt == "json", colors=sys.stdout.isatty()))
    root_logger.addHandler(handler)
