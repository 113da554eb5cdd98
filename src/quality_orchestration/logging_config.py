"""structlog configuration shared by every engine component."""

from __future__ import annotations

import logging
import sys
from typing import Any, Dict

import structlog
from structlog.stdlib import LoggerFactory

# Keys whose values may carry test source text; never emitted verbatim.
_CONTENT_KEYS = ("content", "source", "code_snippet")


class ContentRedactor:
    """Structlog processor that keeps raw test source out of log lines."""

    def __call__(self, logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        for key in _CONTENT_KEYS:
            if key in event_dict:
                event_dict[key] = "[REDACTED]"
        return event_dict


def configure_logging(level: str = "INFO", format_type: str = "console") -> None:
    """
    Set up structlog on top of stdlib logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: Log format (json, console)
    """
    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        ContentRedactor(),
    ]

    if format_type.lower() == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, level.upper()))
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger for ``name`` (typically ``__name__``)."""
    return structlog.get_logger(name)


__all__ = ["ContentRedactor", "configure_logging", "get_logger"]
