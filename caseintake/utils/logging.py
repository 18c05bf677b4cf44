"""
Logging configuration for the Case Intake service.

Logs are structured with structlog. Document content must never reach a log
line: events carrying document text are stripped, and any NHI-shaped token in
a string value is masked before rendering.
"""

import logging
import sys
from typing import Any, Dict

import structlog
from structlog.stdlib import LoggerFactory
from structlog.types import Processor

from caseintake.core.config import Environment, LogLevel, settings
from caseintake.utils.privacy import NHI_PATTERN, NHI_PLACEHOLDER

# Event keys that may hold document content
CONTENT_KEYS = frozenset({"text", "raw_text", "document_text", "image", "images"})


def add_service_info(logger: Any, name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add service information to the event dict."""
    event_dict["service"] = settings.PROJECT_NAME
    event_dict["version"] = settings.VERSION
    event_dict["environment"] = settings.ENVIRONMENT
    return event_dict


def scrub_document_content(logger: Any, name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Drop content-bearing keys and mask identifiers in string values."""
    for key in CONTENT_KEYS.intersection(event_dict):
        event_dict[key] = "[omitted]"
    for key, value in event_dict.items():
        if isinstance(value, str):
            event_dict[key] = NHI_PATTERN.sub(NHI_PLACEHOLDER, value)
    return event_dict


def configure_logging(log_level: LogLevel = LogLevel.INFO) -> None:
    """
    Configure structured logging for the application.

    Development gets a console renderer; every other environment logs JSON.

    Args:
        log_level: Logging level to use
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level.upper(),
    )

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_service_info,
        structlog.processors.format_exc_info,
        scrub_document_content,
    ]

    if settings.ENVIRONMENT == Environment.DEVELOPMENT:
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.extend([
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ])

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
