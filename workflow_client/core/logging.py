"""Logging configuration for the workflow client.

Structlog loggers (``LoggerMixin``) and plain ``logging.getLogger(__name__)``
loggers render through one ``ProcessorFormatter`` attached to the package
logger, so a host application sees a single, uniform stream. The host's
root logger is left alone.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.contextvars import merge_contextvars
from structlog.processors import JSONRenderer, TimeStamper, add_log_level
from structlog.stdlib import ExtraAdder, ProcessorFormatter, add_logger_name

from workflow_client.core.config import Settings, get_settings

PACKAGE_LOGGER = "workflow_client"


def _shared_processors() -> list[Any]:
    return [
        merge_contextvars,
        add_log_level,
        add_logger_name,
        TimeStamper(fmt="iso"),
    ]


def setup_logging(settings: Settings | None = None) -> None:
    """Configure structured logging for the ``workflow_client`` logger tree."""
    settings = settings or get_settings()
    log_level = str(getattr(settings.app.log_level, "value", settings.app.log_level)).upper()

    if settings.observability.log_record_format == "json":
        renderer: Any = JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_shared_processors(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        ProcessorFormatter(
            foreign_pre_chain=[*_shared_processors(), ExtraAdder()],
            processors=[ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.handlers = [handler]
    package_logger.setLevel(log_level)
    package_logger.propagate = False


def bind_log_context(**values: Any) -> None:
    """Attach values (e.g. ``transaction_id``) to every log line in this task."""
    structlog.contextvars.bind_contextvars(**values)


def clear_log_context() -> None:
    structlog.contextvars.clear_contextvars()


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger for a module."""
    return structlog.get_logger(name)


class LoggerMixin:
    """Mixin providing a logger bound to the concrete class name."""

    @property
    def logger(self) -> structlog.stdlib.BoundLogger:
        return get_logger(self.__class__.__module__).bind(component=type(self).__name__)
