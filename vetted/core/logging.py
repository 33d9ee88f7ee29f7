"""Structured Logging for the Validation Engine

Only schema compilation logs, once per schema:
- ``schema_compiled`` (debug): name, kind, size, elapsed time
- ``schema_compile_failed`` (error): the SchemaError's code and metadata
- ``field_without_rules`` (warning): a primitive field nothing checks

Evaluation never logs. The library only configures the ``vetted``
logger namespace, so host applications keep their own handlers.
"""
import logging
import sys

import structlog
from structlog.types import EventDict, Processor

from vetted import __version__
from vetted.core.config import Settings, get_settings

LOGGER_NAMESPACE = "vetted"


def _add_library_info(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Processor that tags events with the library name and version."""
    event_dict.setdefault("library", LOGGER_NAMESPACE)
    event_dict.setdefault("version", __version__)
    return event_dict


def get_shared_processors() -> list[Processor]:
    """Processors used for both structlog events and foreign stdlib records."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        _add_library_info,
    ]


def configure_logging(settings: Settings | None = None) -> None:
    """Route the ``vetted`` loggers to stdout.

    LOG_JSON selects JSON lines; otherwise events are rendered for a
    console. LOG_LEVEL=DEBUG shows per-schema compile timings.
    """
    settings = settings or get_settings()
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    shared_processors = get_shared_processors()

    if settings.LOG_JSON:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    library_logger = logging.getLogger(LOGGER_NAMESPACE)
    library_logger.handlers = [handler]
    library_logger.setLevel(log_level)
    library_logger.propagate = False


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


class LoggerRegistry:
    """One lazily created logger per engine component."""

    _loggers: dict[str, structlog.stdlib.BoundLogger] = {}

    @classmethod
    def get(cls, component: str) -> structlog.stdlib.BoundLogger:
        if component not in cls._loggers:
            cls._loggers[component] = get_logger(f"{LOGGER_NAMESPACE}.{component}")
        return cls._loggers[component]


def registry_logger() -> structlog.stdlib.BoundLogger:
    """Logger for schema registry compile events."""
    return LoggerRegistry.get("registry")


def frontend_logger() -> structlog.stdlib.BoundLogger:
    """Logger for the schema front-end (annotation reader, builders)."""
    return LoggerRegistry.get("frontend")
