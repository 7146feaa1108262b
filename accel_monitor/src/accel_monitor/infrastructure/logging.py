"""Structured logging for the accelerator monitor.

Domain code logs through the standard library; structlog renders those
records and its own events through one handler, so management library
traces and watcher messages share a format and carry the same context.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor

from accel_monitor.infrastructure.config import Config, ObservabilityConfig, get_config

SERVICE_NAME = "accel_monitor"


def add_service_context(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Tag every entry with the service name."""
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        add_service_context,
    ]


def _renderer(observability: ObservabilityConfig) -> Processor:
    if observability.log_format == "console":
        return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    return structlog.processors.JSONRenderer()


def setup_logging(config: Config | None = None) -> structlog.stdlib.BoundLogger:
    """Route stdlib and structlog output through one structured handler.

    The selected management library mode is bound as context, so every
    entry says whether it came from real hardware or a stand-in.
    """
    config = config or get_config()
    shared = _shared_processors()

    structlog.configure(
        processors=shared + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(config.observability),
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(config.observability.log_level)

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(library_mode=config.library.mode)

    # gRPC exporter retries are noisy when no collector is listening
    logging.getLogger("opentelemetry.exporter").setLevel(logging.ERROR)

    return structlog.get_logger(SERVICE_NAME)


def get_logger(component: str | None = None) -> structlog.stdlib.BoundLogger:
    """Structured logger, bound to a component name when given."""
    logger = structlog.get_logger(SERVICE_NAME)
    if component:
        logger = logger.bind(component=component)
    return logger
