"""Dependency injection container for the accelerator monitor."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

import structlog
from opentelemetry import trace

from accel_monitor.application.coordinator import AcceleratorHealthCoordinator
from accel_monitor.application.library_factory import create_library
from accel_monitor.infrastructure.config import Config, get_config
from accel_monitor.infrastructure.logging import setup_logging
from accel_monitor.infrastructure.metrics import MetricsRegistry, get_metrics, setup_metrics
from accel_monitor.infrastructure.tracing import setup_tracing
from accel_monitor.ports.outbound.management_library import ManagementLibraryPort


@dataclass
class Container:
    """Dependency injection container for accelerator monitor components."""

    config: Config
    logger: structlog.stdlib.BoundLogger
    tracer: trace.Tracer
    metrics: MetricsRegistry
    library: ManagementLibraryPort
    coordinator: AcceleratorHealthCoordinator

    _instance: ClassVar["Container | None"] = None

    @classmethod
    def create(cls) -> "Container":
        """Create and initialize the container with all dependencies."""
        if cls._instance is not None:
            return cls._instance

        config = get_config()
        logger = setup_logging(config)
        tracer = setup_tracing(config)
        if config.observability.metrics_enabled:
            metrics = setup_metrics(config.observability.metrics_port)
        else:
            metrics = get_metrics()
        library = create_library(config.library)
        coordinator = AcceleratorHealthCoordinator(
            library,
            watcher_config=config.watcher,
            metrics=metrics,
            tracer=tracer,
        )

        cls._instance = cls(
            config=config,
            logger=logger,
            tracer=tracer,
            metrics=metrics,
            library=library,
            coordinator=coordinator,
        )

        logger.info(
            "accel_monitor_container_initialized",
            environment=config.observability.environment,
            library_mode=config.library.mode,
        )

        return cls._instance

    @classmethod
    def get(cls) -> "Container":
        """Get the singleton container instance."""
        if cls._instance is None:
            return cls.create()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset the container (useful for testing)."""
        cls._instance = None


def get_container() -> Container:
    """Get the dependency injection container."""
    return Container.get()
