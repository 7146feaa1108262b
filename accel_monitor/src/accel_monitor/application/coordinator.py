"""Accelerator Health Coordinator.

Ties the management library, device registry and health watcher together
for the orchestrator layer: initialize the library, publish the device
inventory, and feed unhealthy devices to a queue until shutdown.
"""

from __future__ import annotations

import logging
import queue
from typing import Optional

from opentelemetry import trace

from accel_monitor.domain.entities.device import DeviceRecord
from accel_monitor.domain.services.device_registry import DeviceRegistry
from accel_monitor.domain.services.health_watcher import HealthWatcher
from accel_monitor.infrastructure.config import WatcherConfig
from accel_monitor.infrastructure.metrics import MetricsRegistry
from accel_monitor.infrastructure.tracing import library_span
from accel_monitor.ports.outbound.management_library import ManagementLibraryPort

logger = logging.getLogger(__name__)


class AcceleratorHealthCoordinator:
    """Coordinates inventory and health watching over one management library."""

    def __init__(
        self,
        library: ManagementLibraryPort,
        watcher_config: Optional[WatcherConfig] = None,
        metrics: Optional[MetricsRegistry] = None,
        tracer: Optional[trace.Tracer] = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            library: Uninitialized management library.
            watcher_config: Health watcher timing. Defaults to WatcherConfig().
            metrics: Optional Prometheus metrics.
            tracer: Tracer for enumeration spans.
        """
        self._library = library
        self._watcher_config = watcher_config or WatcherConfig()
        self._metrics = metrics
        self._tracer = tracer or trace.get_tracer(__name__)

        self._device_type = ""
        self._registry: Optional[DeviceRegistry] = None
        self._devices: list[DeviceRecord] = []
        self._watcher: Optional[HealthWatcher] = None
        self._initialized = False

    @property
    def device_type(self) -> str:
        return self._device_type

    @property
    def library(self) -> ManagementLibraryPort:
        return self._library

    @property
    def watcher(self) -> Optional[HealthWatcher]:
        return self._watcher

    def initialize(self) -> list[DeviceRecord]:
        """Initialize the library, classify the fleet and enumerate devices.

        Returns:
            The device inventory.

        Raises:
            ManagementLibraryError: If the library cannot start or no known
                device family is present.
            DeviceEnumerationError: If enumeration fails.
        """
        with library_span(self._tracer, "library.initialize"):
            self._library.initialize()
        try:
            self._device_type = self._library.device_type_name()
            self._registry = DeviceRegistry(self._library, self._device_type)
            self._devices = self._list_devices()
        except Exception as e:
            logger.error(f"Accelerator monitor initialization failed: {e}")
            self._library.shutdown()
            raise

        self._initialized = True
        logger.info(
            f"Accelerator monitor initialized: {len(self._devices)} {self._device_type or 'unknown'} devices"
        )
        if self._metrics:
            self._metrics.info.info({"device_type": self._device_type})
        return list(self._devices)

    def devices(self) -> list[DeviceRecord]:
        """Re-enumerate devices and return the fresh inventory."""
        self._require_initialized()
        self._devices = self._list_devices()
        return list(self._devices)

    def start_health_watch(self) -> queue.Queue[DeviceRecord]:
        """Start the background health watcher over the current inventory.

        Returns:
            Queue receiving devices that turned unhealthy.
        """
        self._require_initialized()
        if self._watcher is not None and self._watcher.is_running:
            raise RuntimeError("Health watch already running")

        self._watcher = HealthWatcher(
            self._library,
            self._devices,
            interval_seconds=self._watcher_config.health_check_interval_seconds,
            wait_timeout_ms=self._watcher_config.wait_timeout_ms,
            error_backoff_seconds=self._watcher_config.error_backoff_seconds,
            metrics=self._metrics,
        )
        self._watcher.start()
        logger.info(f"Health watch started for {len(self._devices)} devices")
        return self._watcher.unhealthy

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop the health watcher if it is running."""
        if self._watcher is not None:
            self._watcher.stop(timeout)
            logger.info("Health watch stopped")

    def shutdown(self) -> None:
        """Stop watching and shut the library down."""
        self.stop()
        if self._initialized:
            self._library.shutdown()
            self._initialized = False
            logger.info("Accelerator monitor shut down")

    def _list_devices(self) -> list[DeviceRecord]:
        with library_span(self._tracer, "devices.list", device_type=self._device_type) as span:
            devices = self._registry.list_devices()
            span.set_attribute("device_count", len(devices))
        if self._metrics:
            self._metrics.devices_discovered.set(len(devices))
        return devices

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise RuntimeError("Accelerator monitor not initialized")

    def __enter__(self) -> AcceleratorHealthCoordinator:
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()
