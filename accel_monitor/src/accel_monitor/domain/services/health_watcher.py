"""Health event watcher.

Subscribes to critical error events for every known device and polls the
management library on a fixed cadence. Devices that report a critical
error are pushed, marked unhealthy, onto a queue consumed by the
orchestrator layer.

State machine:
    IDLE -> REGISTERING -> WATCHING -> EVALUATING -> WATCHING | STOPPED

Delivery is at-least-once: a device that keeps faulting is pushed on
every faulting poll, so consumers de-duplicate by device ID.
"""

from __future__ import annotations

import logging
import queue
import threading
from enum import Enum
from typing import TYPE_CHECKING, Optional

from accel_monitor.domain.entities.device import DeviceRecord, EventSet
from accel_monitor.ports.outbound.errors import EventTimeoutError, ManagementLibraryError
from accel_monitor.ports.outbound.management_library import ManagementLibraryPort

if TYPE_CHECKING:
    from accel_monitor.infrastructure.metrics import MetricsRegistry

logger = logging.getLogger(__name__)


class WatcherState(Enum):
    """Health watcher lifecycle state."""
    IDLE = "idle"
    REGISTERING = "registering"
    WATCHING = "watching"
    EVALUATING = "evaluating"
    STOPPED = "stopped"


class UnhealthyReason(Enum):
    """Why a device was reported unhealthy."""
    REGISTRATION_FAILED = "registration_failed"
    CRITICAL_EVENT = "critical_event"
    UNRESOLVED_EVENT = "unresolved_event"


class HealthWatcher:
    """Watch critical error events and report unhealthy devices.

    Example:
        watcher = HealthWatcher(library, registry.list_devices())
        watcher.start()
        unhealthy = watcher.unhealthy.get()
        watcher.stop()
    """

    def __init__(
        self,
        library: ManagementLibraryPort,
        devices: list[DeviceRecord],
        unhealthy: Optional[queue.Queue[DeviceRecord]] = None,
        interval_seconds: float = 10.0,
        wait_timeout_ms: int = 1000,
        error_backoff_seconds: float = 2.0,
        metrics: Optional[MetricsRegistry] = None,
    ) -> None:
        """Initialize the watcher.

        Args:
            library: Initialized management library.
            devices: Known devices; their IDs are the serials to watch.
            unhealthy: Delivery queue. A new unbounded queue when omitted.
            interval_seconds: Time between polls.
            wait_timeout_ms: Timeout passed to wait_for_event.
            error_backoff_seconds: Pause after a failed poll.
            metrics: Optional metrics to update.
        """
        self._library = library
        self._devices = list(devices)
        self._unhealthy: queue.Queue[DeviceRecord] = unhealthy if unhealthy is not None else queue.Queue()
        self._interval = interval_seconds
        self._wait_timeout_ms = wait_timeout_ms
        self._error_backoff = error_backoff_seconds
        self._metrics = metrics

        self._state = WatcherState.IDLE
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def state(self) -> WatcherState:
        return self._state

    @property
    def unhealthy(self) -> queue.Queue[DeviceRecord]:
        return self._unhealthy

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Run the watcher on a background daemon thread."""
        if self.is_running:
            raise RuntimeError("Health watcher already running")
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self.run, args=(self._stop_event,), name="health-watcher", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Signal the watcher to stop and wait for its thread to exit.

        A thread still busy after timeout stays tracked, so start() keeps
        refusing until it has finished.
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            if not self._thread.is_alive():
                self._thread = None

    def run(self, stop_event: Optional[threading.Event] = None) -> None:
        """Watch until stop_event is set. The event set is always released.

        Args:
            stop_event: Cancellation signal, checked at every tick.
        """
        stop_event = stop_event or self._stop_event
        event_set = self._library.new_event_set()
        if self._metrics:
            self._metrics.watcher_running.set(1)
        try:
            self._register(event_set)

            while True:
                self._state = WatcherState.WATCHING
                if stop_event.wait(self._interval):
                    break
                self._state = WatcherState.EVALUATING
                self.evaluate(event_set, stop_event)
        except Exception:
            logger.exception("Health watcher failed")
            raise
        finally:
            self._state = WatcherState.STOPPED
            if self._metrics:
                self._metrics.watcher_running.set(0)
            try:
                self._library.delete_event_set(event_set)
            except ManagementLibraryError as e:
                logger.error(f"Failed to release event set: {e}")
            logger.info("Health watcher stopped")

    def evaluate(self, event_set: EventSet, stop_event: Optional[threading.Event] = None) -> list[DeviceRecord]:
        """Poll for one event and report the devices it marks unhealthy.

        Args:
            event_set: Event set registered for the known devices.
            stop_event: Interrupts the error backoff pause when set.

        Returns:
            Devices pushed onto the unhealthy queue during this poll.
        """
        stop_event = stop_event or self._stop_event
        try:
            event = self._library.wait_for_event(event_set, self._wait_timeout_ms)
        except EventTimeoutError:
            logger.debug("No health event within timeout")
            self._record_poll("timeout")
            return []
        except ManagementLibraryError as e:
            logger.error(f"hlml WaitForEvent failed: {e}")
            self._record_poll("error")
            stop_event.wait(self._error_backoff)
            return []

        critical_bit = self._library.critical_error_bit()
        if not event.is_critical(critical_bit):
            self._record_poll("heartbeat")
            return []
        self._record_poll("critical")

        try:
            device = self._library.device_by_serial(event.serial)
        except ManagementLibraryError as e:
            logger.error(f"XidCriticalError: all devices will go unhealthy (kind={event.kind}, lookup failed: {e})")
            return self._report_all()

        if not device.serial_number or not device.uuid:
            logger.error(f"XidCriticalError: all devices will go unhealthy (kind={event.kind}, no identity)")
            return self._report_all()

        reported = []
        for record in self._devices:
            if record.id == device.serial_number:
                logger.error(f"XidCriticalError: the device will go unhealthy (kind={event.kind}, aip={record.id})")
                reported.append(self._report(record, UnhealthyReason.CRITICAL_EVENT))

        if not reported:
            logger.warning(f"Critical event for unwatched device {device.serial_number}")
        return reported

    def _register(self, event_set: EventSet) -> None:
        self._state = WatcherState.REGISTERING
        critical_bit = self._library.critical_error_bit()
        for record in self._devices:
            try:
                self._library.register_event(event_set, critical_bit, record.id)
            except ManagementLibraryError as e:
                logger.error(
                    f"Failed registering critical event for device {record.id}, marking it unhealthy: {e}"
                )
                self._report(record, UnhealthyReason.REGISTRATION_FAILED)

    def _report_all(self) -> list[DeviceRecord]:
        return [self._report(record, UnhealthyReason.UNRESOLVED_EVENT) for record in self._devices]

    def _report(self, record: DeviceRecord, reason: UnhealthyReason) -> DeviceRecord:
        unhealthy = record.mark_unhealthy()
        self._unhealthy.put(unhealthy)
        if self._metrics:
            self._metrics.record_unhealthy(reason.value)
        return unhealthy

    def _record_poll(self, outcome: str) -> None:
        if self._metrics:
            self._metrics.record_poll(outcome)
