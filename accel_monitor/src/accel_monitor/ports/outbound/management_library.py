"""Outbound port for the accelerator management library.

The management library is the only way the service observes hardware.
Real hardware, a canned device set and a simulated fleet all implement
this protocol, so enumeration and health watching never know which one
they are talking to.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from accel_monitor.domain.entities.device import Device, Event, EventSet


class ManagementLibraryPort(Protocol):
    """Protocol for accelerator management library operations.

    Lifecycle:
        initialize() must be called once before any other operation and
        shutdown() once at the end. Calls outside that window raise
        UninitializedError.

    Thread Safety:
        register_event must be safe against concurrent callers on the
        same event set. wait_for_event is the only blocking call.
    """

    @abstractmethod
    def initialize(self) -> None:
        """Initialize the library.

        Raises:
            AlreadyInitializedError: If already initialized.
            DriverNotLoadedError: If the native library is unavailable.
        """
        ...

    @abstractmethod
    def shutdown(self) -> None:
        """Shut the library down.

        Raises:
            UninitializedError: If not initialized.
        """
        ...

    @abstractmethod
    def device_type_name(self) -> str:
        """Classify the device family present on the system.

        Returns:
            Family name ("goya", "gaudi" or "greco").

        Raises:
            NoRecognizedDeviceError: If no known device ID is present.
        """
        ...

    @abstractmethod
    def device_count(self) -> int:
        """Return the number of accelerators."""
        ...

    @abstractmethod
    def device_by_index(self, index: int) -> Device:
        """Look a device up by index.

        Raises:
            NotFoundError: If the index is out of range.
        """
        ...

    @abstractmethod
    def device_by_serial(self, serial: str) -> Device:
        """Look a device up by serial number.

        Raises:
            NotFoundError: If no device has this serial.
        """
        ...

    @abstractmethod
    def new_event_set(self) -> EventSet:
        """Allocate an event set."""
        ...

    @abstractmethod
    def delete_event_set(self, event_set: EventSet) -> None:
        """Release an event set. Safe with no registrations and when repeated."""
        ...

    @abstractmethod
    def register_event(self, event_set: EventSet, event_kind: int, serial: str) -> None:
        """Register interest in event_kind for a device. Idempotent.

        Raises:
            NotFoundError: If no device has this serial.
        """
        ...

    @abstractmethod
    def wait_for_event(self, event_set: EventSet, timeout_ms: int) -> Event:
        """Block up to timeout_ms for the next event in the set.

        Raises:
            EventTimeoutError: If nothing arrived in time.
        """
        ...

    @abstractmethod
    def critical_error_bit(self) -> int:
        """Return the event bit that marks a critical device error."""
        ...
