"""Static management library with a canned device set.

Serves a fixed list of devices without touching hardware. Useful for
development on machines without accelerators and for wiring tests of
the orchestrator layer. Event sets never report faults.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from accel_monitor.adapters.outbound.base import ManagedLibrary
from accel_monitor.adapters.outbound.sysfs import scan_device_type
from accel_monitor.domain.entities.device import (
    DEFAULT_PCI_DEVICES_PATH,
    Device,
    Event,
    EventSet,
)
from accel_monitor.domain.value_objects.identifiers import PCIBusId, SerialNumber
from accel_monitor.ports.outbound.errors import NoDataError, NotFoundError

logger = logging.getLogger(__name__)


def canned_devices(pci_devices_path: Path = DEFAULT_PCI_DEVICES_PATH) -> list[Device]:
    """Build the default canned device set."""
    return [
        Device(
            serial_number=SerialNumber(f"dummy-serial-{n}"),
            uuid=f"uuid-{n}",
            pci_id=f"8086:{8085 + n:04d}",
            pci_bus_id=PCIBusId(f"0000:00:1f.{n}"),
            minor_number=n - 1,
            module_id=n - 1,
            pci_devices_path=pci_devices_path,
        )
        for n in range(1, 6)
    ]


class StaticManagementLibrary(ManagedLibrary):
    """Management library backed by a fixed list of devices."""

    name = "static"

    def __init__(
        self,
        devices: Optional[list[Device]] = None,
        pci_devices_path: Path = DEFAULT_PCI_DEVICES_PATH,
    ) -> None:
        """Initialize the static library.

        Args:
            devices: Devices to serve. Defaults to five canned devices.
            pci_devices_path: sysfs directory scanned by device_type_name.
        """
        super().__init__()
        self._pci_devices_path = Path(pci_devices_path)
        self._devices = list(devices) if devices is not None else canned_devices(self._pci_devices_path)
        self._by_serial = {d.serial_number: d for d in self._devices}

    def device_type_name(self) -> str:
        self._require_initialized()
        return scan_device_type(self._pci_devices_path)

    def device_count(self) -> int:
        self._require_initialized()
        return len(self._devices)

    def device_by_index(self, index: int) -> Device:
        self._require_initialized()
        if not 0 <= index < len(self._devices):
            raise NotFoundError(f"could not find device with index {index}")
        return self._devices[index]

    def device_by_serial(self, serial: str) -> Device:
        self._require_initialized()
        try:
            return self._by_serial[serial]
        except KeyError:
            raise NotFoundError(f"could not find device with serial number {serial!r}") from None

    def new_event_set(self) -> EventSet:
        self._require_initialized()
        return EventSet()

    def delete_event_set(self, event_set: EventSet) -> None:
        event_set.clear()
        event_set.released = True

    def register_event(self, event_set: EventSet, event_kind: int, serial: str) -> None:
        self._require_initialized()
        if serial not in self._by_serial:
            raise NotFoundError(f"could not find device with serial number {serial!r}")
        event_set.add(serial, event_kind)

    def wait_for_event(self, event_set: EventSet, timeout_ms: int) -> Event:
        """Return a heartbeat for the first registered device."""
        self._require_initialized()
        serials = event_set.serials()
        if not serials:
            raise NoDataError("no devices registered in event set")
        return Event(serial=serials[0], kind=0)
