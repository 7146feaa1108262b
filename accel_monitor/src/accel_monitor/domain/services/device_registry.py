"""Device enumeration through the management library.

Builds the orchestrator-facing inventory: one DeviceRecord per
accelerator, keyed by serial number and annotated with NUMA affinity.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from accel_monitor.domain.entities.device import Device, DeviceRecord
from accel_monitor.domain.value_objects.identifiers import SerialNumber
from accel_monitor.ports.outbound.errors import ManagementLibraryError
from accel_monitor.ports.outbound.management_library import ManagementLibraryPort

logger = logging.getLogger(__name__)


class DeviceEnumerationError(Exception):
    """Device inventory could not be built."""
    pass


class DeviceRegistry:
    """Enumerate accelerators into normalized device records.

    Enumeration is all-or-nothing: a device that cannot be resolved
    fails the whole listing, since a partial inventory could place
    workloads using incomplete topology data.
    """

    def __init__(self, library: ManagementLibraryPort, device_type: str = "") -> None:
        """Initialize the registry.

        Args:
            library: Management library to query.
            device_type: Family name used in log output.
        """
        self._library = library
        self._device_type = device_type

    def list_devices(self) -> list[DeviceRecord]:
        """Enumerate every device.

        Returns:
            Records in index order.

        Raises:
            DeviceEnumerationError: If the count or any device cannot be resolved.
        """
        try:
            count = self._library.device_count()
        except ManagementLibraryError as e:
            raise DeviceEnumerationError(f"Failed to get device count: {e}") from e

        logger.info("Discovering devices...")
        records = []
        for index in range(count):
            try:
                device = self._library.device_by_index(index)
                record = self._to_record(device)
            except ManagementLibraryError as e:
                raise DeviceEnumerationError(f"Failed to resolve device {index}: {e}") from e
            records.append(record)

        return records

    def devices(self) -> list[DeviceRecord]:
        return self.list_devices()

    def _to_record(self, device: Device) -> DeviceRecord:
        if not device.serial_number:
            raise ManagementLibraryError("SerialNumber not available")
        if not device.uuid:
            raise ManagementLibraryError("UUID not available")

        try:
            pci_id = f"{device.pci_device_code:x}"
        except ValueError as e:
            raise ManagementLibraryError(f"PCIID not available: {e}") from e

        numa_node = device.numa_node()
        logger.info(
            f"Device found: type={self._device_type.upper() or 'UNKNOWN'} serial={device.serial_number} "
            f"uuid={device.uuid} id={pci_id} pci_bus_id={device.pci_bus_id}"
        )
        if numa_node is not None:
            logger.info(f"Device {pci_id} cpu affinity: {numa_node}")

        return DeviceRecord(
            id=device.serial_number,
            uuid=device.uuid,
            pci_id=pci_id,
            pci_bus_id=device.pci_bus_id,
            numa_node=numa_node,
        )


def get_device(records: Iterable[DeviceRecord], device_id: SerialNumber | str) -> Optional[DeviceRecord]:
    """Find a record by ID, or None."""
    for record in records:
        if record.id == device_id:
            return record
    return None
