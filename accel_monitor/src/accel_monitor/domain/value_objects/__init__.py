"""Domain value objects for the accelerator monitor.

Value objects are immutable objects without identity that represent
core concepts like serial numbers, PCI addresses and event bits.
"""

from accel_monitor.domain.value_objects.device_family import (
    FAMILY_DEVICE_IDS,
    DeviceFamily,
    classify_device_id,
)
from accel_monitor.domain.value_objects.identifiers import (
    EVENT_CLOCK_RATE,
    EVENT_CRITICAL_ERROR,
    EVENT_ECC_ERROR,
    HABANA_VENDOR_ID,
    NUMANodeId,
    PCIBusId,
    SerialNumber,
    pci_root,
    split_pci_id,
)

__all__ = [
    "DeviceFamily",
    "FAMILY_DEVICE_IDS",
    "classify_device_id",
    "EVENT_CLOCK_RATE",
    "EVENT_CRITICAL_ERROR",
    "EVENT_ECC_ERROR",
    "HABANA_VENDOR_ID",
    "NUMANodeId",
    "PCIBusId",
    "SerialNumber",
    "pci_root",
    "split_pci_id",
]
