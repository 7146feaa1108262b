"""Accelerator device entities.

Entities model the identity and placement of physical accelerators,
the records handed to the orchestrator layer, and the event types the
management library delivers.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from accel_monitor.domain.value_objects.identifiers import (
    NUMANodeId,
    PCIBusId,
    SerialNumber,
    split_pci_id,
)
from accel_monitor.ports.outbound.errors import ManagementLibraryError

DEFAULT_PCI_DEVICES_PATH = Path("/sys/bus/pci/devices")


class DeviceHealth(Enum):
    """Health as reported to the orchestrator."""
    HEALTHY = "Healthy"
    UNHEALTHY = "Unhealthy"


@dataclass(frozen=True)
class Device:
    """Identity and placement of one accelerator."""
    serial_number: SerialNumber
    uuid: str
    pci_id: str                   # "vendor:device", e.g. "1da3:1020"
    pci_bus_id: PCIBusId
    minor_number: int = 0
    module_id: int = 0
    pci_devices_path: Path = DEFAULT_PCI_DEVICES_PATH

    @property
    def vendor_id(self) -> str:
        return split_pci_id(self.pci_id)[0]

    @property
    def device_id(self) -> str:
        return split_pci_id(self.pci_id)[1]

    @property
    def pci_device_code(self) -> int:
        """Vendor and device IDs combined into one number (0x1da31020)."""
        vendor, device = split_pci_id(self.pci_id)
        return int(vendor + device, 16)

    def numa_node(self) -> Optional[NUMANodeId]:
        """Read the device's NUMA affinity from sysfs.

        Returns:
            The NUMA node, or None when the platform exposes no NUMA
            information (missing file or a negative node).

        Raises:
            ManagementLibraryError: If the numa_node file cannot be decoded
                or parsed.
        """
        numa_file = self.pci_devices_path / self.pci_bus_id.lower() / "numa_node"
        try:
            raw = numa_file.read_text(encoding="utf-8")
        except OSError:
            return None
        except UnicodeDecodeError as e:
            raise ManagementLibraryError(
                f"failed to retrieve CPU affinity for {self.pci_bus_id}: {e}"
            ) from e

        try:
            node = int(raw.strip())
        except ValueError as e:
            raise ManagementLibraryError(
                f"failed to retrieve CPU affinity for {self.pci_bus_id}: {e}"
            ) from e

        if node < 0:
            return None
        return NUMANodeId(node)


@dataclass(frozen=True)
class DeviceRecord:
    """Normalized device as seen by the orchestrator layer."""
    id: SerialNumber
    uuid: str
    pci_id: str                   # hex device code, e.g. "1da31020"
    pci_bus_id: PCIBusId
    numa_node: Optional[NUMANodeId] = None
    health: DeviceHealth = DeviceHealth.HEALTHY

    @property
    def is_healthy(self) -> bool:
        return self.health is DeviceHealth.HEALTHY

    def mark_unhealthy(self) -> DeviceRecord:
        """Return a copy of this record flagged unhealthy."""
        return replace(self, health=DeviceHealth.UNHEALTHY)


@dataclass(frozen=True)
class Event:
    """Event delivered by wait_for_event. A zero kind is a heartbeat."""
    serial: str
    kind: int = 0

    @property
    def is_heartbeat(self) -> bool:
        return self.kind == 0

    def is_critical(self, critical_bit: int) -> bool:
        return bool(self.kind & critical_bit)


@dataclass(eq=False)
class EventSet:
    """Subscription handle grouping (serial, event kind) registrations."""
    handle: Any = None            # native handle for the real library
    registrations: set[tuple[str, int]] = field(default_factory=set)
    released: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def add(self, serial: str, kind: int) -> bool:
        """Record a registration; returns False if it already existed."""
        with self._lock:
            if (serial, kind) in self.registrations:
                return False
            self.registrations.add((serial, kind))
            return True

    def has(self, serial: str, kind: int) -> bool:
        with self._lock:
            return (serial, kind) in self.registrations

    def serials(self) -> list[str]:
        with self._lock:
            return sorted({serial for serial, _ in self.registrations})

    def clear(self) -> set[tuple[str, int]]:
        """Drop all registrations and return what was held."""
        with self._lock:
            held = set(self.registrations)
            self.registrations.clear()
            return held
