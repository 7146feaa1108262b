"""Simulated accelerator fleet.

Generates device identities for a FleetConfig and counts event
registrations per serial across all event sets. One fleet belongs to one
simulated library instance, so tests can run several independent fleets.
"""

from __future__ import annotations

import random
import threading
from collections import Counter
from typing import Iterable, Optional

from accel_monitor.adapters.outbound.simulated.fleet_config import FleetConfig
from accel_monitor.domain.entities.device import Device
from accel_monitor.domain.value_objects.identifiers import PCIBusId, SerialNumber

SERIAL_PREFIX = "FK"
UUID_TABLE_VERSION = "01F0"
UUID_FAB = "99"
UUID_LOTS = ("P73B93", "TNBR62", "P53B53", "TNBR72")

# Bus numbers are a single byte
MAX_BUSES = 256


class SimulatedFleet:
    """Population of simulated devices generated from a FleetConfig.

    Attributes:
        config: Fleet description.
        by_index: Devices keyed by index.
        by_serial: The same devices keyed by serial number.
    """

    def __init__(self, config: FleetConfig, rng: Optional[random.Random] = None) -> None:
        """Generate the fleet.

        Args:
            config: Fleet description.
            rng: Random source for identities. Unseeded when omitted.
        """
        self.config = config
        self._rng = rng or random.Random()
        self._lock = threading.Lock()
        self._registered_events: Counter[tuple[str, int]] = Counter()

        self.by_index: dict[int, Device] = {}
        self.by_serial: dict[str, Device] = {}

        bus_base = self._rng.randrange(MAX_BUSES - config.device_count) if config.device_count else 0
        for i in range(config.device_count):
            device = Device(
                serial_number=self._new_serial(),
                uuid=self._new_uuid(),
                pci_id=config.pci_id,
                pci_bus_id=PCIBusId(f"0000:{bus_base + i:02x}:00.0"),
                minor_number=i,
                module_id=i,
                pci_devices_path=config.pci_devices_path,
            )
            self.by_index[i] = device
            self.by_serial[device.serial_number] = device

    def __len__(self) -> int:
        return len(self.by_index)

    @property
    def devices(self) -> list[Device]:
        return [self.by_index[i] for i in range(len(self.by_index))]

    def numa_node_for(self, index: int) -> Optional[int]:
        """NUMA node assigned to the device at index, None without NUMA."""
        numa_nodes = self.config.numa_nodes
        if numa_nodes == 0:
            return None
        per_node = max(1, self.config.device_count // numa_nodes)
        return min(index // per_node, numa_nodes - 1)

    def random_device(self, rng: random.Random) -> Device:
        return self.by_index[rng.randrange(len(self.by_index))]

    def register_event(self, serial: str, event_kind: int) -> None:
        """Count one event set's registration of event_kind on serial."""
        with self._lock:
            self._registered_events[(serial, event_kind)] += 1

    def unregister_events(self, registrations: Iterable[tuple[str, int]]) -> None:
        """Release registrations held by one event set."""
        with self._lock:
            for key in registrations:
                if self._registered_events[key] <= 1:
                    self._registered_events.pop(key, None)
                else:
                    self._registered_events[key] -= 1

    def is_registered(self, serial: str, event_kind: int) -> bool:
        """Whether any event set holds event_kind on serial."""
        with self._lock:
            return self._registered_events.get((serial, event_kind), 0) > 0

    def registered_events(self, serial: str) -> frozenset[int]:
        with self._lock:
            return frozenset(kind for (s, kind) in self._registered_events if s == serial)

    def _new_serial(self) -> SerialNumber:
        while True:
            serial = SerialNumber(f"{SERIAL_PREFIX}{self._rng.randrange(100_000_000):08d}")
            if serial not in self.by_serial:
                return serial

    def _new_uuid(self) -> str:
        taken = {device.uuid for device in self.by_index.values()}
        while True:
            # table version, device, fab, lot, wafer, x, y
            lot = self._rng.choice(UUID_LOTS)
            wafer = self._rng.randrange(12) + 1
            x_coord = self._rng.randrange(28) + 1
            y_coord = self._rng.randrange(24)
            uuid = (
                f"{UUID_TABLE_VERSION}-{self.config.hl_device}-{UUID_FAB}-{lot}-"
                f"{wafer:02d}-{x_coord:02d}-{y_coord:02d}"
            )
            if uuid not in taken:
                return uuid
