"""Simulated management library.

Serves a generated fleet through the management library port and injects
faults and timeouts at configured frequencies, so the health watcher can
be exercised statistically without hardware.

Each wait_for_event call picks a random device. If the critical error
event is registered for it, one draw decides a timeout (after sleeping
for the full timeout) and a second draw decides a critical event.
Everything else is a heartbeat for that device.
"""

from __future__ import annotations

import logging
import random
import time
from typing import Optional

from accel_monitor.adapters.outbound.base import ManagedLibrary
from accel_monitor.adapters.outbound.simulated.fleet import SimulatedFleet
from accel_monitor.adapters.outbound.simulated.fleet_config import FleetConfig
from accel_monitor.adapters.outbound.simulated.topology import TopologyBuilder
from accel_monitor.adapters.outbound.sysfs import scan_device_type
from accel_monitor.domain.entities.device import Device, Event, EventSet
from accel_monitor.ports.outbound.errors import (
    EventTimeoutError,
    InvalidArgumentError,
    NoDataError,
    NotFoundError,
)

logger = logging.getLogger(__name__)


class SimulatedManagementLibrary(ManagedLibrary):
    """Management library backed by a simulated fleet.

    The fleet and its on-disk topology are created when the library is
    constructed; every later call only reads that state.

    Example:
        config = FleetConfig(path=Path("/tmp/fleet"), device_count=8, numa_nodes=2)
        with SimulatedManagementLibrary(config, seed=7) as library:
            library.device_by_index(0).numa_node()
    """

    name = "simulated"

    def __init__(
        self,
        config: Optional[FleetConfig] = None,
        rng: Optional[random.Random] = None,
        seed: Optional[int] = None,
    ) -> None:
        """Generate the fleet and build its topology.

        Args:
            config: Fleet description. Defaults to FAKEACCEL_SPEC or the
                built-in fleet.
            rng: Random source for identities and fault injection.
            seed: Seed for a private random source when rng is omitted.

        Raises:
            SimulationConfigError: If the FAKEACCEL_SPEC fleet document is malformed.
            TopologyError: If the on-disk topology cannot be built.
        """
        super().__init__()
        self._config = config or FleetConfig.from_environment()
        self._rng = rng or random.Random(seed)
        self._fleet = SimulatedFleet(self._config, rng=self._rng)
        TopologyBuilder(self._fleet).build()

    @property
    def fleet(self) -> SimulatedFleet:
        return self._fleet

    @property
    def config(self) -> FleetConfig:
        return self._config

    def device_type_name(self) -> str:
        self._require_initialized()
        return scan_device_type(self._config.pci_devices_path)

    def device_count(self) -> int:
        self._require_initialized()
        return len(self._fleet)

    def device_by_index(self, index: int) -> Device:
        self._require_initialized()
        try:
            return self._fleet.by_index[index]
        except KeyError:
            raise NotFoundError(f"could not find device with index {index}") from None

    def device_by_serial(self, serial: str) -> Device:
        self._require_initialized()
        try:
            return self._fleet.by_serial[serial]
        except KeyError:
            raise NotFoundError(f"could not find device with serial number {serial!r}") from None

    def new_event_set(self) -> EventSet:
        self._require_initialized()
        return EventSet()

    def delete_event_set(self, event_set: EventSet) -> None:
        self._fleet.unregister_events(event_set.clear())
        event_set.released = True

    def register_event(self, event_set: EventSet, event_kind: int, serial: str) -> None:
        self._require_initialized()
        if event_set.released:
            raise InvalidArgumentError("event set already released")
        if serial not in self._fleet.by_serial:
            raise NotFoundError(f"could not find device with serial number {serial!r}")
        if event_set.add(serial, event_kind):
            self._fleet.register_event(serial, event_kind)

    def wait_for_event(self, event_set: EventSet, timeout_ms: int) -> Event:
        self._require_initialized()
        if event_set.released:
            raise InvalidArgumentError("event set already released")
        if not len(self._fleet):
            raise NoDataError("simulated fleet has no devices")

        device = self._fleet.random_device(self._rng)
        serial = device.serial_number
        critical_bit = self.critical_error_bit()

        if event_set.has(serial, critical_bit):
            if self._rng.random() < self._config.timeout_freq:
                time.sleep(timeout_ms / 1000)
                raise EventTimeoutError()
            if self._rng.random() < self._config.unhealthy_freq:
                logger.debug(f"Injecting critical error for {serial}")
                return Event(serial=serial, kind=critical_bit)

        return Event(serial=serial, kind=0)
