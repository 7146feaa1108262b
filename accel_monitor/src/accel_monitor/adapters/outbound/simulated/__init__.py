"""Simulated accelerator fleet: generated devices, on-disk topology and fault injection."""

from accel_monitor.adapters.outbound.simulated.fleet import SimulatedFleet
from accel_monitor.adapters.outbound.simulated.fleet_config import (
    DEFAULT_FLEET_SPEC,
    FLEET_SPEC_ENV,
    FleetConfig,
    SimulationConfigError,
)
from accel_monitor.adapters.outbound.simulated.simulated_library import SimulatedManagementLibrary
from accel_monitor.adapters.outbound.simulated.topology import TopologyBuilder, TopologyError

__all__ = [
    "DEFAULT_FLEET_SPEC",
    "FLEET_SPEC_ENV",
    "FleetConfig",
    "SimulatedFleet",
    "SimulatedManagementLibrary",
    "SimulationConfigError",
    "TopologyBuilder",
    "TopologyError",
]
