"""Management library selection from configuration."""

from __future__ import annotations

import logging
import random
from typing import Optional

from accel_monitor.adapters.outbound.real_library import RealManagementLibrary
from accel_monitor.adapters.outbound.simulated import FleetConfig, SimulatedManagementLibrary
from accel_monitor.adapters.outbound.static_library import StaticManagementLibrary
from accel_monitor.adapters.outbound.verbose_library import VerboseManagementLibrary
from accel_monitor.infrastructure.config import LibraryConfig
from accel_monitor.ports.outbound.management_library import ManagementLibraryPort

logger = logging.getLogger(__name__)


def create_library(
    config: LibraryConfig,
    fleet_config: Optional[FleetConfig] = None,
    rng: Optional[random.Random] = None,
) -> ManagementLibraryPort:
    """Build the management library selected by config.

    Args:
        config: Library section of the service configuration.
        fleet_config: Simulated fleet; read from FAKEACCEL_SPEC when omitted.
        rng: Random source for the simulated fleet.

    Returns:
        An uninitialized library, wrapped for verbose logging if requested.
    """
    library: ManagementLibraryPort
    if config.mode == "real":
        library = RealManagementLibrary(pci_devices_path=config.pci_devices_path)
    elif config.mode == "static":
        library = StaticManagementLibrary(pci_devices_path=config.pci_devices_path)
    elif config.mode == "simulated":
        library = SimulatedManagementLibrary(
            config=fleet_config, rng=rng, seed=config.simulation_seed
        )
    else:
        raise ValueError(f"Unknown management library mode: {config.mode}")

    logger.info(f"Using {config.mode} management library")
    if config.verbose:
        library = VerboseManagementLibrary(library)
    return library
