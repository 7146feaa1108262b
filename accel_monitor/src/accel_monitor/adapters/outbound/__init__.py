"""Outbound adapters - management library providers.

- RealManagementLibrary: native HLML through pyhlml
- StaticManagementLibrary: fixed canned device set
- SimulatedManagementLibrary: generated fleet with fault injection
- VerboseManagementLibrary: logging decorator over any of the above
"""

from accel_monitor.adapters.outbound.real_library import RealManagementLibrary
from accel_monitor.adapters.outbound.simulated import SimulatedManagementLibrary
from accel_monitor.adapters.outbound.static_library import StaticManagementLibrary
from accel_monitor.adapters.outbound.verbose_library import VerboseManagementLibrary

__all__ = [
    "RealManagementLibrary",
    "SimulatedManagementLibrary",
    "StaticManagementLibrary",
    "VerboseManagementLibrary",
]
