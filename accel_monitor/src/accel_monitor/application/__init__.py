"""Application layer for the accelerator monitor.

Orchestrates domain services to provide high-level functionality.
"""

from accel_monitor.application.coordinator import AcceleratorHealthCoordinator
from accel_monitor.application.library_factory import create_library

__all__ = [
    "AcceleratorHealthCoordinator",
    "create_library",
]
