"""Domain services for the accelerator monitor.

Services implement core workflows:
- DeviceRegistry: all-or-nothing device enumeration
- HealthWatcher: critical error event watching
"""

from accel_monitor.domain.services.device_registry import (
    DeviceEnumerationError,
    DeviceRegistry,
    get_device,
)
from accel_monitor.domain.services.health_watcher import (
    HealthWatcher,
    UnhealthyReason,
    WatcherState,
)

__all__ = [
    "DeviceEnumerationError",
    "DeviceRegistry",
    "get_device",
    "HealthWatcher",
    "UnhealthyReason",
    "WatcherState",
]
