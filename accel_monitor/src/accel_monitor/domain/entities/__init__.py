"""Domain entities for the accelerator monitor.

Entities represent core objects with identity and lifecycle:
- Device: physical accelerator identity and placement
- DeviceRecord: normalized device handed to the orchestrator layer
- Event / EventSet: health event subscription and delivery
"""

from accel_monitor.domain.entities.device import (
    DEFAULT_PCI_DEVICES_PATH,
    Device,
    DeviceHealth,
    DeviceRecord,
    Event,
    EventSet,
)

__all__ = [
    "DEFAULT_PCI_DEVICES_PATH",
    "Device",
    "DeviceHealth",
    "DeviceRecord",
    "Event",
    "EventSet",
]
