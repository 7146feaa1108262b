"""Inbound ports - interfaces offered by the accelerator monitor."""

from accel_monitor.ports.inbound.api import ResourceManager

__all__ = [
    "ResourceManager",
]
