"""Inbound port interfaces for the accelerator monitor.

Inbound ports define what the service offers to the orchestrator-facing
layer, which registers devices with the node agent and consumes the
unhealthy-device queue.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from accel_monitor.domain.entities.device import DeviceRecord


class ResourceManager(Protocol):
    """Inventory offered to the orchestrator layer."""

    def devices(self) -> list[DeviceRecord]:
        """List every accelerator on the node.

        Returns:
            One record per device, IDs set to serial numbers.

        Raises:
            DeviceEnumerationError: If any device cannot be resolved.
        """
        ...
