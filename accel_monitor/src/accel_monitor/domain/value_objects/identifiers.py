"""Accelerator-related type-safe identifiers and event bits.

These value objects provide type safety for accelerator identifiers
using Python's NewType for zero-runtime overhead.
"""

from __future__ import annotations

from typing import NewType

# Device serial number, the cross-reference key for events and orchestrator IDs
SerialNumber = NewType("SerialNumber", str)

# NUMA node identifier
NUMANodeId = NewType("NUMANodeId", int)

# PCI bus identifier (e.g., "0000:3a:00.0")
PCIBusId = NewType("PCIBusId", str)

# Habana Labs PCI vendor ID
HABANA_VENDOR_ID = "1da3"

# Event kind bits reported by the management library
EVENT_ECC_ERROR = 1 << 0
EVENT_CRITICAL_ERROR = 1 << 1
EVENT_CLOCK_RATE = 1 << 2


def pci_root(bus_id: PCIBusId) -> str:
    """Return the domain:bus prefix of a bus ID ("0000:3a:00.0" -> "0000:3a")."""
    return bus_id[:7]


def split_pci_id(pci_id: str) -> tuple[str, str]:
    """Split a "vendor:device" PCI ID into its two hex halves.

    Raises:
        ValueError: If the ID is not of the form "vvvv:dddd".
    """
    vendor, sep, device = pci_id.partition(":")
    if not sep or not vendor or not device:
        raise ValueError(f"Malformed PCI ID {pci_id!r}, expected 'vendor:device'")
    return vendor.lower(), device.lower()
