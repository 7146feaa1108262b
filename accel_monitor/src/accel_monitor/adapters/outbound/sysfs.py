"""Readers for the PCI device tree exposed under sysfs.

The same readers serve real hardware (/sys/bus/pci/devices) and the
simulated fleet, whose topology is written in the exact format they
expect.
"""

from __future__ import annotations

import logging
from pathlib import Path

from accel_monitor.domain.value_objects.device_family import classify_device_id
from accel_monitor.domain.value_objects.identifiers import HABANA_VENDOR_ID
from accel_monitor.ports.outbound.errors import ManagementLibraryError, NoRecognizedDeviceError

logger = logging.getLogger(__name__)

# Identity files are written as "0x" followed by the hex ID
ID_PREFIX_LENGTH = 2


def read_id_from_file(base_path: Path, device_address: str, prop: str) -> str:
    """Read a hex identity file, dropping its "0x" prefix.

    Args:
        base_path: PCI devices directory.
        device_address: Bus ID of the device (directory name).
        prop: File to read, e.g. "vendor" or "device".

    Returns:
        The ID without prefix or trailing newlines, e.g. "1da3".

    Raises:
        ManagementLibraryError: If the file cannot be read or is not text.
    """
    path = Path(base_path) / device_address / prop
    try:
        data = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ManagementLibraryError(
            f"could not read {prop} for device {device_address}: {e}"
        ) from e
    return data[ID_PREFIX_LENGTH:].strip("\n")


def scan_device_type(base_path: Path) -> str:
    """Determine the accelerator family from the PCI device tree.

    Every device link is checked; non-Habana vendors are skipped and a
    Habana device ID outside the family tables is an error.

    Returns:
        Family name of the last Habana device found.

    Raises:
        ManagementLibraryError: If the tree or an identity file is unreadable.
        NoRecognizedDeviceError: If a Habana device ID is unknown or no
            Habana device exists.
    """
    base_path = Path(base_path)
    try:
        entries = sorted(base_path.iterdir())
    except OSError as e:
        raise ManagementLibraryError(f"error accessing file path {str(base_path)!r}: {e}") from e

    device_type = ""
    for entry in entries:
        if entry.is_dir() and not entry.is_symlink():
            logger.debug(f"{entry.name} is not a device link, skipping")
            continue

        vendor_id = read_id_from_file(base_path, entry.name, "vendor")
        if vendor_id != HABANA_VENDOR_ID:
            continue

        device_id = read_id_from_file(base_path, entry.name, "device")
        family = classify_device_id(device_id)
        if family is None:
            raise NoRecognizedDeviceError(
                f"device {entry.name} has unrecognized device ID {device_id}"
            )
        device_type = family.value

    if not device_type:
        raise NoRecognizedDeviceError()
    return device_type
