"""Device family classification by PCI device ID."""

from __future__ import annotations

from enum import Enum


class DeviceFamily(Enum):
    """Known accelerator families."""
    GOYA = "goya"
    GAUDI = "gaudi"       # Gaudi 1, Gaudi 2 and Gaudi 3
    GRECO = "greco"


FAMILY_DEVICE_IDS: dict[DeviceFamily, tuple[str, ...]] = {
    DeviceFamily.GOYA: ("0001",),
    DeviceFamily.GAUDI: (
        "1000", "1001", "1010", "1011", "1020", "1030", "1060", "1061", "1062",
    ),
    DeviceFamily.GRECO: ("0020", "0030"),
}


def classify_device_id(device_id: str) -> DeviceFamily | None:
    """Match a device ID against the family tables by suffix.

    Args:
        device_id: Hex device ID as read from sysfs, without the "0x" prefix.

    Returns:
        The matching family, or None when the ID belongs to no known family.
    """
    for family, suffixes in FAMILY_DEVICE_IDS.items():
        if any(device_id.endswith(suffix) for suffix in suffixes):
            return family
    return None
