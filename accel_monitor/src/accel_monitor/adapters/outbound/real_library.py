"""Management library backed by the native HLML library.

Thin pass-through to the pyhlml binding. Native failures are translated
into the port's error taxonomy using their return codes.

References:
    - Habana Labs Management Library (HLML) API
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, TypeVar

try:
    import pyhlml
    HLML_AVAILABLE = True
except ImportError:
    pyhlml = None
    HLML_AVAILABLE = False

from accel_monitor.adapters.outbound.base import ManagedLibrary
from accel_monitor.adapters.outbound.sysfs import scan_device_type
from accel_monitor.domain.entities.device import DEFAULT_PCI_DEVICES_PATH, Device, Event, EventSet
from accel_monitor.domain.value_objects.identifiers import PCIBusId, SerialNumber
from accel_monitor.ports.outbound.errors import (
    DriverNotLoadedError,
    ManagementLibraryError,
    NotFoundError,
    ReturnCode,
    error_from_code,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8").rstrip("\x00")
    return str(value)


def _call(func: Callable[..., T], *args: Any) -> T:
    """Invoke a native function, translating HLMLError by return code."""
    try:
        return func(*args)
    except pyhlml.HLMLError as e:
        code = getattr(e, "value", ReturnCode.UNKNOWN)
        raise (error_from_code(code, str(e)) or ManagementLibraryError(str(e))) from e


class RealManagementLibrary(ManagedLibrary):
    """Management library for real accelerators."""

    name = "hlml"

    def __init__(self, pci_devices_path: Path = DEFAULT_PCI_DEVICES_PATH) -> None:
        super().__init__()
        self._pci_devices_path = Path(pci_devices_path)
        self._serial_to_index: dict[str, int] = {}

    def _open(self) -> None:
        if not HLML_AVAILABLE:
            raise DriverNotLoadedError(
                "pyhlml not installed. Install with: pip install 'accel-monitor[hlml]'"
            )
        _call(pyhlml.hlmlInit)

    def _close(self) -> None:
        self._serial_to_index.clear()
        _call(pyhlml.hlmlShutdown)

    def device_type_name(self) -> str:
        self._require_initialized()
        return scan_device_type(self._pci_devices_path)

    def device_count(self) -> int:
        self._require_initialized()
        return int(_call(pyhlml.hlmlDeviceGetCount))

    def device_by_index(self, index: int) -> Device:
        self._require_initialized()
        handle = _call(pyhlml.hlmlDeviceGetHandleByIndex, index)
        device = self._device_from_handle(handle)
        self._serial_to_index[device.serial_number] = index
        return device

    def device_by_serial(self, serial: str) -> Device:
        self._require_initialized()
        index = self._serial_to_index.get(serial)
        if index is not None:
            device = self.device_by_index(index)
            if device.serial_number == serial:
                return device

        for index in range(self.device_count()):
            device = self.device_by_index(index)
            if device.serial_number == serial:
                return device
        raise NotFoundError(f"could not find device with serial number {serial!r}")

    def new_event_set(self) -> EventSet:
        self._require_initialized()
        return EventSet(handle=_call(pyhlml.hlmlEventSetCreate))

    def delete_event_set(self, event_set: EventSet) -> None:
        if event_set.released:
            return
        event_set.clear()
        event_set.released = True
        if self._initialized and event_set.handle is not None:
            _call(pyhlml.hlmlEventSetFree, event_set.handle)

    def register_event(self, event_set: EventSet, event_kind: int, serial: str) -> None:
        self._require_initialized()
        if not event_set.add(serial, event_kind):
            return
        try:
            index = self._index_for_serial(serial)
            handle = _call(pyhlml.hlmlDeviceGetHandleByIndex, index)
            _call(pyhlml.hlmlDeviceRegisterEvents, handle, event_kind, event_set.handle)
        except ManagementLibraryError:
            event_set.registrations.discard((serial, event_kind))
            raise

    def wait_for_event(self, event_set: EventSet, timeout_ms: int) -> Event:
        self._require_initialized()
        native = _call(pyhlml.hlmlEventSetWait, event_set.handle, timeout_ms)
        serial = _text(_call(pyhlml.hlmlDeviceGetSerial, native.device))
        return Event(serial=serial, kind=int(native.event_type))

    def _index_for_serial(self, serial: str) -> int:
        if serial not in self._serial_to_index:
            self.device_by_serial(serial)
        return self._serial_to_index[serial]

    def _device_from_handle(self, handle: Any) -> Device:
        pci_info = _call(pyhlml.hlmlDeviceGetPCIInfo, handle)
        # pci_device_id packs the device ID in the high half, vendor in the low half
        combined = int(pci_info.pci_device_id)
        vendor, device = combined & 0xFFFF, (combined >> 16) & 0xFFFF
        return Device(
            serial_number=SerialNumber(_text(_call(pyhlml.hlmlDeviceGetSerial, handle))),
            uuid=_text(_call(pyhlml.hlmlDeviceGetUUID, handle)),
            pci_id=f"{vendor:04x}:{device:04x}",
            pci_bus_id=PCIBusId(_text(pci_info.bus_id)),
            minor_number=int(_call(pyhlml.hlmlDeviceGetMinorNumber, handle)),
            module_id=int(_call(pyhlml.hlmlDeviceGetModuleID, handle)),
            pci_devices_path=self._pci_devices_path,
        )
