"""Outbound ports - external dependency interfaces for the accelerator monitor."""

from accel_monitor.ports.outbound.errors import (
    AlreadyInitializedError,
    DeviceLostError,
    DriverNotLoadedError,
    EventTimeoutError,
    InsufficientSizeError,
    InvalidArgumentError,
    ManagementLibraryError,
    NoDataError,
    NoRecognizedDeviceError,
    NotFoundError,
    NotSupportedError,
    OutOfMemoryError,
    ReturnCode,
    UninitializedError,
    UnknownLibraryError,
    error_from_code,
)
from accel_monitor.ports.outbound.management_library import ManagementLibraryPort

__all__ = [
    "ManagementLibraryPort",
    "ManagementLibraryError",
    "ReturnCode",
    "error_from_code",
    "AlreadyInitializedError",
    "DeviceLostError",
    "DriverNotLoadedError",
    "EventTimeoutError",
    "InsufficientSizeError",
    "InvalidArgumentError",
    "NoDataError",
    "NoRecognizedDeviceError",
    "NotFoundError",
    "NotSupportedError",
    "OutOfMemoryError",
    "UninitializedError",
    "UnknownLibraryError",
]
