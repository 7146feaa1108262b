"""Error taxonomy of the accelerator management library.

Every provider reports failures with these exceptions, keyed by the
native library's numeric return codes so the real binding, the static
device set and the simulated fleet all fail the same way.
"""

from __future__ import annotations

from enum import IntEnum


class ReturnCode(IntEnum):
    """Native management library return codes."""
    SUCCESS = 0
    UNINITIALIZED = 1
    INVALID_ARGUMENT = 2
    NOT_SUPPORTED = 3
    ALREADY_INITIALIZED = 5
    NOT_FOUND = 6
    INSUFFICIENT_SIZE = 7
    DRIVER_NOT_LOADED = 9
    TIMEOUT = 10
    AIP_IS_LOST = 15
    MEMORY = 20
    NO_DATA = 21
    UNKNOWN = 49


class ManagementLibraryError(Exception):
    """Management library operation failed."""

    code: ReturnCode | None = None
    default_message = "management library error"

    def __init__(self, message: str | None = None, code: ReturnCode | int | None = None) -> None:
        super().__init__(message or self.default_message)
        if code is not None:
            self.code = code


class UninitializedError(ManagementLibraryError):
    code = ReturnCode.UNINITIALIZED
    default_message = "hlml not initialized"


class InvalidArgumentError(ManagementLibraryError):
    code = ReturnCode.INVALID_ARGUMENT
    default_message = "invalid argument"


class NotSupportedError(ManagementLibraryError):
    code = ReturnCode.NOT_SUPPORTED
    default_message = "not supported"


class AlreadyInitializedError(ManagementLibraryError):
    code = ReturnCode.ALREADY_INITIALIZED
    default_message = "hlml already initialized"


class NotFoundError(ManagementLibraryError):
    code = ReturnCode.NOT_FOUND
    default_message = "not found"


class NoRecognizedDeviceError(NotFoundError):
    """No device with a known family ID is present on the system."""
    default_message = "no habana devices on the system"


class InsufficientSizeError(ManagementLibraryError):
    code = ReturnCode.INSUFFICIENT_SIZE
    default_message = "insufficient size"


class DriverNotLoadedError(ManagementLibraryError):
    code = ReturnCode.DRIVER_NOT_LOADED
    default_message = "driver not loaded"


class EventTimeoutError(ManagementLibraryError):
    """No event arrived within the wait timeout. Not a fault."""
    code = ReturnCode.TIMEOUT
    default_message = "event timeout"


class DeviceLostError(ManagementLibraryError):
    code = ReturnCode.AIP_IS_LOST
    default_message = "aip is lost"


class OutOfMemoryError(ManagementLibraryError):
    code = ReturnCode.MEMORY
    default_message = "memory error"


class NoDataError(ManagementLibraryError):
    code = ReturnCode.NO_DATA
    default_message = "no data"


class UnknownLibraryError(ManagementLibraryError):
    code = ReturnCode.UNKNOWN
    default_message = "unknown error"


_ERRORS_BY_CODE: dict[ReturnCode, type[ManagementLibraryError]] = {
    cls.code: cls
    for cls in (
        UninitializedError,
        InvalidArgumentError,
        NotSupportedError,
        AlreadyInitializedError,
        NotFoundError,
        InsufficientSizeError,
        DriverNotLoadedError,
        EventTimeoutError,
        DeviceLostError,
        OutOfMemoryError,
        NoDataError,
        UnknownLibraryError,
    )
}


def error_from_code(code: int, message: str | None = None) -> ManagementLibraryError | None:
    """Translate a native return code into an exception instance.

    Args:
        code: Numeric return code.
        message: Optional message overriding the default one.

    Returns:
        None for success, otherwise the matching exception. Codes outside
        the known set yield a plain ManagementLibraryError.
    """
    if code == ReturnCode.SUCCESS:
        return None
    try:
        error_cls = _ERRORS_BY_CODE[ReturnCode(code)]
    except ValueError:
        return ManagementLibraryError(
            message or f"invalid HLML error return code {code}", code=code
        )
    return error_cls(message)
