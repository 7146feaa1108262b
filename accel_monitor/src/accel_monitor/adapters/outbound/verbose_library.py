"""Verbose diagnostic wrapper for any management library.

Logs every call with its arguments, result and duration, then hands the
result back untouched. Enabled with ``library.verbose`` for
troubleshooting; it never changes behavior.
"""

from __future__ import annotations

import time
from typing import Any, Callable

from accel_monitor.domain.entities.device import Device, Event, EventSet
from accel_monitor.infrastructure.logging import get_logger
from accel_monitor.ports.outbound.management_library import ManagementLibraryPort


class VerboseManagementLibrary:
    """Logging decorator implementing ManagementLibraryPort."""

    def __init__(self, impl: ManagementLibraryPort, logger: Any = None) -> None:
        self._impl = impl
        self._log = logger or get_logger("verbose_library")

    @property
    def wrapped(self) -> ManagementLibraryPort:
        return self._impl

    def _traced(self, method: str, call: Callable[[], Any], **args: Any) -> Any:
        self._log.info("hlml_call", method=method, **args)
        start = time.perf_counter()
        try:
            result = call()
        except Exception as e:
            self._log.info(
                "hlml_result",
                method=method,
                error=repr(e),
                duration_ms=round((time.perf_counter() - start) * 1000, 3),
            )
            raise
        self._log.info(
            "hlml_result",
            method=method,
            result=repr(result),
            duration_ms=round((time.perf_counter() - start) * 1000, 3),
        )
        return result

    def initialize(self) -> None:
        self._traced("initialize", self._impl.initialize)

    def shutdown(self) -> None:
        self._traced("shutdown", self._impl.shutdown)

    def device_type_name(self) -> str:
        return self._traced("device_type_name", self._impl.device_type_name)

    def device_count(self) -> int:
        return self._traced("device_count", self._impl.device_count)

    def device_by_index(self, index: int) -> Device:
        return self._traced("device_by_index", lambda: self._impl.device_by_index(index), index=index)

    def device_by_serial(self, serial: str) -> Device:
        return self._traced("device_by_serial", lambda: self._impl.device_by_serial(serial), serial=serial)

    def new_event_set(self) -> EventSet:
        return self._traced("new_event_set", self._impl.new_event_set)

    def delete_event_set(self, event_set: EventSet) -> None:
        self._traced(
            "delete_event_set",
            lambda: self._impl.delete_event_set(event_set),
            event_set=repr(event_set),
        )

    def register_event(self, event_set: EventSet, event_kind: int, serial: str) -> None:
        self._traced(
            "register_event",
            lambda: self._impl.register_event(event_set, event_kind, serial),
            event_kind=event_kind,
            serial=serial,
        )

    def wait_for_event(self, event_set: EventSet, timeout_ms: int) -> Event:
        return self._traced(
            "wait_for_event",
            lambda: self._impl.wait_for_event(event_set, timeout_ms),
            timeout_ms=timeout_ms,
        )

    def critical_error_bit(self) -> int:
        return self._traced("critical_error_bit", self._impl.critical_error_bit)

    def __enter__(self) -> VerboseManagementLibrary:
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()
