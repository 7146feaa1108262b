"""Lifecycle handling shared by the management library providers."""

from __future__ import annotations

import logging

from accel_monitor.domain.value_objects.identifiers import EVENT_CRITICAL_ERROR
from accel_monitor.ports.outbound.errors import AlreadyInitializedError, UninitializedError

logger = logging.getLogger(__name__)


class ManagedLibrary:
    """Base class tracking initialize/shutdown for a provider.

    Subclasses implement _open() and _close() and call
    _require_initialized() at the top of every operation.
    """

    name = "library"

    def __init__(self) -> None:
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        if self._initialized:
            raise AlreadyInitializedError()
        self._open()
        self._initialized = True
        logger.info(f"{self.name} management library initialized")

    def shutdown(self) -> None:
        self._require_initialized()
        try:
            self._close()
        finally:
            self._initialized = False
        logger.info(f"{self.name} management library shut down")

    def critical_error_bit(self) -> int:
        return EVENT_CRITICAL_ERROR

    def _open(self) -> None:
        pass

    def _close(self) -> None:
        pass

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise UninitializedError()

    def __enter__(self):
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._initialized:
            self.shutdown()
