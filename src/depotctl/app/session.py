"""Scoped ownership of the backend for one invocation."""

from __future__ import annotations

import logging
from types import TracebackType

from depotctl.ports.backend import PackageBackend

logger = logging.getLogger(__name__)


class BackendSession:
    """Connects on demand and tears the backend down exactly once."""

    def __init__(self, backend: PackageBackend) -> None:
        self._backend = backend
        self._connected = False
        self._closed = False

    @property
    def backend(self) -> PackageBackend:
        return self._backend

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def closed(self) -> bool:
        return self._closed

    def connect(self) -> None:
        if self._closed:
            raise RuntimeError("Backend session already closed")
        if self._connected:
            return
        self._backend.connect()
        self._connected = True
        logger.debug("backend connected")

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._backend.disconnect()
        finally:
            self._connected = False
            self._backend.release_resources()
        logger.debug("backend session closed")

    def __enter__(self) -> "BackendSession":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


__all__ = ["BackendSession"]
