"""Port for the package-management backend."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping, Sequence

Rows = list[dict[str, Any]]


class PackageBackend(ABC):
    """Operations performed on behalf of depotctl once a request is validated."""

    @abstractmethod
    def connect(self) -> None:
        """Open a connection to the management server."""

    @abstractmethod
    def disconnect(self) -> None:
        """Close the server connection; safe to call when not connected."""

    @abstractmethod
    def release_resources(self) -> None:
        """Unmount any distribution point mounted during this run."""

    @abstractmethod
    def apply_environment(self, admin: str, debug: bool) -> None:
        """Record the attributed admin and debug flag for later agent calls."""

    @abstractmethod
    def install(self, targets: Sequence[str], options: Mapping[str, Any]) -> Rows: ...

    @abstractmethod
    def uninstall(self, targets: Sequence[str], options: Mapping[str, Any]) -> Rows: ...

    @abstractmethod
    def sync(self, options: Mapping[str, Any]) -> Rows: ...

    @abstractmethod
    def dequeue_pending(self, targets: Sequence[str]) -> Rows: ...

    @abstractmethod
    def freeze(self, targets: Sequence[str]) -> Rows: ...

    @abstractmethod
    def thaw(self, targets: Sequence[str]) -> Rows: ...

    @abstractmethod
    def forget(self, targets: Sequence[str]) -> Rows: ...

    @abstractmethod
    def list_available(self, force: bool) -> Rows: ...

    @abstractmethod
    def list_installed(self) -> Rows: ...

    @abstractmethod
    def list_manual(self) -> Rows: ...

    @abstractmethod
    def list_pilots(self) -> Rows: ...

    @abstractmethod
    def list_frozen(self) -> Rows: ...

    @abstractmethod
    def list_pending_queue(self) -> Rows: ...

    @abstractmethod
    def list_details(self, targets: Sequence[str]) -> Rows: ...

    @abstractmethod
    def list_files(self, targets: Sequence[str]) -> Rows: ...

    @abstractmethod
    def query_files(self, targets: Sequence[str]) -> Rows: ...


__all__ = ["PackageBackend", "Rows"]
