"""Error taxonomy shared by every depotctl layer."""

from __future__ import annotations


class DepotctlError(RuntimeError):
    """Base class for all expected depotctl failures."""


class UnknownActionError(DepotctlError):
    """Raised when a token matches no action name or alias."""

    def __init__(self, token: str) -> None:
        super().__init__(
            f"Unknown action '{token}'. Run `depotctl help` for the list of actions."
        )
        self.token = token


class InsufficientPrivilegeError(DepotctlError, PermissionError):
    """Raised when a non-root principal requests a privileged action."""


class MissingDependencyError(DepotctlError):
    """Raised when the local agent binary is absent or not executable."""


class ArgumentValidationError(DepotctlError):
    """Raised for missing targets, bad option values or unattributed admins."""


class BackendConnectionError(DepotctlError, ConnectionError):
    """Raised when the management server cannot be reached or is unsupported."""


class BackendError(DepotctlError):
    """Raised when a backend operation fails after a successful connection."""


__all__ = [
    "ArgumentValidationError",
    "BackendConnectionError",
    "BackendError",
    "DepotctlError",
    "InsufficientPrivilegeError",
    "MissingDependencyError",
    "UnknownActionError",
]
