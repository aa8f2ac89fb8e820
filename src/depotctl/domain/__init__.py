"""Domain exports."""

from .actions import REGISTRY, Action, ActionRegistry, ActionSpec, normalize_token
from .errors import (
    ArgumentValidationError,
    BackendConnectionError,
    BackendError,
    DepotctlError,
    InsufficientPrivilegeError,
    MissingDependencyError,
    UnknownActionError,
)
from .request import OptionSet, RequestContext

__all__ = [
    "REGISTRY",
    "Action",
    "ActionRegistry",
    "ActionSpec",
    "ArgumentValidationError",
    "BackendConnectionError",
    "BackendError",
    "DepotctlError",
    "InsufficientPrivilegeError",
    "MissingDependencyError",
    "OptionSet",
    "RequestContext",
    "UnknownActionError",
    "normalize_token",
]
