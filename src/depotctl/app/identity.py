"""Resolution of the admin name attributed to an action."""

from __future__ import annotations

from typing import Any

from depotctl.ports.host import HostEnvironment

ROOT_USER = "root"
UNKNOWN_ADMIN = "unknown"
AUTO_INSTALL_ADMIN = "auto-installed"
DISALLOWED_ADMINS = frozenset({"", ROOT_USER, UNKNOWN_ADMIN, AUTO_INSTALL_ADMIN})


def is_attributable(admin: str) -> bool:
    return admin not in DISALLOWED_ADMINS


class AdminIdentityResolver:
    """Resolve the operator once per invocation and remember the answer."""

    def __init__(self, host: HostEnvironment) -> None:
        self._host = host
        self._resolved: str | None = None

    def resolve(self, explicit: Any = None) -> str:
        if self._resolved is None:
            self._resolved = self._lookup(explicit)
        return self._resolved

    def _lookup(self, explicit: Any) -> str:
        if explicit is not None:
            return str(explicit)
        console = self._host.console_user()
        return console.strip() if console else ""


__all__ = [
    "AUTO_INSTALL_ADMIN",
    "AdminIdentityResolver",
    "DISALLOWED_ADMINS",
    "ROOT_USER",
    "UNKNOWN_ADMIN",
    "is_attributable",
]
