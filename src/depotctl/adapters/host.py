"""Host facts read from the local operating system."""

from __future__ import annotations

import os
import pwd
from pathlib import Path

from depotctl.ports.host import HostEnvironment

CONSOLE_DEVICE = Path("/dev/console")


class LocalHost(HostEnvironment):
    def __init__(self, console_device: Path = CONSOLE_DEVICE) -> None:
        self._console_device = console_device

    def is_elevated(self) -> bool:
        return os.geteuid() == 0

    def ensure_directory(self, path: Path, mode: int) -> None:
        path.mkdir(parents=True, exist_ok=True)
        os.chmod(path, mode)

    def is_executable(self, path: Path) -> bool:
        return path.is_file() and os.access(path, os.X_OK)

    def console_user(self) -> str | None:
        sudo_user = os.environ.get("SUDO_USER", "").strip()
        if sudo_user:
            return sudo_user
        try:
            return pwd.getpwuid(self._console_device.stat().st_uid).pw_name
        except (OSError, KeyError):
            pass
        try:
            return os.getlogin()
        except OSError:
            return None


__all__ = ["LocalHost"]
