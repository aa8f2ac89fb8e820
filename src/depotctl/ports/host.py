"""Port for facts about the machine depotctl runs on."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path


class HostEnvironment(ABC):
    @abstractmethod
    def is_elevated(self) -> bool:
        """Return True when running with superuser privileges."""

    @abstractmethod
    def ensure_directory(self, path: Path, mode: int) -> None:
        """Create ``path`` if missing and set its permission bits to ``mode``."""

    @abstractmethod
    def is_executable(self, path: Path) -> bool:
        """Return True when ``path`` exists and may be executed."""

    @abstractmethod
    def console_user(self) -> str | None:
        """Best-effort name of the human operator, or None."""


__all__ = ["HostEnvironment"]
