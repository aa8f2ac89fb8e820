from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any, Mapping, Sequence

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
os.environ.setdefault("DEPOTCTL_TELEMETRY", "0")
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from depotctl.ports.backend import PackageBackend  # noqa: E402
from depotctl.ports.host import HostEnvironment  # noqa: E402
from depotctl.settings import RuntimeSettings  # noqa: E402


class FakeHost(HostEnvironment):
    def __init__(self, *, elevated: bool = True, agent_present: bool = True, console: str | None = "jdoe") -> None:
        self.elevated = elevated
        self.agent_present = agent_present
        self.console = console
        self.ensured: list[tuple[Path, int]] = []

    def is_elevated(self) -> bool:
        return self.elevated

    def ensure_directory(self, path: Path, mode: int) -> None:
        self.ensured.append((path, mode))

    def is_executable(self, path: Path) -> bool:
        return self.agent_present

    def console_user(self) -> str | None:
        return self.console


class RecordingBackend(PackageBackend):
    """Backend double that records every call it receives."""

    def __init__(self, *, fail_connect: Exception | None = None) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.environment: tuple[str, bool] | None = None
        self.fail_connect = fail_connect

    def _record(self, name: str, *args: Any) -> list[dict[str, Any]]:
        self.calls.append((name, args))
        return []

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def connect(self) -> None:
        self.calls.append(("connect", ()))
        if self.fail_connect is not None:
            raise self.fail_connect

    def disconnect(self) -> None:
        self.calls.append(("disconnect", ()))

    def release_resources(self) -> None:
        self.calls.append(("release_resources", ()))

    def apply_environment(self, admin: str, debug: bool) -> None:
        self.environment = (admin, debug)

    def install(self, targets: Sequence[str], options: Mapping[str, Any]):
        return self._record("install", list(targets), dict(options))

    def uninstall(self, targets: Sequence[str], options: Mapping[str, Any]):
        return self._record("uninstall", list(targets), dict(options))

    def sync(self, options: Mapping[str, Any]):
        return self._record("sync", dict(options))

    def dequeue_pending(self, targets: Sequence[str]):
        return self._record("dequeue_pending", list(targets))

    def freeze(self, targets: Sequence[str]):
        return self._record("freeze", list(targets))

    def thaw(self, targets: Sequence[str]):
        return self._record("thaw", list(targets))

    def forget(self, targets: Sequence[str]):
        return self._record("forget", list(targets))

    def list_available(self, force: bool):
        return self._record("list_available", force)

    def list_installed(self):
        return self._record("list_installed")

    def list_manual(self):
        return self._record("list_manual")

    def list_pilots(self):
        return self._record("list_pilots")

    def list_frozen(self):
        return self._record("list_frozen")

    def list_pending_queue(self):
        return self._record("list_pending_queue")

    def list_details(self, targets: Sequence[str]):
        return self._record("list_details", list(targets))

    def list_files(self, targets: Sequence[str]):
        return self._record("list_files", list(targets))

    def query_files(self, targets: Sequence[str]):
        return self._record("query_files", list(targets))


def make_settings(tmp_path: Path, **overrides: Any) -> RuntimeSettings:
    home = tmp_path / "home"
    values: dict[str, Any] = {
        "home_dir": home,
        "support_dir": home / "support",
        "log_dir": home / "logs",
        "agent_binary": tmp_path / "bin" / "fleet-agent",
        "server_url": "https://mgmt.example.test:8443",
        "client_id": "host-01",
    }
    values.update(overrides)
    return RuntimeSettings(**values)


@pytest.fixture
def settings(tmp_path: Path) -> RuntimeSettings:
    return make_settings(tmp_path)


@pytest.fixture
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def backend() -> RecordingBackend:
    return RecordingBackend()


@pytest.fixture
def host_factory() -> type[FakeHost]:
    return FakeHost


@pytest.fixture
def backend_factory() -> type[RecordingBackend]:
    return RecordingBackend


@pytest.fixture
def settings_factory():
    return make_settings
