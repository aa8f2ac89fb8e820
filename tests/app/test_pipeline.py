from __future__ import annotations

import json

import pytest

from depotctl.app.pipeline import Runtime, run_invocation
from depotctl.app.session import BackendSession
from depotctl.domain.actions import Action
from depotctl.domain.errors import (
    ArgumentValidationError,
    BackendConnectionError,
    InsufficientPrivilegeError,
    UnknownActionError,
)
from depotctl.utils.log_config import LogConfig


def _runtime(settings, host, backend) -> Runtime:
    return Runtime(settings=settings, log_config=LogConfig(), host=host, backend=backend)


def _teardowns(backend) -> list[str]:
    return [name for name in backend.call_names() if name in {"disconnect", "release_resources"}]


def test_install_scenario_as_root(settings, host, backend) -> None:
    outcome = run_invocation(_runtime(settings, host, backend), "install", {"admin": "jdoe"}, ["pkgA", "pkgB"])
    assert outcome.action is Action.INSTALL
    assert backend.calls == [
        ("connect", ()),
        ("install", (["pkgA", "pkgB"], {"admin": "jdoe"})),
        ("disconnect", ()),
        ("release_resources", ()),
    ]
    assert backend.environment == ("jdoe", False)


def test_list_installed_as_non_root(settings, host_factory, backend) -> None:
    host = host_factory(elevated=False)
    outcome = run_invocation(_runtime(settings, host, backend), "list-installed")
    assert outcome.action is Action.LIST_INSTALLED
    assert backend.call_names() == ["list_installed", "disconnect", "release_resources"]


def test_install_without_targets_never_contacts_backend(settings, host, backend) -> None:
    with pytest.raises(ArgumentValidationError):
        run_invocation(_runtime(settings, host, backend), "install", {"admin": "jdoe"}, [])
    assert "connect" not in backend.call_names()
    assert "install" not in backend.call_names()
    assert _teardowns(backend) == ["disconnect", "release_resources"]


def test_unknown_action_raises(settings, host, backend) -> None:
    with pytest.raises(UnknownActionError):
        run_invocation(_runtime(settings, host, backend), "bogus-action")
    assert _teardowns(backend) == ["disconnect", "release_resources"]


def test_non_root_privileged_action_rejected(settings, host_factory, backend) -> None:
    with pytest.raises(InsufficientPrivilegeError):
        run_invocation(_runtime(settings, host_factory(elevated=False), backend), "freeze", {}, ["pkg"])


def test_connection_failure_propagates_and_tears_down(settings, host, backend_factory) -> None:
    backend = backend_factory(fail_connect=BackendConnectionError("down"))
    with pytest.raises(BackendConnectionError):
        run_invocation(_runtime(settings, host, backend), "sync")
    assert _teardowns(backend) == ["disconnect", "release_resources"]


def test_teardown_runs_once_on_interrupt(settings, host, backend) -> None:
    def interrupted(targets, options):
        raise KeyboardInterrupt

    backend.install = interrupted  # type: ignore[method-assign]
    with pytest.raises(KeyboardInterrupt):
        run_invocation(_runtime(settings, host, backend), "install", {"admin": "jdoe"}, ["pkg"])
    assert _teardowns(backend) == ["disconnect", "release_resources"]


def test_session_close_is_idempotent(backend) -> None:
    session = BackendSession(backend)
    with session:
        session.connect()
        session.connect()
    session.close()
    assert backend.call_names() == ["connect", "disconnect", "release_resources"]
    assert session.closed
    with pytest.raises(RuntimeError):
        session.connect()


def test_release_runs_even_if_disconnect_fails(backend) -> None:
    def broken() -> None:
        backend.calls.append(("disconnect", ()))
        raise OSError("socket gone")

    backend.disconnect = broken  # type: ignore[method-assign]
    with pytest.raises(OSError):
        BackendSession(backend).close()
    assert _teardowns(backend) == ["disconnect", "release_resources"]


def test_audit_event_written(settings, host, backend, monkeypatch) -> None:
    monkeypatch.setenv("DEPOTCTL_TELEMETRY", "1")
    run_invocation(_runtime(settings, host, backend), "freeze", {"admin": "jdoe"}, ["pkg"])
    with pytest.raises(ArgumentValidationError):
        run_invocation(_runtime(settings, host, backend), "thaw")
    lines = (settings.log_dir / "telemetry.jsonl").read_text(encoding="utf-8").splitlines()
    events = [json.loads(line) for line in lines]
    assert [e["status"] for e in events] == ["success", "failed"]
    assert events[0]["payload"]["admin"] == "jdoe"
    assert events[0]["payload"]["targets"] == ["pkg"]
    assert "ArgumentValidationError" in events[1]["payload"]["error"]


def test_unexpected_backend_error_is_audited(settings, host, backend, monkeypatch) -> None:
    monkeypatch.setenv("DEPOTCTL_TELEMETRY", "1")

    def broken(targets):
        raise ValueError("malformed receipt")

    backend.freeze = broken  # type: ignore[method-assign]
    with pytest.raises(ValueError):
        run_invocation(_runtime(settings, host, backend), "freeze", {"admin": "jdoe"}, ["pkg"])
    event = json.loads((settings.log_dir / "telemetry.jsonl").read_text(encoding="utf-8").splitlines()[-1])
    assert event["status"] == "failed"
    assert event["payload"]["action"] == "freeze"
    assert event["payload"]["error"] == "ValueError: malformed receipt"
    assert _teardowns(backend) == ["disconnect", "release_resources"]
