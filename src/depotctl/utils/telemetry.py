"""Audit trail of depotctl actions, appended as JSON lines (opt-out)."""

from __future__ import annotations

import json
import os
import time
from importlib import resources
from typing import Any, Sequence

import jsonschema

from depotctl.settings import RuntimeSettings

AUDIT_FILE = "telemetry.jsonl"
LEVELS = ("info", "warn", "error")

_DISABLE_VALUES = {"0", "false", "no", "off"}

_VALIDATOR: jsonschema.Draft202012Validator | None = None


def telemetry_enabled() -> bool:
    return os.getenv("DEPOTCTL_TELEMETRY", "1").strip().lower() not in _DISABLE_VALUES


def record_action(
    settings: RuntimeSettings,
    *,
    token: str,
    action: str | None,
    admin: str | None,
    targets: Sequence[str],
    status: str,
    duration_ms: float,
    error: BaseException | None = None,
) -> None:
    """Append one audit line describing who ran which action on what."""
    payload: dict[str, Any] = {"token": token}
    if action is not None:
        payload.update({"action": action, "admin": admin or "", "targets": list(targets)})
    if error is not None:
        payload["error"] = f"{type(error).__name__}: {error}"
    record_structured_event(
        settings,
        "action",
        payload=payload,
        level="error" if error is not None else "info",
        status=status,
        component="pipeline",
        duration_ms=duration_ms,
    )


def record_structured_event(
    settings: RuntimeSettings,
    event: str,
    *,
    payload: dict[str, Any] | None = None,
    level: str = "info",
    status: str | None = None,
    component: str | None = None,
    duration_ms: float | None = None,
) -> None:
    if not telemetry_enabled():
        return
    if not event.strip():
        raise ValueError("Audit event name must not be empty")
    if level not in LEVELS:
        raise ValueError(f"Audit level '{level}' is not supported")
    if duration_ms is not None and duration_ms < 0:
        raise ValueError("Audit durationMs must be a non-negative number")
    record: dict[str, Any] = {"ts": time.time(), "event": event, "payload": payload or {}, "level": level}
    optional = {"status": status, "component": component, "durationMs": duration_ms}
    record.update({key: value for key, value in optional.items() if value is not None})
    _validator().validate(record)
    path = settings.log_dir / AUDIT_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as fh:
        fh.write(json.dumps(record, ensure_ascii=False) + "\n")


def _validator() -> jsonschema.Draft202012Validator:
    global _VALIDATOR
    if _VALIDATOR is None:
        schema_file = resources.files("depotctl.resources") / "telemetry.schema.json"
        _VALIDATOR = jsonschema.Draft202012Validator(json.loads(schema_file.read_text(encoding="utf-8")))
    return _VALIDATOR


__all__ = ["AUDIT_FILE", "record_action", "record_structured_event", "telemetry_enabled"]
