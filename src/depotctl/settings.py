"""Runtime settings for depotctl."""

from __future__ import annotations

import os
import socket
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

from depotctl import __version__

CONFIG_ENV = "DEPOTCTL_CONFIG"
HOME_ENV = "DEPOTCTL_HOME"
DEFAULT_CONFIG_PATH = Path("/etc/depotctl/config.yaml")
DEFAULT_HOME = Path("/Library/Application Support/depotctl")


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be used."""


@dataclass(frozen=True)
class RuntimeSettings:
    home_dir: Path
    support_dir: Path
    log_dir: Path
    agent_binary: Path = Path("/usr/local/bin/fleet-agent")
    server_url: str = "https://localhost:8443"
    username: str = "depotctl"
    password_env: str = "DEPOTCTL_SERVER_PASSWORD"
    client_id: str = ""
    verify_tls: bool = True
    timeout: float = 30.0
    distribution_point: str | None = None
    mount_dir: Path = Path("/Volumes/depotctl-dist")
    cli_version: str = __version__

    @property
    def receipts_file(self) -> Path:
        return self.support_dir / "receipts.json"

    @property
    def queue_file(self) -> Path:
        return self.support_dir / "puppy-queue.json"

    @property
    def available_cache_file(self) -> Path:
        return self.support_dir / "available.json"

    @property
    def diagnostic_log(self) -> Path:
        return self.log_dir / "depotctl.log"


_PATH_KEYS = {"home_dir", "support_dir", "log_dir", "agent_binary", "mount_dir"}
_STR_KEYS = {"server_url", "username", "password_env", "client_id"}


def _default_home_dir() -> Path:
    override = os.environ.get(HOME_ENV)
    if override:
        return Path(override).expanduser()
    return DEFAULT_HOME


def _coerce(key: str, value: Any) -> Any:
    if key in _PATH_KEYS:
        if not isinstance(value, str) or not value:
            raise ConfigError(f"config key '{key}' must be a non-empty path string")
        return Path(value).expanduser()
    if key in _STR_KEYS:
        if not isinstance(value, str):
            raise ConfigError(f"config key '{key}' must be a string")
        return value
    if key == "verify_tls":
        if not isinstance(value, bool):
            raise ConfigError("config key 'verify_tls' must be a boolean")
        return value
    if key == "timeout":
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            raise ConfigError("config key 'timeout' must be a positive number")
        return float(value)
    if key == "distribution_point":
        if value is not None and not isinstance(value, str):
            raise ConfigError("config key 'distribution_point' must be a string")
        return value or None
    raise ConfigError(f"config key '{key}' is not supported")


def _read_config(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text("utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config structure in {path}: expected a mapping")
    return data


def load_settings(config_path: Path | None = None) -> RuntimeSettings:
    base = _default_home_dir()
    settings = RuntimeSettings(
        home_dir=base,
        support_dir=base / "support",
        log_dir=base / "logs",
        client_id=socket.gethostname(),
    )
    if config_path is None:
        config_path = Path(os.environ.get(CONFIG_ENV, str(DEFAULT_CONFIG_PATH)))
    overrides = _read_config(config_path)
    allowed = {f.name for f in fields(RuntimeSettings)} - {"cli_version"}
    unknown = sorted(set(overrides) - allowed)
    if unknown:
        raise ConfigError(f"Unknown config keys in {config_path}: {', '.join(unknown)}")
    coerced = {key: _coerce(key, value) for key, value in overrides.items()}
    if "home_dir" in coerced:
        home = coerced["home_dir"]
        coerced.setdefault("support_dir", home / "support")
        coerced.setdefault("log_dir", home / "logs")
    return replace(settings, **coerced)
