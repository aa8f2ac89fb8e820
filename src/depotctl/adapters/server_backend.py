"""Backend that talks to the management server and drives the local agent."""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Mapping, Sequence

import requests
from packaging.version import InvalidVersion, Version

from depotctl.adapters.json_store import JsonStore
from depotctl.domain.errors import BackendConnectionError, BackendError, MissingDependencyError
from depotctl.ports.backend import PackageBackend, Rows
from depotctl.settings import RuntimeSettings

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
MIN_SERVER_VERSION = Version("10.4.0")
AVAILABLE_CACHE_TTL = timedelta(hours=1)
_PACKAGE_KEYS = frozenset({"id", "basename", "edition"})

Runner = Callable[..., subprocess.CompletedProcess]
Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ServerCredentials:
    username: str
    password_env: str

    def resolve(self) -> tuple[str, str]:
        password = os.environ.get(self.password_env)
        if not password:
            raise BackendConnectionError(
                f"Server password missing in environment variable '{self.password_env}'"
            )
        return self.username, password


class ServerBackend(PackageBackend):
    def __init__(
        self,
        settings: RuntimeSettings,
        session: requests.Session | None = None,
        *,
        runner: Runner = subprocess.run,
        clock: Clock = _utcnow,
    ) -> None:
        self._settings = settings
        self._session = session or requests.Session()
        self._runner = runner
        self._clock = clock
        self._credentials = ServerCredentials(settings.username, settings.password_env)
        self._receipts = JsonStore(settings.receipts_file)
        self._queue = JsonStore(settings.queue_file)
        self._available_cache = JsonStore(settings.available_cache_file)
        self._env: dict[str, str] = {}
        self._admin = ""
        self._connected = False
        self._server_version: Version | None = None
        self._mounted = False

    # connection lifecycle -------------------------------------------------

    @property
    def server_version(self) -> Version | None:
        return self._server_version

    def connect(self) -> None:
        self._session.auth = self._credentials.resolve()
        self._session.verify = self._settings.verify_tls
        url = self._url("/status")
        try:
            response = self._session.get(url, params=self._client_params(), timeout=self._settings.timeout)
        except requests.RequestException as exc:
            raise BackendConnectionError(f"Cannot reach management server at {url}: {exc}") from exc
        if response.status_code >= 400:
            raise BackendConnectionError(
                f"Management server refused connection: {response.status_code} {response.text}"
            )
        raw_version = str((response.json() or {}).get("version", ""))
        try:
            version = Version(raw_version)
        except InvalidVersion as exc:
            raise BackendConnectionError(f"Management server reported invalid version '{raw_version}'") from exc
        if version < MIN_SERVER_VERSION:
            raise BackendConnectionError(
                f"Management server {version} is older than the supported minimum {MIN_SERVER_VERSION}"
            )
        self._server_version = version
        self._connected = True
        logger.info("connected to %s (server %s)", self._settings.server_url, version)

    def disconnect(self) -> None:
        if self._connected:
            logger.debug("disconnecting from %s", self._settings.server_url)
        self._connected = False
        self._session.close()

    def release_resources(self) -> None:
        if not self._mounted:
            return
        mount_dir = self._settings.mount_dir
        self._mounted = False
        result = self._runner(["umount", str(mount_dir)], env=self._agent_env(), check=False)
        if result.returncode != 0:
            logger.warning("could not unmount distribution point at %s", mount_dir)

    def apply_environment(self, admin: str, debug: bool) -> None:
        self._admin = admin
        self._env = {"DEPOTCTL_ADMIN": admin, "DEPOTCTL_DEBUG": "1" if debug else "0"}

    # package operations ---------------------------------------------------

    def install(self, targets: Sequence[str], options: Mapping[str, Any]) -> Rows:
        rows: Rows = []
        queued = False
        for target in targets:
            package = self._fetch_package(target)
            basename = package["basename"]
            receipt = self._receipts.get(basename)
            if receipt and receipt.get("edition") == package["edition"] and not options.get("force"):
                logger.warning("%s is already installed; use --force to reinstall", package["edition"])
                rows.append(self._row(package, "skipped"))
                continue
            if package.get("reboot") and not options.get("puppies"):
                self._queue.put(basename, self._queue_entry(package, options))
                rows.append(self._row(package, "queued"))
                queued = True
                continue
            self._install_package(package, options, admin=self._admin, manual=True)
            rows.append(self._row(package, "installed"))
        if queued and not options.get("no_puppy_notification"):
            self._agent(["notify", "--pending-reboot"])
        return rows

    def uninstall(self, targets: Sequence[str], options: Mapping[str, Any]) -> Rows:
        rows: Rows = []
        for target in targets:
            receipt = self._receipts.get(target)
            if receipt is None:
                logger.warning("%s is not installed", target)
                rows.append({"basename": target, "status": "not installed"})
                continue
            self._uninstall_receipt(receipt)
            rows.append({"basename": target, "edition": receipt.get("edition"), "status": "uninstalled"})
        return rows

    def sync(self, options: Mapping[str, Any]) -> Rows:
        # expiration is validated for install only; receipts keep the server value
        options = {key: value for key, value in options.items() if key != "expiration"}
        rows: Rows = []
        now = self._clock()
        for receipt in self._receipts.select(lambda r: r.get("status") == "pilot"):
            if self._expired(receipt, now):
                self._uninstall_receipt(receipt)
                rows.append({"basename": receipt["basename"], "edition": receipt.get("edition"), "status": "expired"})
        for receipt in self._receipts.select(lambda r: not r.get("frozen")):
            package = self._fetch_package(receipt["basename"])
            if package.get("status") != "live" or package["edition"] == receipt.get("edition"):
                continue
            if package.get("reboot") and not options.get("puppies"):
                self._queue.put(package["basename"], self._queue_entry(package, options))
                rows.append(self._row(package, "queued"))
                continue
            self._install_package(package, options, admin=receipt.get("admin", self._admin), manual=receipt.get("manual", False))
            rows.append(self._row(package, "updated"))
        if options.get("puppies"):
            for entry in self._queue.select():
                package = self._fetch_package(entry["basename"])
                self._install_package(package, entry, admin=entry.get("admin", self._admin), manual=True)
                self._queue.remove(entry["basename"])
                rows.append(self._row(package, "installed"))
        self._agent(["recon"])
        return rows

    def dequeue_pending(self, targets: Sequence[str]) -> Rows:
        rows: Rows = []
        for target in targets:
            removed = self._queue.remove(target)
            if removed is None:
                logger.warning("%s is not in the pending-reboot queue", target)
            rows.append({"basename": target, "status": "dequeued" if removed else "not queued"})
        return rows

    def freeze(self, targets: Sequence[str]) -> Rows:
        return self._set_frozen(targets, True)

    def thaw(self, targets: Sequence[str]) -> Rows:
        return self._set_frozen(targets, False)

    def forget(self, targets: Sequence[str]) -> Rows:
        rows: Rows = []
        for target in targets:
            removed = self._receipts.remove(target)
            if removed is None:
                logger.warning("no receipt for %s", target)
            rows.append({"basename": target, "status": "forgotten" if removed else "not installed"})
        return rows

    # listings -------------------------------------------------------------

    def list_available(self, force: bool) -> Rows:
        cached = self._available_cache.read()
        fetched_at = cached.get("meta", {}).get("fetched_at")
        if not force and fetched_at:
            age = self._clock() - datetime.fromisoformat(fetched_at)
            if age < AVAILABLE_CACHE_TTL:
                return list(cached.get("packages", {}).get("rows", []))
        payload = self._get("/packages", params={"status": "live"})
        packages = payload if isinstance(payload, list) else payload.get("packages", [])
        rows = [self._row(package, package.get("status", "live")) for package in packages]
        try:
            self._available_cache.write(
                {"meta": {"fetched_at": self._clock().isoformat()}, "packages": {"rows": rows}}
            )
        except OSError as exc:
            logger.debug("available-package cache not written: %s", exc)
        return rows

    def list_installed(self) -> Rows:
        return self._receipts.select()

    def list_manual(self) -> Rows:
        return self._receipts.select(lambda r: bool(r.get("manual")))

    def list_pilots(self) -> Rows:
        return self._receipts.select(lambda r: r.get("status") == "pilot")

    def list_frozen(self) -> Rows:
        return self._receipts.select(lambda r: bool(r.get("frozen")))

    def list_pending_queue(self) -> Rows:
        return self._queue.select()

    def list_details(self, targets: Sequence[str]) -> Rows:
        rows: Rows = []
        for target in targets:
            receipt = self._receipts.get(target)
            rows.append(receipt if receipt is not None else {"basename": target, "status": "not installed"})
        return rows

    def list_files(self, targets: Sequence[str]) -> Rows:
        rows: Rows = []
        for target in targets:
            receipt = self._receipts.get(target) or {}
            for path in receipt.get("files", []):
                rows.append({"basename": target, "path": path})
        return rows

    def query_files(self, targets: Sequence[str]) -> Rows:
        rows: Rows = []
        receipts = self._receipts.select()
        for path in targets:
            owners = [r["basename"] for r in receipts if path in r.get("files", [])]
            if not owners:
                rows.append({"path": path, "basename": None})
            rows.extend({"path": path, "basename": owner} for owner in owners)
        return rows

    # helpers --------------------------------------------------------------

    def _client_params(self) -> dict[str, str] | None:
        if not self._settings.client_id:
            return None
        return {"client_id": self._settings.client_id}

    def _url(self, path: str) -> str:
        return self._settings.server_url.rstrip("/") + API_PREFIX + path

    def _get(self, path: str, params: dict[str, str] | None = None) -> Any:
        if not self._connected:
            raise BackendError("Not connected to the management server")
        try:
            response = self._session.get(self._url(path), params=params, timeout=self._settings.timeout)
        except requests.RequestException as exc:
            raise BackendError(f"Request to {path} failed: {exc}") from exc
        if response.status_code == 404:
            raise BackendError(f"Not found on server: {path}")
        if response.status_code >= 400:
            raise BackendError(f"Server request failed: {response.status_code} {response.text}")
        return response.json()

    def _fetch_package(self, target: str) -> dict[str, Any]:
        package = self._get(f"/packages/{target}")
        if not isinstance(package, dict) or not _PACKAGE_KEYS <= package.keys():
            raise BackendError(f"Server returned an invalid package record for {target}")
        return package

    def _agent_env(self) -> dict[str, str]:
        env = os.environ.copy()
        env.update(self._env)
        return env

    def _agent(self, args: list[str]) -> None:
        command = [str(self._settings.agent_binary), *args]
        try:
            result = self._runner(command, env=self._agent_env(), check=False)
        except FileNotFoundError as exc:
            raise MissingDependencyError(f"Agent executable missing: {command[0]}") from exc
        if result.returncode != 0:
            raise BackendError(f"Agent command failed ({result.returncode}): {' '.join(command)}")

    def _mount_distribution_point(self) -> None:
        if self._mounted or not self._settings.distribution_point:
            return
        self._settings.mount_dir.mkdir(parents=True, exist_ok=True)
        self._agent(["mount", self._settings.distribution_point, str(self._settings.mount_dir)])
        self._mounted = True

    def _install_package(self, package: dict[str, Any], options: Mapping[str, Any], *, admin: str, manual: bool) -> None:
        self._mount_distribution_point()
        self._agent(["install", "--package-id", str(package["id"])])
        expiration = options.get("expiration", package.get("expiration"))
        self._receipts.put(
            package["basename"],
            {
                "basename": package["basename"],
                "edition": package["edition"],
                "package_id": package["id"],
                "status": package.get("status", "live"),
                "admin": admin,
                "manual": manual,
                "frozen": bool(options.get("freeze")),
                "expiration": expiration,
                "installed_at": self._clock().isoformat(),
                "files": list(package.get("files", [])),
            },
        )
        logger.info("installed %s", package["edition"])

    def _uninstall_receipt(self, receipt: dict[str, Any]) -> None:
        self._agent(["uninstall", "--package-id", str(receipt["package_id"])])
        self._receipts.remove(receipt["basename"])
        logger.info("uninstalled %s", receipt.get("edition"))

    def _queue_entry(self, package: dict[str, Any], options: Mapping[str, Any]) -> dict[str, Any]:
        return {
            "basename": package["basename"],
            "edition": package["edition"],
            "admin": self._admin,
            "queued_at": self._clock().isoformat(),
            "expiration": options.get("expiration"),
            "freeze": bool(options.get("freeze")),
        }

    def _expired(self, receipt: dict[str, Any], now: datetime) -> bool:
        days = receipt.get("expiration")
        if not days:
            return False
        installed_at = datetime.fromisoformat(receipt["installed_at"])
        return now - installed_at > timedelta(days=int(days))

    def _set_frozen(self, targets: Sequence[str], frozen: bool) -> Rows:
        rows: Rows = []
        for target in targets:
            record = self._receipts.update(target, frozen=frozen)
            if record is None:
                logger.warning("%s is not installed", target)
            status = ("frozen" if frozen else "thawed") if record else "not installed"
            rows.append({"basename": target, "status": status})
        return rows

    @staticmethod
    def _row(package: dict[str, Any], status: str) -> dict[str, Any]:
        return {"basename": package.get("basename"), "edition": package.get("edition"), "status": status}


__all__ = ["MIN_SERVER_VERSION", "ServerBackend", "ServerCredentials"]
