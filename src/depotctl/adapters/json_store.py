"""Small JSON-file keyed stores for receipts and the pending-reboot queue."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Callable, Iterator

from depotctl.domain.errors import BackendError


class JsonStore:
    """Mapping of basename -> record persisted as one JSON document."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> dict[str, dict[str, Any]]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise BackendError(f"Corrupted store {self._path}: {exc}") from exc
        if not isinstance(data, dict):
            raise BackendError(f"Corrupted store {self._path}: expected an object")
        return data

    def write(self, records: dict[str, dict[str, Any]]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(records, indent=2, sort_keys=True), encoding="utf-8")
        os.replace(tmp, self._path)

    def get(self, basename: str) -> dict[str, Any] | None:
        return self.read().get(basename)

    def put(self, basename: str, record: dict[str, Any]) -> None:
        records = self.read()
        records[basename] = record
        self.write(records)

    def remove(self, basename: str) -> dict[str, Any] | None:
        records = self.read()
        removed = records.pop(basename, None)
        if removed is not None:
            self.write(records)
        return removed

    def update(self, basename: str, **changes: Any) -> dict[str, Any] | None:
        records = self.read()
        record = records.get(basename)
        if record is None:
            return None
        record.update(changes)
        self.write(records)
        return record

    def select(self, predicate: Callable[[dict[str, Any]], bool] | None = None) -> list[dict[str, Any]]:
        records = self.read()
        return [records[name] for name in sorted(records) if predicate is None or predicate(records[name])]

    def __iter__(self) -> Iterator[dict[str, Any]]:
        return iter(self.select())


__all__ = ["JsonStore"]
