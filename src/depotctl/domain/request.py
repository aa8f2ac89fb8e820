"""Per-invocation request state."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from depotctl.domain.actions import Action

OptionValue = str | bool | int


class OptionSet:
    """Decoded flags, filled one at a time and then frozen."""

    def __init__(self) -> None:
        self._values: dict[str, OptionValue] = {}
        self._frozen = False

    @classmethod
    def from_mapping(cls, values: Mapping[str, OptionValue]) -> "OptionSet":
        options = cls()
        for key, value in values.items():
            options.set(key, value)
        return options

    def set(self, name: str, value: OptionValue) -> None:
        if self._frozen:
            raise RuntimeError(f"Option set is frozen; cannot set '{name}'")
        self._values[name] = value

    def freeze(self) -> Mapping[str, OptionValue]:
        self._frozen = True
        return MappingProxyType(dict(self._values))


@dataclass
class RequestContext:
    action: Action
    options: Mapping[str, OptionValue]
    targets: tuple[str, ...]
    _admin: str | None = field(default=None, repr=False)

    @classmethod
    def build(
        cls,
        action: Action,
        options: Mapping[str, OptionValue] | OptionSet | None = None,
        targets: Iterable[str] = (),
    ) -> "RequestContext":
        if isinstance(options, OptionSet):
            frozen = options.freeze()
        else:
            frozen = OptionSet.from_mapping(options or {}).freeze()
        return cls(action=action, options=frozen, targets=tuple(targets))

    @property
    def admin(self) -> str | None:
        return self._admin

    def bind_admin(self, admin: str) -> None:
        if self._admin is not None:
            raise RuntimeError("Admin identity already bound for this request")
        self._admin = admin

    def convert_option(self, name: str, value: Any) -> None:
        """Replace an existing option with its converted form."""
        if name not in self.options:
            raise KeyError(name)
        updated = dict(self.options)
        updated[name] = value
        self.options = MappingProxyType(updated)

    def option(self, name: str, default: Any = None) -> Any:
        return self.options.get(name, default)

    def flag(self, name: str) -> bool:
        return bool(self.options.get(name, False))


__all__ = ["OptionSet", "OptionValue", "RequestContext"]
