"""Action registry: every operation depotctl can perform and what it requires."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator

from depotctl.domain.errors import UnknownActionError


@dataclass(frozen=True)
class ActionSpec:
    """Capabilities an action needs before it may be dispatched."""

    name: str
    alias: str | None = None
    arg_kind: str | None = None
    needs_admin: bool = False
    needs_connection: bool = False
    needs_root: bool = True

    @property
    def needs_argument(self) -> bool:
        return self.arg_kind is not None


class Action(Enum):
    HELP = ActionSpec("help", alias="h", needs_root=False)
    INSTALL = ActionSpec(
        "install",
        alias="i",
        arg_kind="package basename or edition",
        needs_admin=True,
        needs_connection=True,
    )
    UNINSTALL = ActionSpec(
        "uninstall",
        alias="u",
        arg_kind="package basename",
        needs_admin=True,
        needs_connection=True,
    )
    SYNC = ActionSpec("sync", alias="s", needs_connection=True)
    DEQUEUE = ActionSpec("dequeue", alias="dq", arg_kind="pending-reboot package basename")
    FREEZE = ActionSpec("freeze", alias="f", arg_kind="receipt basename")
    THAW = ActionSpec("thaw", alias="t", arg_kind="receipt basename")
    FORGET = ActionSpec("forget", alias="fg", arg_kind="receipt basename")
    LIST_AVAILABLE = ActionSpec("list_available", alias="la", needs_connection=True, needs_root=False)
    LIST_INSTALLED = ActionSpec("list_installed", alias="li", needs_root=False)
    LIST_MANUAL = ActionSpec("list_manual", alias="lm", needs_root=False)
    LIST_PILOTS = ActionSpec("list_pilots", alias="lp", needs_root=False)
    LIST_FROZEN = ActionSpec("list_frozen", alias="lf", needs_root=False)
    LIST_QUEUE = ActionSpec("list_queue", alias="lq", needs_root=False)
    LIST_DETAILS = ActionSpec("list_details", alias="ld", arg_kind="receipt basename", needs_root=False)
    LIST_FILES = ActionSpec("list_files", alias="ls", arg_kind="receipt basename", needs_root=False)
    QUERY_FILE = ActionSpec("query_file", alias="qf", arg_kind="file path", needs_root=False)

    @property
    def spec(self) -> ActionSpec:
        return self.value

    def __str__(self) -> str:
        return self.value.name


def normalize_token(raw: str) -> str:
    return raw.strip().replace("-", "_").lower()


class ActionRegistry:
    """Lookup table over a sequence of actions, in declaration order.

    Resolution tries canonical names before aliases and the first entry that
    matches wins. The shipped table is validated for uniqueness, so the order
    only matters for tables built by hand.
    """

    def __init__(self, actions: Iterable[Action] = tuple(Action), *, strict: bool = True) -> None:
        self._actions = tuple(actions)
        if strict:
            _validate_table(self._actions)
        self.needs_argument = frozenset(a.spec.name for a in self._actions if a.spec.needs_argument)
        self.needs_admin = frozenset(a.spec.name for a in self._actions if a.spec.needs_admin)
        self.needs_connection = frozenset(a.spec.name for a in self._actions if a.spec.needs_connection)
        self.allowed_without_root = frozenset(a.spec.name for a in self._actions if not a.spec.needs_root)

    def __iter__(self) -> Iterator[Action]:
        return iter(self._actions)

    def __len__(self) -> int:
        return len(self._actions)

    def lookup(self, raw: str) -> Action:
        token = normalize_token(raw)
        for action in self._actions:
            if action.spec.name == token:
                return action
        for action in self._actions:
            if action.spec.alias is not None and action.spec.alias == token:
                return action
        raise UnknownActionError(raw)


def _validate_table(actions: tuple[Action, ...]) -> None:
    names: set[str] = set()
    aliases: set[str] = set()
    for action in actions:
        spec = action.spec
        if spec.name in names:
            raise ValueError(f"Duplicate action name: {spec.name}")
        names.add(spec.name)
        if spec.alias is None:
            continue
        if spec.alias in aliases:
            raise ValueError(f"Duplicate action alias: {spec.alias}")
        aliases.add(spec.alias)
    shadowed = sorted(names & aliases)
    if shadowed:
        raise ValueError(f"Aliases shadow action names: {', '.join(shadowed)}")


REGISTRY = ActionRegistry()


__all__ = ["Action", "ActionRegistry", "ActionSpec", "REGISTRY", "normalize_token"]
