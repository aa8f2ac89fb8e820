from __future__ import annotations

from enum import Enum

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from depotctl.domain.actions import REGISTRY, Action, ActionRegistry, ActionSpec, normalize_token
from depotctl.domain.errors import UnknownActionError

_KNOWN_TOKENS = {a.spec.name for a in Action} | {a.spec.alias for a in Action if a.spec.alias}


@pytest.mark.parametrize("action", list(Action), ids=lambda a: a.spec.name)
def test_name_and_alias_resolve_to_same_action(action: Action) -> None:
    assert REGISTRY.lookup(action.spec.name) is action
    if action.spec.alias:
        assert REGISTRY.lookup(action.spec.alias) is action


def test_hyphens_and_case_are_normalised() -> None:
    assert REGISTRY.lookup("list-installed") is Action.LIST_INSTALLED
    assert REGISTRY.lookup("LIST-Available") is Action.LIST_AVAILABLE
    assert normalize_token(" Query-File ") == "query_file"


def test_unknown_token_names_token_and_points_to_help() -> None:
    with pytest.raises(UnknownActionError) as exc:
        REGISTRY.lookup("bogus-action")
    assert "bogus-action" in str(exc.value)
    assert "depotctl help" in str(exc.value)


@settings(max_examples=60)
@given(token=st.text(alphabet="abcdefghijklmnopqrstuvwxyz_-", min_size=1, max_size=12))
def test_unregistered_tokens_never_match(token: str) -> None:
    if normalize_token(token) in _KNOWN_TOKENS:
        assert REGISTRY.lookup(token) is not None
        return
    with pytest.raises(UnknownActionError):
        REGISTRY.lookup(token)


def test_prefixes_do_not_partially_match() -> None:
    for token in ("inst", "list", "list_", "uninstal"):
        with pytest.raises(UnknownActionError):
            REGISTRY.lookup(token)


def test_derived_views() -> None:
    assert REGISTRY.needs_admin == {"install", "uninstall"}
    assert REGISTRY.needs_connection == {"install", "uninstall", "sync", "list_available"}
    assert "list_installed" in REGISTRY.allowed_without_root
    assert "help" in REGISTRY.allowed_without_root
    assert "install" not in REGISTRY.allowed_without_root
    assert "sync" not in REGISTRY.needs_argument
    assert {"install", "freeze", "query_file"} <= REGISTRY.needs_argument


def test_views_are_immutable() -> None:
    with pytest.raises(AttributeError):
        REGISTRY.needs_admin.add("sync")  # type: ignore[attr-defined]


def test_needs_root_defaults_true() -> None:
    assert ActionSpec("anything").needs_root is True


class _Duplicated(Enum):
    FIRST = ActionSpec("alpha", alias="x")
    SECOND = ActionSpec("beta", alias="x")
    THIRD = ActionSpec("x")

    @property
    def spec(self) -> ActionSpec:
        return self.value


def test_first_match_wins_and_names_beat_aliases() -> None:
    registry = ActionRegistry(_Duplicated, strict=False)  # type: ignore[arg-type]
    assert registry.lookup("x") is _Duplicated.THIRD
    registry = ActionRegistry([_Duplicated.FIRST, _Duplicated.SECOND], strict=False)  # type: ignore[list-item]
    assert registry.lookup("x") is _Duplicated.FIRST


def test_strict_registry_rejects_duplicates() -> None:
    with pytest.raises(ValueError):
        ActionRegistry(_Duplicated)  # type: ignore[arg-type]
