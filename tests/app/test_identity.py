from __future__ import annotations

import pytest

from depotctl.app.identity import AdminIdentityResolver, is_attributable


def test_explicit_admin_wins(host_factory) -> None:
    resolver = AdminIdentityResolver(host_factory(console="someone"))
    assert resolver.resolve("jdoe") == "jdoe"


def test_explicit_admin_is_stringified(host_factory) -> None:
    resolver = AdminIdentityResolver(host_factory(console=None))
    assert resolver.resolve(42) == "42"


def test_falls_back_to_console_user(host_factory) -> None:
    resolver = AdminIdentityResolver(host_factory(console="  alice "))
    assert resolver.resolve(None) == "alice"


def test_empty_when_nothing_found(host_factory) -> None:
    resolver = AdminIdentityResolver(host_factory(console=None))
    assert resolver.resolve(None) == ""


def test_result_is_cached(host_factory) -> None:
    host = host_factory(console="alice")
    resolver = AdminIdentityResolver(host)
    assert resolver.resolve() == "alice"
    host.console = "bob"
    assert resolver.resolve() == "alice"


@pytest.mark.parametrize("name", ["", "root", "unknown", "auto-installed"])
def test_placeholders_are_not_attributable(name: str) -> None:
    assert not is_attributable(name)


@pytest.mark.parametrize("name", ["jdoe", "Root", "admin", "unknown2"])
def test_real_names_are_attributable(name: str) -> None:
    assert is_attributable(name)
