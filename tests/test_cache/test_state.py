"""Tests for the StateStore."""

from __future__ import annotations

from resli.cache import StateStore


def test_set_get_delete(state: StateStore) -> None:
    state.set("example.expires", 123.0)
    assert state.get("example.expires") == 123.0
    state.delete("example.expires")
    assert state.get("example.expires") is None
    assert state.get("missing", "fallback") == "fallback"


def test_values_survive_reopen(tmp_path) -> None:
    first = StateStore(tmp_path)
    first.set("token:example:default", {"access_token": "abc"})
    first.close()

    second = StateStore(tmp_path)
    try:
        assert second.get("token:example:default") == {"access_token": "abc"}
    finally:
        second.close()


def test_delete_prefix(state: StateStore) -> None:
    state.set("token:example:default", 1)
    state.set("token:example:prod", 2)
    state.set("token:other:default", 3)
    state.set("example.description", {})

    assert state.delete_prefix("token:example:") == 2
    assert state.get("token:other:default") == 3
    assert state.get("example.description") == {}
    assert len(state) == 2


def test_clear(state: StateStore) -> None:
    state.set("a", 1)
    state.set("b", 2)
    state.clear()
    assert len(state) == 0
