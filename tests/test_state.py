"""Tests for the persisted context store.

These tests verify:
- Updates survive reopening the store
- Old unversioned files are migrated, newer ones refused
- A failed write leaves the previous file intact
"""

from __future__ import annotations

import json
import os

import pytest

from promptmesh.errors import StateError
from promptmesh.state import SCHEMA_VERSION, ContextStore, migrate


@pytest.fixture
def state_path(tmp_path):
    return tmp_path / "state" / "state.json"


class TestContextStore:

    def test_creates_file_on_first_open(self, state_path):
        store = ContextStore(state_path)
        assert store.snapshot() == {}
        document = json.loads(state_path.read_text())
        assert document == {"schema_version": SCHEMA_VERSION, "context": {}}

    def test_update_survives_reopen(self, state_path):
        ContextStore(state_path).update(current_role="writer", project_root="/work/app")
        reopened = ContextStore(state_path)
        assert reopened.get("current_role") == "writer"
        assert reopened.get("project_root") == "/work/app"

    def test_none_removes_key(self, state_path):
        store = ContextStore(state_path)
        store.update(current_role="writer")
        store.update({"current_role": None})
        assert store.get("current_role") is None
        assert "current_role" not in ContextStore(state_path).snapshot()

    def test_mutate_appends(self, state_path):
        store = ContextStore(state_path)
        store.mutate(lambda ctx: ctx.setdefault("memories", []).append({"content": "a"}))
        store.mutate(lambda ctx: ctx.setdefault("memories", []).append({"content": "b"}))
        assert [m["content"] for m in ContextStore(state_path).get("memories")] == ["a", "b"]

    def test_get_returns_copy(self, state_path):
        store = ContextStore(state_path)
        store.update(learned=["role://writer"])
        store.get("learned").append("thought://remember")
        assert store.get("learned") == ["role://writer"]

    def test_reload_picks_up_external_change(self, state_path):
        store = ContextStore(state_path)
        state_path.write_text(json.dumps({"schema_version": 1, "context": {"current_role": "x"}}))
        assert store.reload() == {"current_role": "x"}

    def test_unserialisable_value_is_rejected(self, state_path):
        store = ContextStore(state_path)
        with pytest.raises(StateError):
            store.update(bad=object())
        assert store.get("bad") is None

    def test_corrupt_file_raises(self, state_path):
        state_path.parent.mkdir(parents=True)
        state_path.write_text("{not json")
        with pytest.raises(StateError):
            ContextStore(state_path)


class TestMigration:

    def test_unversioned_file_is_migrated(self, state_path):
        state_path.parent.mkdir(parents=True)
        state_path.write_text(json.dumps({"current_role": "writer", "memories": []}))
        store = ContextStore(state_path)
        assert store.get("current_role") == "writer"
        document = json.loads(state_path.read_text())
        assert document["schema_version"] == SCHEMA_VERSION
        assert document["context"]["current_role"] == "writer"

    def test_newer_version_is_refused(self, state_path):
        state_path.parent.mkdir(parents=True)
        state_path.write_text(json.dumps({"schema_version": SCHEMA_VERSION + 1, "context": {}}))
        with pytest.raises(StateError, match="newer"):
            ContextStore(state_path)

    def test_current_version_is_untouched(self):
        document = {"schema_version": SCHEMA_VERSION, "context": {"a": 1}}
        assert migrate(document) == (document, False)


class TestAtomicWrite:

    def test_failed_replace_keeps_previous_state(self, state_path, monkeypatch):
        store = ContextStore(state_path)
        store.update(current_role="writer")
        before = state_path.read_text()

        def crash(src, dst):
            raise OSError("simulated crash")

        monkeypatch.setattr(os, "replace", crash)
        with pytest.raises(OSError, match="simulated crash"):
            store.update(current_role="reviewer")
        monkeypatch.undo()

        assert state_path.read_text() == before
        assert store.get("current_role") == "writer"
        assert [p.name for p in state_path.parent.iterdir()] == ["state.json"]
        assert ContextStore(state_path).get("current_role") == "writer"
