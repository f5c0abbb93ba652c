"""Tests for selection persistence."""

import json

from cleanslim.selection import SELECTION_KEY, JsonSelectionStore, MemorySelectionStore


class TestMemorySelectionStore:
    def test_missing_key(self):
        assert MemorySelectionStore().get("system_cache") is None

    def test_set_and_get(self):
        store = MemorySelectionStore({"a": True})
        store.set("a", False)
        store.set("b", True)
        assert store.get("a") is False
        assert store.snapshot() == {"a": False, "b": True}

    def test_initial_mapping_copied(self):
        initial = {"a": True}
        store = MemorySelectionStore(initial)
        store.set("a", False)
        assert initial == {"a": True}


class TestJsonSelectionStore:
    def test_missing_file(self, tmp_path):
        store = JsonSelectionStore(tmp_path / "config.json")
        assert store.get("system_cache") is None
        assert store.snapshot() == {}

    def test_set_persists(self, tmp_path):
        config_file = tmp_path / "config.json"
        JsonSelectionStore(config_file).set("xcode_cache", False)

        reopened = JsonSelectionStore(config_file)
        assert reopened.get("xcode_cache") is False

    def test_keeps_other_config_keys(self, tmp_path):
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({"settings": {"log_level": "INFO"}}))

        JsonSelectionStore(config_file).set("system_logs", True)

        data = json.loads(config_file.read_text())
        assert data["settings"] == {"log_level": "INFO"}
        assert data[SELECTION_KEY] == {"system_logs": True}

    def test_ignores_non_boolean_values(self, tmp_path):
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({SELECTION_KEY: {"a": "yes", "b": False}}))
        store = JsonSelectionStore(config_file)
        assert store.get("a") is None
        assert store.get("b") is False

    def test_ignores_malformed_selection(self, tmp_path):
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({SELECTION_KEY: ["a"]}))
        assert JsonSelectionStore(config_file).snapshot() == {}
