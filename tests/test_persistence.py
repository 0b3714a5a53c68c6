"""Tests for the key/value cache backends."""

import json
import logging

from statehold import FileKV, MemoryKV, PersistentKV
from statehold.persistence import cache_key, timeout_key


class TestKeys:
    def test_layout(self):
        assert cache_key("app-", "users") == "app-state-cache-users"
        assert timeout_key("app-", "users") == "app-state-cache-users-timeout"


class TestMemoryKV:
    def test_get_set_remove(self):
        kv = MemoryKV()
        assert kv.get("k") is None
        kv.set("k", "v")
        assert kv.get("k") == "v"
        kv.remove("k")
        kv.remove("k")
        assert "k" not in kv

    def test_satisfies_protocol(self):
        assert isinstance(MemoryKV(), PersistentKV)
        assert isinstance(FileKV("unused.json"), PersistentKV)


class TestFileKV:
    def test_persists_between_instances(self, tmp_path):
        path = tmp_path / "nested" / "cache.json"
        FileKV(path).set("k", "v")
        assert FileKV(path).get("k") == "v"
        assert json.loads(path.read_text(encoding="utf-8")) == {"k": "v"}

    def test_remove(self, tmp_path):
        kv = FileKV(tmp_path / "cache.json")
        kv.set("a", "1")
        kv.set("b", "2")
        kv.remove("a")
        assert kv.get("a") is None
        assert kv.get("b") == "2"

    def test_missing_file_is_empty(self, tmp_path):
        assert FileKV(tmp_path / "absent.json").get("k") is None

    def test_corrupt_document_is_empty(self, tmp_path, caplog):
        path = tmp_path / "cache.json"
        path.write_text("{oops", encoding="utf-8")
        kv = FileKV(path)
        with caplog.at_level(logging.WARNING, logger="statehold.persistence"):
            assert kv.get("k") is None
        assert "Ignoring corrupt cache document" in caplog.text
        kv.set("k", "v")
        assert kv.get("k") == "v"

    def test_no_temp_files_left(self, tmp_path):
        kv = FileKV(tmp_path / "cache.json")
        kv.set("k", "v")
        assert [p.name for p in tmp_path.iterdir()] == ["cache.json"]
