"""Tests for StoreOptions and ExecutableOptions."""

import pytest

from statehold import ExecutableOptions, MemoryKV, StoreOptions


class TestStoreOptions:
    def test_defaults(self):
        options = StoreOptions("users")
        assert not options.is_cachable
        assert options.cache_timeout_seconds == -1
        assert not options.persist_cache
        assert options.cache_prefix == ""
        assert options.storage is None

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("STATEHOLD_CACHABLE", "yes")
        monkeypatch.setenv("STATEHOLD_CACHE_TIMEOUT", "90")
        monkeypatch.setenv("STATEHOLD_PERSIST_CACHE", "1")
        monkeypatch.setenv("STATEHOLD_CACHE_PREFIX", "app-")
        options = StoreOptions.from_env("users")
        assert options.is_cachable
        assert options.cache_timeout_seconds == 90
        assert options.persist_cache
        assert options.cache_prefix == "app-"

    def test_from_env_overrides_win(self, monkeypatch):
        monkeypatch.setenv("STATEHOLD_CACHABLE", "true")
        kv = MemoryKV()
        options = StoreOptions.from_env("users", is_cachable=False, storage=kv)
        assert not options.is_cachable
        assert options.storage is kv

    def test_from_env_ignores_garbage(self, monkeypatch):
        monkeypatch.setenv("STATEHOLD_CACHABLE", "maybe")
        monkeypatch.setenv("STATEHOLD_CACHE_TIMEOUT", "soon")
        options = StoreOptions.from_env("users")
        assert not options.is_cachable
        assert options.cache_timeout_seconds == -1


class TestExecutableOptions:
    def test_coerce_mapping(self):
        step = ExecutableOptions.coerce({"action": "load", "params": [1, 2], "forward_result": True})
        assert step == ExecutableOptions("load", (1, 2), True)

    def test_coerce_passes_instances_through(self):
        step = ExecutableOptions("load")
        assert ExecutableOptions.coerce(step) is step

    def test_coerce_requires_action(self):
        with pytest.raises(KeyError):
            ExecutableOptions.coerce({"params": []})
