"""
tests/test_kvstore.py -- Unit tests for the key-value store adapters.

Both adapters run against the same behavioural checks:
  - get() on a missing key returns None
  - set() replaces an existing value
  - multi_remove() deletes every listed key and ignores missing ones
  - non-string values are rejected

SQLiteStore is exercised against a file DB in tmp_path (persistence across
instances) and against sqlite:///:memory: (shared connection across threads).
"""

from __future__ import annotations

import asyncio

import pytest

from kvstore.base import StorageError
from kvstore.memory import MemoryStore
from kvstore.sqlite import SQLiteStore


@pytest.fixture(params=["memory", "sqlite-file", "sqlite-memory"])
def kv(request, tmp_path):
    if request.param == "memory":
        yield MemoryStore()
        return
    url = f"sqlite:///{tmp_path / 'kv.db'}" if request.param == "sqlite-file" else "sqlite:///:memory:"
    s = SQLiteStore(url)
    yield s
    s.close()


class TestStoreContract:
    def test_missing_key_returns_none(self, kv):
        assert asyncio.run(kv.get("nope")) is None

    def test_set_then_get(self, kv):
        asyncio.run(kv.set("userRole", "designer"))
        assert asyncio.run(kv.get("userRole")) == "designer"

    def test_set_replaces_existing_value(self, kv):
        asyncio.run(kv.set("userRole", "client"))
        asyncio.run(kv.set("userRole", "designer"))
        assert asyncio.run(kv.get("userRole")) == "designer"

    def test_multi_remove_deletes_all_listed_keys(self, kv):
        async def scenario():
            await kv.set("a", "1")
            await kv.set("b", "2")
            await kv.set("c", "3")
            await kv.multi_remove(["a", "b", "missing"])
            return await kv.get("a"), await kv.get("b"), await kv.get("c")

        assert asyncio.run(scenario()) == (None, None, "3")

    def test_remove_single_key(self, kv):
        asyncio.run(kv.set("isLoggedIn", "true"))
        asyncio.run(kv.remove("isLoggedIn"))
        assert asyncio.run(kv.get("isLoggedIn")) is None

    def test_multi_remove_empty_list_is_noop(self, kv):
        asyncio.run(kv.set("a", "1"))
        asyncio.run(kv.multi_remove([]))
        assert asyncio.run(kv.get("a")) == "1"

    def test_non_string_value_rejected(self, kv):
        with pytest.raises(TypeError):
            asyncio.run(kv.set("isLoggedIn", True))


class TestSQLiteStore:
    def test_values_survive_reopen(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'kv.db'}"
        first = SQLiteStore(url)
        asyncio.run(first.set("users", '[{"id": "1"}]'))
        first.close()

        second = SQLiteStore(url)
        try:
            assert asyncio.run(second.get("users")) == '[{"id": "1"}]'
        finally:
            second.close()

    def test_rejects_non_sqlite_url(self):
        with pytest.raises(ValueError, match="sqlite"):
            SQLiteStore("postgresql://localhost/db")

    def test_unopenable_path_raises_storage_error(self, tmp_path):
        missing_dir = tmp_path / "does" / "not" / "exist"
        with pytest.raises(StorageError):
            SQLiteStore(f"sqlite:///{missing_dir / 'kv.db'}")

    def test_driver_errors_are_wrapped(self, tmp_path):
        s = SQLiteStore(f"sqlite:///{tmp_path / 'kv.db'}")
        try:
            with s.engine.begin() as conn:
                conn.exec_driver_sql("DROP TABLE kv_entries")
            with pytest.raises(StorageError):
                asyncio.run(s.get("users"))
        finally:
            s.close()


def test_memory_stores_do_not_share_state():
    a, b = MemoryStore(), MemoryStore()
    asyncio.run(a.set("k", "v"))
    assert asyncio.run(b.get("k")) is None
    assert a.snapshot() == {"k": "v"}
