"""
kvstore/memory.py -- Dict-backed store for tests and throwaway sessions.

Nothing is persisted across process restarts. Each MemoryStore instance owns
its own dict, so two instances never share state.
"""

from __future__ import annotations

from collections.abc import Iterable

from kvstore.base import KeyValueStore


class MemoryStore(KeyValueStore):
    """In-process KeyValueStore.

    Usage:
        store = MemoryStore()
        await store.set("userRole", "client")
        await store.get("userRole")   # "client"
    """

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError(f"values must be str, got {type(value).__name__}")
        self._data[key] = value

    async def multi_remove(self, keys: Iterable[str]) -> None:
        for key in keys:
            self._data.pop(key, None)

    def snapshot(self) -> dict[str, str]:
        """Return a copy of every stored entry."""
        return dict(self._data)
