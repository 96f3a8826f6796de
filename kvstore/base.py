"""
kvstore/base.py -- Contract every key-value adapter implements.

Pattern: Abstract base class. The credential registry and the session manager
depend on this interface only, so the backing store (in-memory dict, SQLite
file, device storage bridge) can be swapped without touching auth/.

Semantics:
  - Keys and values are plain strings. Callers serialize structured data.
  - get() returns None for a missing key; it never raises for absence.
  - No atomicity across separate calls is promised. multi_remove() is the
    single operation asked to be one request to the backend.
  - Backend failures surface as StorageError. Adapters must not let
    driver-specific exceptions escape.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable


class StorageError(Exception):
    """The backing store could not complete a read or write."""


class KeyValueStore(ABC):
    """Asynchronous mapping from string key to string value."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the value stored under key, or None if absent."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any existing entry."""

    @abstractmethod
    async def multi_remove(self, keys: Iterable[str]) -> None:
        """Delete every key in keys as one request. Missing keys are ignored."""

    async def remove(self, key: str) -> None:
        await self.multi_remove([key])

    def close(self) -> None:  # noqa: B027 -- optional hook, most adapters hold nothing
        pass
