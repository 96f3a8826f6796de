"""
tests/conftest.py -- Shared fixtures for the auth and key-value store tests.

This module provides:
  - store / auth: a fresh MemoryStore and an AuthService wired onto it
  - SlowStore: yields to the event loop on every call so concurrent
    coroutines actually interleave (MemoryStore never suspends)
  - FlakyStore: raises StorageError on chosen operations/keys
  - RecordingStore: records every call so tests can assert on batching

Async code is driven with asyncio.run() from plain pytest tests.

BCRYPT_ROUNDS must be set before any auth import: auth.passwords computes its
dummy hash at module load using the configured cost factor.
"""

from __future__ import annotations

import os
from collections.abc import Iterable

# CRITICAL: set before importing auth/ so the dummy hash and every test hash
# use the cheapest legal cost factor.
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DEBUG", "true")

import asyncio

import pytest

from auth.service import AuthService, build_auth_service
from kvstore.base import StorageError
from kvstore.memory import MemoryStore

# ---------------------------------------------------------------------------
# Store doubles
# ---------------------------------------------------------------------------


class SlowStore(MemoryStore):
    """MemoryStore that suspends before every operation."""

    async def get(self, key: str) -> str | None:
        await asyncio.sleep(0)
        return await super().get(key)

    async def set(self, key: str, value: str) -> None:
        await asyncio.sleep(0)
        await super().set(key, value)


class FlakyStore(MemoryStore):
    """MemoryStore that raises StorageError on selected operations.

    fail_on holds (operation, key) pairs; key None matches every key.
    E.g. {("set", "userRole")} fails only the role write.
    """

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        super().__init__(initial)
        self.fail_on: set[tuple[str, str | None]] = set()

    def _check(self, op: str, key: str) -> None:
        if (op, key) in self.fail_on or (op, None) in self.fail_on:
            raise StorageError(f"simulated {op} failure for {key!r}")

    async def get(self, key: str) -> str | None:
        self._check("get", key)
        return await super().get(key)

    async def set(self, key: str, value: str) -> None:
        self._check("set", key)
        await super().set(key, value)

    async def multi_remove(self, keys: Iterable[str]) -> None:
        keys = list(keys)
        for key in keys:
            self._check("multi_remove", key)
        await super().multi_remove(keys)


class RecordingStore(MemoryStore):
    """MemoryStore that logs (operation, argument) for every write."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        super().__init__(initial)
        self.calls: list[tuple[str, object]] = []

    async def set(self, key: str, value: str) -> None:
        self.calls.append(("set", key))
        await super().set(key, value)

    async def multi_remove(self, keys: Iterable[str]) -> None:
        keys = list(keys)
        self.calls.append(("multi_remove", tuple(keys)))
        await super().multi_remove(keys)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def auth(store: MemoryStore) -> AuthService:
    return build_auth_service(store)
