"""
kvstore/sqlite.py -- SQLAlchemy Core key-value store on SQLite.

Pattern: Repository over a single two-column table. Blocking engine calls run
in a worker thread (asyncio.to_thread) so the event loop is never blocked by
disk I/O.

Atomicity:
  Each set() is its own transaction. multi_remove() deletes every requested
  key inside ONE transaction, so a logout either clears all session keys or
  none of them.

DB path: designhub_store.db at the project root unless STORAGE_URL says
otherwise (see core/config.py).

Layer rule: no imports from auth/.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Iterable

from sqlalchemy import Column, MetaData, String, Table, Text, create_engine, event, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from kvstore.base import KeyValueStore, StorageError

logger = logging.getLogger("designhub.kvstore")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_entries = Table(
    "kv_entries",
    _metadata,
    Column("key", String(255), primary_key=True),
    Column("value", Text, nullable=False),
)

_KEY = _entries.c["key"]
_VALUE = _entries.c["value"]


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers are not blocked during writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class SQLiteStore(KeyValueStore):
    """KeyValueStore persisted in a SQLite table.

    Usage:
        store = SQLiteStore("sqlite:///designhub_store.db")
        await store.set("userRole", "designer")
        await store.multi_remove(["userRole", "isLoggedIn"])
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        if not db_url.startswith("sqlite"):
            raise ValueError(f"SQLiteStore requires a sqlite:// URL, got {db_url!r}")
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        in_memory = db_url in ("sqlite://", "sqlite:///:memory:")
        if in_memory:
            # One shared connection, otherwise every worker thread sees a blank DB.
            kwargs["poolclass"] = StaticPool
        self.engine: Engine = create_engine(db_url, **kwargs)
        if not in_memory:
            event.listen(self.engine, "connect", _set_wal_mode)
        # SQLite connections are not safe to share across threads concurrently.
        self._lock = threading.Lock()
        try:
            _metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not initialise key-value store at {db_url!r}") from exc

    # ------------------------------------------------------------------
    # Blocking implementations (run in a worker thread)
    # ------------------------------------------------------------------

    def _get(self, key: str) -> str | None:
        with self._lock, self.engine.connect() as conn:
            row = conn.execute(select(_VALUE).where(_KEY == key)).fetchone()
        return row[0] if row is not None else None

    def _set(self, key: str, value: str) -> None:
        stmt = sqlite_insert(_entries).values(key=key, value=value)
        stmt = stmt.on_conflict_do_update(index_elements=[_KEY], set_={"value": stmt.excluded["value"]})
        with self._lock, self.engine.begin() as conn:
            conn.execute(stmt)

    def _multi_remove(self, keys: list[str]) -> None:
        if not keys:
            return
        with self._lock, self.engine.begin() as conn:
            conn.execute(_entries.delete().where(_KEY.in_(keys)))

    # ------------------------------------------------------------------
    # KeyValueStore API
    # ------------------------------------------------------------------

    async def get(self, key: str) -> str | None:
        try:
            return await asyncio.to_thread(self._get, key)
        except SQLAlchemyError as exc:
            logger.warning("Store read failed for key %r: %s", key, exc)
            raise StorageError(f"read failed for key {key!r}") from exc

    async def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError(f"values must be str, got {type(value).__name__}")
        try:
            await asyncio.to_thread(self._set, key, value)
        except SQLAlchemyError as exc:
            logger.warning("Store write failed for key %r: %s", key, exc)
            raise StorageError(f"write failed for key {key!r}") from exc

    async def multi_remove(self, keys: Iterable[str]) -> None:
        key_list = list(keys)
        try:
            await asyncio.to_thread(self._multi_remove, key_list)
        except SQLAlchemyError as exc:
            logger.warning("Store delete failed for keys %r: %s", key_list, exc)
            raise StorageError(f"delete failed for keys {key_list!r}") from exc

    def close(self) -> None:
        self.engine.dispose()
