"""
auth/session.py -- The single current session, persisted in a key-value store.

Storage layout (kept compatible with earlier app releases):
  currentUser  -- SessionUser as JSON (never contains a password hash)
  userRole     -- literal "client" or "designer"
  isLoggedIn   -- literal "true" (absent otherwise)

Consistency:
  The three entries are separate writes and the store has no transactions.
  establish() clears isLoggedIn first and writes it back LAST, so the flag acts
  as a commit marker: it is only present once the other two entries were
  written. Readers go further and require all three entries to agree (flag is
  "true", currentUser parses, its role equals userRole) before reporting a
  session. Any other combination reads as logged out.

  terminate() removes all three keys with one multi_remove() request.

Error handling:
  Store failures are logged and fail closed: reads return None/False,
  establish() and terminate() return False. Nothing raises to the caller.

Layer rule: imports kvstore.base only.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from auth.models import ROLES, SessionUser
from kvstore.base import KeyValueStore, StorageError

logger = logging.getLogger("designhub.session")

SESSION_KEY = "currentUser"
ROLE_KEY = "userRole"
AUTH_KEY = "isLoggedIn"

_ALL_KEYS = (ROLE_KEY, AUTH_KEY, SESSION_KEY)


@dataclass
class _Snapshot:
    user: SessionUser | None
    role: str | None
    flag: str | None

    @property
    def consistent(self) -> bool:
        return (
            self.flag == "true"
            and self.user is not None
            and self.role in ROLES
            and self.user.role == self.role
        )


class SessionManager:
    """Owns the current session record.

    One instance per running app; it is injected into AuthService and passed
    to screen guards explicitly rather than looked up globally.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    async def establish(self, user: SessionUser) -> bool:
        """Persist user as the current session. Returns False on store failure."""
        if user.role not in ROLES:
            raise ValueError(f"Unknown role {user.role!r}; expected one of {ROLES}")
        try:
            await self.store.remove(AUTH_KEY)
            await self.store.set(SESSION_KEY, _session_to_json(user))
            await self.store.set(ROLE_KEY, user.role)
            await self.store.set(AUTH_KEY, "true")
        except StorageError:
            logger.exception("Could not establish session for user %s", user.id)
            await self._discard_partial()
            return False
        logger.info("Session established for %s user %s", user.role, user.id)
        return True

    async def current(self) -> SessionUser | None:
        """Return the session user, or None when absent or inconsistent."""
        snapshot = await self._snapshot()
        return snapshot.user if snapshot is not None and snapshot.consistent else None

    async def role(self) -> str | None:
        """Return "client" or "designer" for an active session, else None.

        Only allow-listed values are ever returned; foreign or corrupted content
        in the role entry reads as "no role".
        """
        snapshot = await self._snapshot()
        return snapshot.role if snapshot is not None and snapshot.consistent else None

    async def is_active(self) -> bool:
        snapshot = await self._snapshot()
        return snapshot is not None and snapshot.consistent

    async def terminate(self) -> bool:
        """Remove every session entry in one batch. Returns False on store failure."""
        try:
            await self.store.multi_remove(_ALL_KEYS)
        except StorageError:
            logger.exception("Could not clear session")
            return False
        logger.info("Session terminated")
        return True

    async def _snapshot(self) -> _Snapshot | None:
        try:
            raw_user = await self.store.get(SESSION_KEY)
            role = await self.store.get(ROLE_KEY)
            flag = await self.store.get(AUTH_KEY)
        except StorageError:
            logger.warning("Session read failed; treating as logged out", exc_info=True)
            return None
        return _Snapshot(user=_json_to_session(raw_user), role=role, flag=flag)

    async def _discard_partial(self) -> None:
        try:
            await self.store.multi_remove(_ALL_KEYS)
        except StorageError:
            logger.warning("Partial session could not be discarded", exc_info=True)


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def _session_to_json(user: SessionUser) -> str:
    record = {
        "id": user.id,
        "email": user.email,
        "role": user.role,
        "createdAt": user.created_at,
        "fullName": user.full_name,
        "phone": user.phone,
        "lastLogin": user.last_login,
    }
    return json.dumps({k: v for k, v in record.items() if v is not None})


def _json_to_session(raw: str | None) -> SessionUser | None:
    """Parse a currentUser entry. Anything unexpected yields None, never raises."""
    if not raw:
        return None
    try:
        record = json.loads(raw)
    except ValueError:
        logger.warning("Session record is not valid JSON; ignoring it")
        return None
    if not isinstance(record, dict):
        logger.warning("Session record is not a JSON object; ignoring it")
        return None
    required = ("id", "email", "role", "createdAt")
    if not all(isinstance(record.get(k), str) for k in required) or record["role"] not in ROLES:
        logger.warning("Session record is missing fields or has an unknown role; ignoring it")
        return None
    # passwordHash, if a foreign writer left one behind, is dropped here.
    return SessionUser(
        id=record["id"],
        email=record["email"],
        role=record["role"],
        created_at=record["createdAt"],
        full_name=record.get("fullName"),
        phone=record.get("phone"),
        last_login=record.get("lastLogin"),
    )
