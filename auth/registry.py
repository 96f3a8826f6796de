"""
auth/registry.py -- Credential registry persisted in a key-value store.

Pattern: Repository + Data Mapper. CredentialRegistry is the repository;
_record_to_user / _user_to_record are the mappers. Service and guard code
never touch the serialized form directly.

Storage layout:
  The whole registry lives under ONE key ("users") as a JSON list. Every write
  is read-modify-write of that list.

Concurrency:
  The store offers no transactions, so every read-modify-write runs under an
  asyncio.Lock owned by the registry. Two concurrent register() calls with the
  same email therefore cannot both pass the uniqueness check. The lock is
  process-local: one CredentialRegistry per store.

Error handling:
  StorageError from the store is caught here and reported as
  AuthError.STORAGE_FAILURE. A malformed "users" entry is treated the same way
  so a corrupt list is never overwritten by a fresh one.

Layer rule: imports kvstore.base and core/ only.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from datetime import datetime, timezone

from auth.models import MESSAGES, ROLES, AuthError, AuthResult, SessionUser, User
from auth.passwords import DUMMY_HASH, hash_password, needs_rehash, verify_password
from core.config import get_settings
from kvstore.base import KeyValueStore, StorageError

logger = logging.getLogger("designhub.auth")

USERS_KEY = "users"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _failure(kind: AuthError) -> AuthResult:
    return AuthResult(success=False, message=MESSAGES[kind], error=kind)


def to_session_user(user: User) -> SessionUser:
    """Drop the password hash. The only way a User leaves the registry."""
    return SessionUser(
        id=user.id,
        email=user.email,
        role=user.role,
        created_at=user.created_at,
        full_name=user.full_name,
        phone=user.phone,
        last_login=user.last_login,
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class CredentialRegistry:
    """Unique-by-email user storage and password verification.

    Usage:
        registry = CredentialRegistry(MemoryStore())
        result = await registry.register("A@Test.com", "secret1", "client")
        result = await registry.validate("a@test.com", "secret1", "client")
    """

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store
        self._lock = asyncio.Lock()

    async def _load_users(self) -> list[User]:
        raw = await self.store.get(USERS_KEY)
        if not raw:
            return []
        try:
            records = json.loads(raw)
            if not isinstance(records, list):
                raise ValueError("users entry is not a JSON list")
            return [_record_to_user(r) for r in records]
        except (ValueError, TypeError, KeyError) as exc:
            raise StorageError(f"{USERS_KEY!r} entry is malformed: {exc}") from exc

    async def _save_users(self, users: list[User]) -> None:
        await self.store.set(USERS_KEY, json.dumps([_user_to_record(u) for u in users]))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def register(
        self,
        email: str,
        password: str,
        role: str,
        *,
        full_name: str | None = None,
        phone: str | None = None,
    ) -> AuthResult:
        """Create a new account.

        Fails with DUPLICATE_EMAIL when any stored email matches
        case-insensitively, whatever the password or role. The password is
        hashed before the duplicate check so both outcomes cost the same.

        Raises ValueError for a role outside ROLES -- that is a caller bug,
        not a user-facing condition.
        """
        if role not in ROLES:
            raise ValueError(f"Unknown role {role!r}; expected one of {ROLES}")
        normalized = email.lower()
        password_hash = await asyncio.to_thread(hash_password, password)

        try:
            async with self._lock:
                users = await self._load_users()
                if any(u.email.lower() == normalized for u in users):
                    logger.info("Registration rejected: email already registered")
                    return _failure(AuthError.DUPLICATE_EMAIL)
                user = User(
                    id=str(uuid.uuid4()),
                    email=normalized,
                    password_hash=password_hash,
                    role=role,
                    created_at=_now_iso(),
                    full_name=full_name,
                    phone=phone,
                )
                users.append(user)
                await self._save_users(users)
        except StorageError:
            logger.exception("Registration failed: user store unavailable")
            return _failure(AuthError.STORAGE_FAILURE)

        logger.info("Registered %s account %s", user.role, user.id)
        return AuthResult(success=True, message="Registration successful.", user=to_session_user(user))

    async def find_by_email(self, email: str) -> User | None:
        """Case-insensitive exact match. Returns None if not found or unreadable."""
        try:
            users = await self._load_users()
        except StorageError:
            logger.warning("User lookup failed: user store unavailable", exc_info=True)
            return None
        normalized = email.lower()
        return next((u for u in users if u.email.lower() == normalized), None)

    async def validate(self, email: str, password: str, role: str) -> AuthResult:
        """Check email + password + role with timing equalization.

        Unknown email, wrong password and wrong role all return the same
        INVALID_CREDENTIALS result. bcrypt runs against DUMMY_HASH when the
        email is unknown so the three cases cost the same.
        """
        try:
            users = await self._load_users()
        except StorageError:
            logger.exception("Credential check failed: user store unavailable")
            return _failure(AuthError.STORAGE_FAILURE)

        normalized = email.lower()
        user = next((u for u in users if u.email.lower() == normalized), None)
        if user is None:
            await asyncio.to_thread(verify_password, password, DUMMY_HASH)
            return _failure(AuthError.INVALID_CREDENTIALS)

        password_ok = await asyncio.to_thread(verify_password, password, user.password_hash)
        if not password_ok or user.role != role:
            return _failure(AuthError.INVALID_CREDENTIALS)
        return AuthResult(success=True, message="Login successful.", user=to_session_user(user))

    async def record_login(self, user_id: str, password: str | None = None) -> SessionUser | None:
        """Stamp last_login for user_id and upgrade a legacy hash if possible.

        Called by the service after a successful validate(). password is the
        plaintext that just verified; when given and the stored hash is a
        legacy digest, it is re-hashed with bcrypt. bcrypt runs before the
        registry lock is taken, and the new hash is only applied if the stored
        hash has not changed in the meantime. A failed re-hash skips the
        upgrade and the login is still recorded.

        Returns the updated SessionUser, or None if the user vanished or the
        write failed. Failure is logged and never blocks the login itself.
        """
        try:
            upgrade = await self._upgraded_hash(user_id, password)
            upgraded = False
            async with self._lock:
                users = await self._load_users()
                user = next((u for u in users if u.id == user_id), None)
                if user is None:
                    logger.warning("record_login: user %s no longer exists", user_id)
                    return None
                if upgrade is not None and user.password_hash == upgrade[0]:
                    user.password_hash = upgrade[1]
                    upgraded = True
                user.last_login = _now_iso()
                await self._save_users(users)
        except StorageError:
            logger.warning("Could not record login for user %s", user_id, exc_info=True)
            return None

        if upgraded:
            logger.info("Upgraded legacy password hash for user %s", user_id)
        return to_session_user(user)

    async def _upgraded_hash(self, user_id: str, password: str | None) -> tuple[str, str] | None:
        """(stored legacy hash, bcrypt replacement) for user_id, or None if no upgrade applies."""
        if password is None or not get_settings().upgrade_legacy_hashes:
            return None
        users = await self._load_users()
        user = next((u for u in users if u.id == user_id), None)
        if user is None or not needs_rehash(user.password_hash):
            return None
        try:
            upgraded = await asyncio.to_thread(hash_password, password)
        except ValueError:
            logger.warning("Could not re-hash legacy password for user %s; keeping it", user_id, exc_info=True)
            return None
        return user.password_hash, upgraded


# ---------------------------------------------------------------------------
# Record mappers (Data Mapper pattern)
#
# camelCase keys match the records written by earlier app releases, so an
# existing "users" entry can be read as-is.
# ---------------------------------------------------------------------------


_REQUIRED_FIELDS = ("id", "email", "passwordHash", "role", "createdAt")


def _record_to_user(record: dict) -> User:
    if not isinstance(record, dict):
        raise ValueError("user record is not a JSON object")
    bad = [k for k in _REQUIRED_FIELDS if not isinstance(record.get(k), str)]
    if bad:
        raise ValueError(f"user record has missing or non-string fields: {', '.join(bad)}")
    return User(
        id=record["id"],
        email=record["email"],
        password_hash=record["passwordHash"],
        role=record["role"],
        created_at=record["createdAt"],
        full_name=record.get("fullName"),
        phone=record.get("phone"),
        last_login=record.get("lastLogin"),
    )


def _user_to_record(user: User) -> dict:
    record = {
        "id": user.id,
        "email": user.email,
        "passwordHash": user.password_hash,
        "role": user.role,
        "createdAt": user.created_at,
        "fullName": user.full_name,
        "phone": user.phone,
        "lastLogin": user.last_login,
    }
    return {k: v for k, v in record.items() if v is not None}
