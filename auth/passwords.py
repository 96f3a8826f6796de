"""
auth/passwords.py -- Password hashing and verification.

Security design decisions:
  Passwords: bcrypt used directly (no passlib wrapper). Every hash carries its
       own random salt and the configurable cost factor (BCRYPT_ROUNDS), so two
       users with the same password never share a stored value. The password
       is SHA-256 digested and base64-encoded before it reaches bcrypt, which
       rejects inputs over 72 bytes.

  Legacy records: accounts created by pre-bcrypt app releases store an
       unsalted SHA-256 hex digest. verify_password() still accepts them,
       compared with hmac.compare_digest so the check is constant-time, and
       needs_rehash() tells the registry to replace them with bcrypt after the
       next successful login.

  Timing equalization: DUMMY_HASH lets the registry run a full bcrypt check
       even when the email does not exist, so response time does not reveal
       which emails are registered.

These functions are synchronous and CPU-bound. Async callers run them via
asyncio.to_thread.

Layer rule: no imports from kvstore/. Import from core/ is allowed.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import re

import bcrypt

from core.config import get_settings

logger = logging.getLogger("designhub.auth")

_LEGACY_RE = re.compile(r"^[0-9a-f]{64}$")


def _prehash(plain: str) -> bytes:
    """base64(SHA-256(password)): 44 bytes, always under bcrypt's 72-byte input limit.

    Every bcrypt hash and check goes through this, so passwords of any length
    are accepted and no bytes past the 72nd are ignored.
    """
    return base64.b64encode(hashlib.sha256(plain.encode("utf-8")).digest())


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the pre-digested plaintext password."""
    rounds = get_settings().bcrypt_rounds
    return bcrypt.hashpw(_prehash(plain), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def legacy_digest(plain: str) -> str:
    """SHA-256 hex digest of the UTF-8 password, as pre-bcrypt releases stored it."""
    return hashlib.sha256(plain.encode("utf-8")).hexdigest()


def is_legacy_hash(stored: str) -> bool:
    return bool(_LEGACY_RE.match(stored or ""))


def verify_password(plain: str, stored: str) -> bool:
    """Return True if the plaintext password matches the stored hash."""
    if is_legacy_hash(stored):
        return hmac.compare_digest(legacy_digest(plain), stored)
    try:
        return bcrypt.checkpw(_prehash(plain), stored.encode("utf-8"))
    except (ValueError, TypeError, AttributeError):
        logger.warning("Stored password hash is malformed; treating as mismatch")
        return False


def needs_rehash(stored: str) -> bool:
    """True when the stored hash predates bcrypt and should be replaced."""
    return is_legacy_hash(stored)


# Computed once at module load so the first failed lookup is not measurably
# faster than later ones.
DUMMY_HASH: str = hash_password("designhub_timing_dummy")
