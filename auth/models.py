"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Dataclasses own domain
shape; the registry, session manager and service do the work.

Layer rule: no imports from kvstore/ or main.py.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal

Role = Literal["client", "designer"]

# Allow-list used wherever a role is read back from storage or user input.
ROLES: tuple[str, ...] = ("client", "designer")


@dataclass
class User:
    """One registered account, as held by the credential registry.

    email is always stored lower-cased; the registry enforces uniqueness on it.
    password_hash is either a bcrypt hash or, for records written by the
    pre-bcrypt app releases, a 64-char SHA-256 hex digest that gets upgraded on
    the next successful login.
    """

    id: str
    email: str
    password_hash: str
    role: str  # "client" or "designer", fixed at registration
    created_at: str
    full_name: str | None = None
    phone: str | None = None
    last_login: str | None = None


@dataclass
class SessionUser:
    """A User with the password hash stripped.

    This is the only user shape that leaves the registry and the only shape
    the session manager persists.
    """

    id: str
    email: str
    role: str
    created_at: str
    full_name: str | None = None
    phone: str | None = None
    last_login: str | None = None


class AuthError(str, Enum):
    DUPLICATE_EMAIL = "duplicate_email"
    # Wrong password and wrong role share this kind so callers cannot tell them apart.
    INVALID_CREDENTIALS = "invalid_credentials"
    # Reserved for account lookups shown to the user; register and login never produce it.
    NOT_FOUND = "not_found"
    STORAGE_FAILURE = "storage_failure"


MESSAGES: dict[AuthError, str] = {
    AuthError.DUPLICATE_EMAIL: "Email already registered.",
    AuthError.INVALID_CREDENTIALS: "Incorrect email, password, or role.",
    AuthError.NOT_FOUND: "No account found for that email.",
    AuthError.STORAGE_FAILURE: "An error occurred. Please try again.",
}


@dataclass
class AuthResult:
    """Outcome of register / validate / login.

    Expected failures are reported here rather than raised. error is None
    exactly when success is True.
    """

    success: bool
    message: str
    user: SessionUser | None = None
    error: AuthError | None = None
