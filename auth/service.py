"""
auth/service.py -- AuthService, the only auth entry point the UI layer calls.

Pattern: Facade. Composes CredentialRegistry and SessionManager into the
operations screens need: register, login, logout, and the session queries
used by screen guards.

Both collaborators are injected. build_auth_service() wires them to one
shared store for the common case.
"""

from __future__ import annotations

import logging

from auth.models import MESSAGES, AuthError, AuthResult, SessionUser
from auth.registry import CredentialRegistry, to_session_user
from auth.session import SessionManager
from kvstore.base import KeyValueStore

logger = logging.getLogger("designhub.auth")

LOGIN_ROUTE = "/login"

# Landing screen per role after a successful login.
_HOME_ROUTES: dict[str, str] = {
    "designer": "/designerDashboard",
    "client": "/home",
}

_RESET_MESSAGE = "If an account exists for that email, password reset instructions will follow."


def home_route(role: str | None) -> str:
    """Return the landing route for role; unknown or missing roles go to login."""
    return _HOME_ROUTES.get(role or "", LOGIN_ROUTE)


class AuthService:
    def __init__(self, registry: CredentialRegistry, session: SessionManager) -> None:
        self.registry = registry
        self.session = session

    async def register(
        self,
        email: str,
        password: str,
        role: str,
        *,
        full_name: str | None = None,
        phone: str | None = None,
    ) -> AuthResult:
        return await self.registry.register(email, password, role, full_name=full_name, phone=phone)

    async def find_by_email(self, email: str) -> SessionUser | None:
        user = await self.registry.find_by_email(email)
        return to_session_user(user) if user is not None else None

    async def login(self, email: str, password: str, role: str) -> AuthResult:
        """Validate credentials and, on success, make the user the current session.

        Returns the same failure signal as validate(). A session that cannot
        be persisted turns a valid login into STORAGE_FAILURE.
        """
        result = await self.registry.validate(email, password, role)
        if not result.success:
            logger.info("Login rejected (%s)", result.error.value if result.error else "unknown")
            return result

        user = await self.registry.record_login(result.user.id, password) or result.user
        if not await self.session.establish(user):
            return AuthResult(
                success=False,
                message=MESSAGES[AuthError.STORAGE_FAILURE],
                error=AuthError.STORAGE_FAILURE,
            )
        return AuthResult(success=True, message=result.message, user=user)

    async def logout(self) -> bool:
        return await self.session.terminate()

    async def current_user(self) -> SessionUser | None:
        return await self.session.current()

    async def current_role(self) -> str | None:
        return await self.session.role()

    async def is_logged_in(self) -> bool:
        return await self.session.is_active()

    async def request_password_reset(self, email: str) -> AuthResult:
        """Account recovery stub.

        Answers identically whether or not the email is registered, so it
        cannot be used to enumerate accounts. Nothing is sent.
        """
        logger.info("Password reset requested")
        return AuthResult(success=True, message=_RESET_MESSAGE)


def build_auth_service(store: KeyValueStore) -> AuthService:
    """Wire a registry and a session manager onto the same store."""
    return AuthService(CredentialRegistry(store), SessionManager(store))
