"""
auth/guards.py -- Screen guards: decide whether a screen may render.

The UI calls these before showing a protected screen and follows
redirect_to when access is refused. A user with the wrong role is sent to
their own home screen (redirected, not blocked in place); a visitor with no
session is sent to the login screen.

The AuthService is passed in explicitly -- guards never reach for a global
session.

require_login() is the soft variant (any role). require_role() adds the role
check on top of it.
"""

from __future__ import annotations

from dataclasses import dataclass

from auth.service import LOGIN_ROUTE, AuthService, home_route


@dataclass(frozen=True)
class GuardDecision:
    allowed: bool
    redirect_to: str | None = None


_ALLOW = GuardDecision(allowed=True)


async def require_login(auth: AuthService) -> GuardDecision:
    """Allow any logged-in user; send everyone else to the login screen."""
    if not await auth.is_logged_in():
        return GuardDecision(allowed=False, redirect_to=LOGIN_ROUTE)
    return _ALLOW


async def require_role(auth: AuthService, role: str) -> GuardDecision:
    """Allow only a logged-in user whose session role equals role.

    Use on designer-only screens:
        decision = await require_role(auth, "designer")
        if not decision.allowed:
            navigate(decision.redirect_to)
    """
    current = await auth.current_role()
    if current is None:
        return GuardDecision(allowed=False, redirect_to=LOGIN_ROUTE)
    if current != role:
        return GuardDecision(allowed=False, redirect_to=home_route(current))
    return _ALLOW
