from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

LOGIN_ROUTE = "/login"
HOME_ROUTE = "/home"


@dataclass(frozen=True)
class GuardDecision:
    allowed: bool
    redirect_to: Optional[str] = None
    reason: str = ""


def require_authenticated(authority: Any) -> GuardDecision:
    if authority.is_authenticated():
        return GuardDecision(allowed=True)
    return GuardDecision(allowed=False, redirect_to=LOGIN_ROUTE, reason="not_authenticated")


def require_game_access(authority: Any, game_id: str) -> GuardDecision:
    if not authority.is_authenticated():
        return GuardDecision(allowed=False, redirect_to=LOGIN_ROUTE, reason="not_authenticated")
    if not authority.has_game_access(game_id):
        return GuardDecision(allowed=False, redirect_to=HOME_ROUTE, reason="game_not_licensed")
    return GuardDecision(allowed=True)


async def require_admin(directory: Any, coordinator: Any) -> GuardDecision:
    """
    Admin routes. A missing in-memory session is first re-derived from the
    store, so a cold start with a live admin license is let through.
    """
    if directory.is_admin_logged_in():
        return GuardDecision(allowed=True)
    if await coordinator.ensure_session_restored() and directory.is_admin_logged_in():
        return GuardDecision(allowed=True, reason="restored")
    return GuardDecision(allowed=False, redirect_to=LOGIN_ROUTE, reason="admin_required")
