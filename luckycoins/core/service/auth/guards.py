"""
Route guards. Each returns None when the view may render, or a
NavigationIntent telling the hosting router to wait or redirect.
"""

from typing import Optional

from luckycoins.core.service.auth.auth_session import AuthSession
from luckycoins.core.service.auth.models.profile import UserRole
from luckycoins.core.service.auth.models.state import NavigationIntent, NavigationTarget


def require_authenticated(session: AuthSession) -> Optional[NavigationIntent]:
    if session.is_loading:
        return NavigationIntent.loading()
    if not session.is_authenticated:
        return NavigationIntent.redirect(NavigationTarget.LOGIN, "Login required")
    return None


def require_admin_role(session: AuthSession) -> Optional[NavigationIntent]:
    """Gate on the backend-assigned role of the signed-in user"""
    intent = require_authenticated(session)
    if intent is not None:
        return intent
    profile = session.user_profile
    if profile is None or profile.role != UserRole.ADMIN.value:
        return NavigationIntent.redirect(NavigationTarget.DASHBOARD, "Admin role required")
    return None


async def require_admin_session(session: AuthSession) -> Optional[NavigationIntent]:
    """Gate on the local admin session, re-checked on every navigation"""
    if not await session.check_admin():
        return NavigationIntent.redirect(NavigationTarget.ADMIN_LOGIN, "Admin session required")
    return None


def admin_login_redirect(session: AuthSession) -> Optional[NavigationIntent]:
    """An admin already signed in skips the admin login view"""
    if session.is_admin:
        return NavigationIntent.redirect(NavigationTarget.ADMIN_DASHBOARD, "Admin session active")
    return None
