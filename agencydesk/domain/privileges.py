"""Effective-privilege rules derived from the stored user fields."""

from datetime import datetime, timezone
from typing import Optional

from .models import Role, User


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def has_admin_access(user: User, now: Optional[datetime] = None) -> bool:
    """Return True for admins and for team members holding a live grant."""
    if user.role == Role.ADMIN or user.permanent_admin:
        return True
    if not user.is_temporary_admin or user.temporary_admin_until is None:
        return False
    return user.temporary_admin_until > (now or _utcnow())


def temporary_grant_lapsed(user: User, now: Optional[datetime] = None) -> bool:
    """A temporary grant whose end has passed but whose flags are still set."""
    if not user.is_temporary_admin or user.temporary_admin_until is None:
        return False
    return user.temporary_admin_until < (now or _utcnow())


def dashboard_role(user: User, now: Optional[datetime] = None) -> str:
    if has_admin_access(user, now):
        return Role.ADMIN.value
    return user.role.value
