"""Domain models for the agency dashboard."""

from .notification import ADMIN_ACCESS_GRANTED, ADMIN_ACCESS_REVOKED, Notification
from .user import SELF_SERVICE_ROLES, Role, User

__all__ = [
    "ADMIN_ACCESS_GRANTED",
    "ADMIN_ACCESS_REVOKED",
    "Notification",
    "Role",
    "SELF_SERVICE_ROLES",
    "User",
]
