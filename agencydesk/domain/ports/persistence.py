from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Protocol, Sequence

from ..models import Notification, Role, User


class UserRepository(Protocol):
    """Persistence functions related to user accounts and their auth state."""

    def get_user_by_email(self, email: str) -> Optional[User]:
        ...

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        ...

    def get_user_by_reset_token(self, token_digest: str, now: datetime) -> Optional[User]:
        ...

    def create_user(
        self,
        *,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        role: Role,
        phone: Optional[str] = None,
        company: Optional[str] = None,
        industry: Optional[str] = None,
        job_title: Optional[str] = None,
        skills: Optional[Sequence[str]] = None,
    ) -> User:
        ...

    def update_user_password(
        self, user_id: int, password_hash: str, *, clear_reset_token: bool = False
    ) -> User:
        ...

    def update_user_profile(
        self,
        user_id: int,
        *,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        phone: Optional[str] = None,
        timezone: Optional[str] = None,
        company: Optional[str] = None,
        industry: Optional[str] = None,
        job_title: Optional[str] = None,
        skills: Optional[Sequence[str]] = None,
    ) -> User:
        ...

    def set_reset_token(self, user_id: int, token_digest: str, expires_at: datetime) -> None:
        ...

    def set_two_factor_secret(self, user_id: int, secret: str) -> User:
        ...

    def enable_two_factor(self, user_id: int, logged_in_at: datetime) -> User:
        ...

    def record_login(self, user_id: int, logged_in_at: datetime) -> User:
        ...

    def set_admin_grant(
        self,
        user_id: int,
        *,
        permanent_admin: bool,
        is_temporary_admin: bool,
        temporary_admin_until: Optional[datetime],
    ) -> User:
        ...

    def revoke_lapsed_temporary_admin(self, user_id: int, now: datetime) -> bool:
        ...

    def get_lapsed_temporary_admins(self, now: datetime) -> List[User]:
        ...

    def set_user_active(self, user_id: int, is_active: bool) -> User:
        ...


class NotificationRepository(Protocol):
    """Persistence functions for in-app notifications."""

    def create_notification(
        self,
        recipient_id: int,
        type: str,
        title: str,
        message: str,
        sender_id: Optional[int] = None,
    ) -> Notification:
        ...

    def get_notifications_for_user(self, user_id: int, limit: int = 50) -> List[Notification]:
        ...

    def count_unread_notifications(self, user_id: int) -> int:
        ...

    def mark_notification_read(self, user_id: int, notification_id: int) -> bool:
        ...

    def mark_all_notifications_read(self, user_id: int) -> int:
        ...


class PersistenceGateway(UserRepository, NotificationRepository, Protocol):
    """Composite gateway combining every persistence concern used by the app."""

    pass
