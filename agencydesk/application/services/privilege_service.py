from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from ...domain.errors import ResourceNotFound, ValidationError
from ...domain.models import Role, User
from ...domain.ports.persistence import UserRepository
from ...domain.privileges import temporary_grant_lapsed
from ...services.dispatcher import BackgroundDispatcher
from ...services.email_service import EmailService
from ...services.notification_service import NotificationService

logger = logging.getLogger(__name__)


class PrivilegeService:
    """Grants, revokes and expires admin access for team members.

    Elevation never changes ``User.role``; it lives in the
    ``permanent_admin`` / ``is_temporary_admin`` / ``temporary_admin_until``
    flags read by :func:`has_admin_access`.
    """

    def __init__(
        self,
        users: UserRepository,
        notifications: NotificationService,
        email_service: EmailService,
        dispatcher: BackgroundDispatcher,
    ) -> None:
        self._users = users
        self._notifications = notifications
        self._email = email_service
        self._dispatcher = dispatcher

    # ------------------------------------------------------------------
    def grant_admin_access(
        self,
        user_id: int,
        *,
        is_permanent: bool,
        expiry_date: Optional[datetime] = None,
        granted_by: Optional[int] = None,
    ) -> User:
        member = self._get_team_member(user_id)
        if is_permanent:
            updated = self._users.set_admin_grant(
                member.id,
                permanent_admin=True,
                is_temporary_admin=False,
                temporary_admin_until=None,
            )
            expiry = None
        else:
            if expiry_date is None:
                raise ValidationError("expiryDate is required for temporary admin.")
            expiry = _as_utc(expiry_date)
            if expiry <= self._now():
                raise ValidationError("expiryDate must be in the future.")
            updated = self._users.set_admin_grant(
                member.id,
                permanent_admin=False,
                is_temporary_admin=True,
                temporary_admin_until=expiry,
            )

        logger.info(
            "Granted %s admin access to user %s (by %s).",
            "permanent" if is_permanent else f"temporary until {expiry.isoformat()}",
            member.id,
            granted_by,
        )
        self._notifications.admin_access_granted(member.id, is_permanent, granted_by)
        self._dispatcher.submit(
            f"admin-access email for user {member.id}",
            self._email.send_admin_access_email,
            updated,
            is_permanent,
            expiry,
        )
        return updated

    def revoke_admin_access(self, user_id: int, *, revoked_by: Optional[int] = None) -> User:
        member = self._get_team_member(user_id)
        updated = self._users.set_admin_grant(
            member.id,
            permanent_admin=False,
            is_temporary_admin=False,
            temporary_admin_until=None,
        )
        logger.info("Revoked admin access for user %s (by %s).", member.id, revoked_by)
        self._notifications.admin_access_revoked(member.id, revoked_by)
        self._dispatcher.submit(
            f"admin-revoked email for user {member.id}",
            self._email.send_admin_access_revoked_email,
            updated,
        )
        return updated

    # ------------------------------------------------------------------
    def revoke_if_lapsed(self, user: User) -> User:
        """Clear a temporary grant whose window has passed; request-time path."""
        now = self._now()
        if not temporary_grant_lapsed(user, now):
            return user
        if self._users.revoke_lapsed_temporary_admin(user.id, now):
            logger.info("Temporary admin access for user %s lapsed; revoked on access.", user.id)
            self._notifications.admin_access_expired(user.id)
        refreshed = self._users.get_user_by_id(user.id)
        return refreshed or user

    def sweep_expired(self) -> int:
        """Revoke every lapsed temporary grant; returns the number revoked."""
        now = self._now()
        revoked = 0
        for member in self._users.get_lapsed_temporary_admins(now):
            if not self._users.revoke_lapsed_temporary_admin(member.id, now):
                continue
            revoked += 1
            self._notifications.admin_access_expired(member.id)
            logger.info("Auto-revoked temporary admin access for %s.", member.email)
        return revoked

    # ------------------------------------------------------------------
    def _get_team_member(self, user_id: int) -> User:
        user = self._users.get_user_by_id(user_id)
        if not user or user.role != Role.TEAM:
            raise ResourceNotFound("Team member not found.")
        return user

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
