"""In-app notifications for privilege changes."""

import logging
from typing import List, Optional

from ..domain.errors import PersistenceError, ResourceNotFound
from ..domain.models import ADMIN_ACCESS_GRANTED, ADMIN_ACCESS_REVOKED, Notification
from ..domain.ports.persistence import NotificationRepository

logger = logging.getLogger(__name__)


class NotificationService:
    """Records dashboard notifications without failing the triggering change."""

    def __init__(self, repository: NotificationRepository) -> None:
        self._repository = repository

    def admin_access_granted(self, user_id: int, is_permanent: bool, sender_id: Optional[int]) -> Optional[Notification]:
        kind = "permanent" if is_permanent else "temporary"
        return self._notify(
            user_id,
            ADMIN_ACCESS_GRANTED,
            "Admin Access Granted",
            f"You've been granted {kind} admin access.",
            sender_id,
        )

    def admin_access_revoked(self, user_id: int, sender_id: Optional[int]) -> Optional[Notification]:
        return self._notify(
            user_id,
            ADMIN_ACCESS_REVOKED,
            "Admin Access Revoked",
            "Your admin access has been revoked. Your dashboard has returned to team view.",
            sender_id,
        )

    def admin_access_expired(self, user_id: int) -> Optional[Notification]:
        return self._notify(
            user_id,
            ADMIN_ACCESS_REVOKED,
            "Temporary Admin Access Expired",
            "Your temporary admin access has expired. Your dashboard has returned to team view.",
        )

    def for_user(self, user_id: int, limit: int = 50) -> List[Notification]:
        return self._repository.get_notifications_for_user(user_id, limit)

    def unread_count(self, user_id: int) -> int:
        return self._repository.count_unread_notifications(user_id)

    def mark_read(self, user_id: int, notification_id: int) -> None:
        if not self._repository.mark_notification_read(user_id, notification_id):
            raise ResourceNotFound("Notification not found.")

    def mark_all_read(self, user_id: int) -> int:
        return self._repository.mark_all_notifications_read(user_id)

    def _notify(
        self,
        user_id: int,
        type: str,
        title: str,
        message: str,
        sender_id: Optional[int] = None,
    ) -> Optional[Notification]:
        try:
            return self._repository.create_notification(user_id, type, title, message, sender_id)
        except PersistenceError:
            logger.exception("Unable to record %s notification for user %s.", type, user_id)
            return None
