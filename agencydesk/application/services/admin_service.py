from __future__ import annotations

import logging
from typing import Optional

from ...domain.errors import Forbidden, ResourceNotFound
from ...domain.models import Role, User
from ...domain.ports.persistence import UserRepository
from ...services.password_hasher import PasswordHasher

logger = logging.getLogger(__name__)


class AdminService:
    """Manages administrator bootstrap and account status."""

    def __init__(self, users: UserRepository, password_hasher: PasswordHasher) -> None:
        self._users = users
        self._hasher = password_hasher

    # ------------------------------------------------------------------
    def ensure_default_admin(
        self,
        email: Optional[str],
        password: Optional[str],
        first_name: str = "Admin",
        last_name: str = "User",
    ) -> Optional[User]:
        if not email or not password:
            logger.info("ADMIN_EMAIL/ADMIN_PASSWORD not set; skipping administrator bootstrap.")
            return None
        email_clean = email.strip().lower()
        existing = self._users.get_user_by_email(email_clean)
        if existing:
            return existing
        logger.info("Creating default administrator account for %s", email_clean)
        return self._users.create_user(
            email=email_clean,
            password_hash=self._hasher.hash(password),
            first_name=first_name,
            last_name=last_name,
            role=Role.ADMIN,
        )

    def get_user(self, user_id: int) -> User:
        user = self._users.get_user_by_id(user_id)
        if not user:
            raise ResourceNotFound("User not found.")
        return user

    def toggle_user_active(self, user_id: int) -> User:
        user = self.get_user(user_id)
        if user.role == Role.ADMIN:
            raise Forbidden("Cannot deactivate admin.")
        updated = self._users.set_user_active(user.id, not user.is_active)
        logger.info("User %s %s.", user.id, "activated" if updated.is_active else "deactivated")
        return updated
