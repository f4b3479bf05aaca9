"""Pydantic schemas for user payloads returned by the API."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from ....domain.models import Notification, User
from ....domain.privileges import has_admin_access
from .auth import CamelModel


class UserResponse(CamelModel):
    """Safe projection of a user: no password hash, 2FA secret or reset token."""

    id: int
    email: str
    first_name: str
    last_name: str
    full_name: str
    role: str
    phone: Optional[str]
    timezone: str
    company: Optional[str]
    industry: Optional[str]
    job_title: Optional[str]
    skills: List[str]
    two_factor_enabled: bool
    two_factor_verified: bool
    is_temporary_admin: bool
    temporary_admin_until: Optional[datetime]
    permanent_admin: bool
    has_admin_access: bool
    is_active: bool
    onboarding_complete: bool
    last_login_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            full_name=user.full_name,
            role=user.role.value,
            phone=user.phone,
            timezone=user.timezone,
            company=user.company,
            industry=user.industry,
            job_title=user.job_title,
            skills=list(user.skills),
            two_factor_enabled=user.two_factor_enabled,
            two_factor_verified=user.two_factor_verified,
            is_temporary_admin=user.is_temporary_admin,
            temporary_admin_until=user.temporary_admin_until,
            permanent_admin=user.permanent_admin,
            has_admin_access=has_admin_access(user),
            is_active=user.is_active,
            onboarding_complete=user.onboarding_complete,
            last_login_at=user.last_login_at,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class NotificationResponse(CamelModel):
    id: int
    type: str
    title: str
    message: str
    is_read: bool
    sender_id: Optional[int]
    created_at: datetime


def serialize_user(user: User) -> Dict[str, Any]:
    return UserResponse.from_user(user).model_dump(by_alias=True, mode="json")


def serialize_notification(notification: Notification) -> Dict[str, Any]:
    return NotificationResponse(
        id=notification.id,
        type=notification.type,
        title=notification.title,
        message=notification.message,
        is_read=notification.is_read,
        sender_id=notification.sender_id,
        created_at=notification.created_at,
    ).model_dump(by_alias=True, mode="json")
