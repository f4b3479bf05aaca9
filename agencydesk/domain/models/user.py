"""User domain model shared by admins, clients and team members."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class Role(str, Enum):
    ADMIN = "admin"
    CLIENT = "client"
    TEAM = "team"


SELF_SERVICE_ROLES = (Role.CLIENT, Role.TEAM)


@dataclass(slots=True)
class User:
    """
    User entity for every account kind on the dashboard.

    Attributes:
        id: Unique identifier
        email: Lower-cased email address (unique)
        first_name: Given name
        last_name: Family name
        password_hash: bcrypt digest of the password
        role: admin, client or team; fixed at creation
        two_factor_secret: Base32 TOTP secret, set when 2FA setup begins
        two_factor_enabled: Whether a verified OTP switched 2FA on
        two_factor_verified: Marks that 2FA setup was completed
        is_temporary_admin: Team member holds a time-boxed admin grant
        temporary_admin_until: End of the temporary grant (UTC)
        permanent_admin: Team member holds a permanent admin grant
        is_active: Deactivated accounts cannot authenticate
        reset_password_token: SHA-256 digest of the pending reset token
        reset_password_expiry: Expiry of the pending reset token (UTC)
        last_login_at: Time of the last issued session
        onboarding_complete: Set once 2FA setup finished
        phone, timezone: Profile details
        company, industry: Client-only profile details
        job_title, skills: Team-only profile details
        created_at: Account creation timestamp
        updated_at: Last update timestamp
    """

    id: int
    email: str
    first_name: str
    last_name: str
    password_hash: str
    role: Role
    created_at: datetime
    updated_at: datetime
    two_factor_secret: Optional[str] = None
    two_factor_enabled: bool = False
    two_factor_verified: bool = False
    is_temporary_admin: bool = False
    temporary_admin_until: Optional[datetime] = None
    permanent_admin: bool = False
    is_active: bool = True
    reset_password_token: Optional[str] = None
    reset_password_expiry: Optional[datetime] = None
    last_login_at: Optional[datetime] = None
    onboarding_complete: bool = False
    phone: Optional[str] = None
    timezone: str = "UTC"
    company: Optional[str] = None
    industry: Optional[str] = None
    job_title: Optional[str] = None
    skills: List[str] = field(default_factory=list)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email} role={self.role.value} active={self.is_active}>"
