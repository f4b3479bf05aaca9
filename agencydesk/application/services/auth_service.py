from __future__ import annotations

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import List, Optional, Sequence

from ...domain.errors import (
    AccountInactive,
    EmailAlreadyRegistered,
    InvalidCredentials,
    OtpInvalid,
    ResourceNotFound,
    TokenExpired,
    TokenInvalid,
    TokenPurposeMismatch,
    ValidationError,
)
from ...domain.models import SELF_SERVICE_ROLES, Role, User
from ...domain.ports.persistence import UserRepository
from ...services.dispatcher import BackgroundDispatcher
from ...services.email_service import EmailService
from ...services.password_hasher import BCRYPT_MAX_BYTES, PasswordHasher
from ...services.token_service import TokenPair, TokenPurpose, TokenService
from ...services.totp import TotpService
from .privilege_service import PrivilegeService

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
RESET_TOKEN_TTL = timedelta(hours=1)


class LoginStep(str, Enum):
    SESSION_ISSUED = "session_issued"
    SETUP_REQUIRED = "setup_required"
    OTP_REQUIRED = "otp_required"


@dataclass(frozen=True, slots=True)
class RegistrationData:
    first_name: str
    last_name: str
    email: str
    password: str
    role: str
    phone: Optional[str] = None
    company: Optional[str] = None
    industry: Optional[str] = None
    job_title: Optional[str] = None
    skills: Optional[List[str]] = None


@dataclass(frozen=True, slots=True)
class ProfileUpdate:
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    timezone: Optional[str] = None
    company: Optional[str] = None
    industry: Optional[str] = None
    job_title: Optional[str] = None
    skills: Optional[Sequence[str]] = None


@dataclass(frozen=True, slots=True)
class LoginResult:
    step: LoginStep
    user: User
    tokens: Optional[TokenPair] = None
    setup_token: Optional[str] = None
    partial_token: Optional[str] = None


@dataclass(frozen=True, slots=True)
class SessionResult:
    user: User
    tokens: TokenPair


@dataclass(frozen=True, slots=True)
class TwoFactorSetup:
    qr_code: str
    manual_key: str
    otpauth_url: str


class AuthService:
    """Drives registration, login, two-factor and password flows.

    Admins receive a session straight after password verification. Clients
    and team members are routed through TOTP setup or verification first
    and only then receive an access/refresh pair.
    """

    def __init__(
        self,
        users: UserRepository,
        password_hasher: PasswordHasher,
        totp: TotpService,
        tokens: TokenService,
        privileges: PrivilegeService,
        email_service: EmailService,
        dispatcher: BackgroundDispatcher,
    ) -> None:
        self._users = users
        self._hasher = password_hasher
        self._totp = totp
        self._tokens = tokens
        self._privileges = privileges
        self._email = email_service
        self._dispatcher = dispatcher

    # Registration -------------------------------------------------------
    def register(self, data: RegistrationData) -> User:
        try:
            role = Role(data.role)
        except ValueError:
            role = None
        if role not in SELF_SERVICE_ROLES:
            raise ValidationError("Invalid role. Only client or team registration is allowed.")
        email_clean = data.email.strip().lower()
        if not email_clean:
            raise ValidationError("Email is required.")
        self._validate_password(data.password)
        if self._users.get_user_by_email(email_clean):
            raise EmailAlreadyRegistered()

        user = self._users.create_user(
            email=email_clean,
            password_hash=self._hasher.hash(data.password),
            first_name=data.first_name.strip(),
            last_name=data.last_name.strip(),
            role=role,
            phone=data.phone,
            company=data.company if role == Role.CLIENT else None,
            industry=data.industry if role == Role.CLIENT else None,
            job_title=data.job_title if role == Role.TEAM else None,
            skills=(data.skills or []) if role == Role.TEAM else None,
        )
        logger.info("Registered %s account %s.", role.value, user.id)

        self._dispatcher.submit(f"welcome email for user {user.id}", self._email.send_welcome_email, user)
        self._dispatcher.submit(
            f"2FA setup email for user {user.id}", self._email.send_two_factor_setup_email, user
        )
        return user

    # Login --------------------------------------------------------------
    def login(self, email: str, password: str) -> LoginResult:
        user = self._users.get_user_by_email(email.strip().lower())
        if not user or not self._hasher.verify(password, user.password_hash):
            raise InvalidCredentials()
        if not user.is_active:
            raise AccountInactive()

        if user.role == Role.ADMIN:
            user = self._users.record_login(user.id, self._now())
            return LoginResult(
                step=LoginStep.SESSION_ISSUED,
                user=user,
                tokens=self._tokens.issue_session(user),
            )

        if not user.two_factor_enabled:
            return LoginResult(
                step=LoginStep.SETUP_REQUIRED,
                user=user,
                setup_token=self._tokens.issue(TokenPurpose.SETUP_2FA, user),
            )

        return LoginResult(
            step=LoginStep.OTP_REQUIRED,
            user=user,
            partial_token=self._tokens.issue(TokenPurpose.VERIFY_2FA, user),
        )

    # Two-factor ---------------------------------------------------------
    def begin_two_factor_setup(self, setup_token: str) -> TwoFactorSetup:
        user = self._user_for_step(
            setup_token, TokenPurpose.SETUP_2FA, "Invalid or expired setup token."
        )
        if user.two_factor_enabled:
            raise ValidationError("Two-factor authentication is already enabled.")

        generated = self._totp.generate_secret(user.email)
        self._users.set_two_factor_secret(user.id, generated.secret)
        return TwoFactorSetup(
            qr_code=self._totp.qr_data_uri(generated.provisioning_uri),
            manual_key=generated.secret,
            otpauth_url=generated.provisioning_uri,
        )

    def enable_two_factor(self, setup_token: str, otp: str) -> SessionResult:
        user = self._user_for_step(
            setup_token, TokenPurpose.SETUP_2FA, "Invalid or expired setup token."
        )
        if not user.two_factor_secret:
            raise ValidationError("No 2FA secret found. Start setup again.")
        if not self._totp.verify(user.two_factor_secret, otp):
            raise OtpInvalid("Invalid OTP code. Try again.")

        user = self._users.enable_two_factor(user.id, self._now())
        logger.info("Two-factor authentication enabled for user %s.", user.id)
        return SessionResult(user=user, tokens=self._tokens.issue_session(user))

    def verify_two_factor(self, partial_token: str, otp: str) -> SessionResult:
        user = self._user_for_step(
            partial_token,
            TokenPurpose.VERIFY_2FA,
            "Invalid or expired token. Please login again.",
        )
        user = self._privileges.revoke_if_lapsed(user)
        if not self._totp.verify(user.two_factor_secret, otp):
            raise OtpInvalid()

        user = self._users.record_login(user.id, self._now())
        return SessionResult(user=user, tokens=self._tokens.issue_session(user))

    # Tokens -------------------------------------------------------------
    def refresh(self, refresh_token: str) -> TokenPair:
        try:
            claims = self._tokens.decode(refresh_token, TokenPurpose.REFRESH)
        except (TokenExpired, TokenInvalid, TokenPurposeMismatch) as exc:
            raise TokenInvalid("Invalid refresh token.") from exc
        user = self._users.get_user_by_id(claims.subject_id)
        if not user or not user.is_active:
            raise TokenInvalid("Invalid refresh token.")
        user = self._privileges.revoke_if_lapsed(user)
        return self._tokens.issue_session(user)

    # Passwords ----------------------------------------------------------
    def forgot_password(self, email: str) -> None:
        """Issue a reset token when the account exists; silent otherwise."""
        user = self._users.get_user_by_email(email.strip().lower())
        if not user:
            return
        token = secrets.token_hex(32)
        self._users.set_reset_token(user.id, _digest(token), self._now() + RESET_TOKEN_TTL)
        self._dispatcher.submit(
            f"password reset email for user {user.id}",
            self._email.send_password_reset_email,
            user,
            token,
        )

    def reset_password(self, token: str, new_password: str) -> User:
        user = self._users.get_user_by_reset_token(_digest(token), self._now()) if token else None
        if not user:
            raise ValidationError("Invalid or expired reset token.")
        self._validate_password(new_password)
        updated = self._users.update_user_password(
            user.id, self._hasher.hash(new_password), clear_reset_token=True
        )
        logger.info("Password reset completed for user %s.", user.id)
        return updated

    def change_password(self, user: User, current_password: str, new_password: str) -> User:
        if not self._hasher.verify(current_password, user.password_hash):
            raise ValidationError("Current password is incorrect.")
        self._validate_password(new_password)
        return self._users.update_user_password(user.id, self._hasher.hash(new_password))

    # Profile ------------------------------------------------------------
    def update_profile(self, user: User, changes: ProfileUpdate) -> User:
        is_client = user.role == Role.CLIENT
        is_team = user.role == Role.TEAM
        return self._users.update_user_profile(
            user.id,
            first_name=changes.first_name or None,
            last_name=changes.last_name or None,
            phone=changes.phone or None,
            timezone=changes.timezone or None,
            company=(changes.company or None) if is_client else None,
            industry=(changes.industry or None) if is_client else None,
            job_title=(changes.job_title or None) if is_team else None,
            skills=changes.skills if is_team else None,
        )

    # Helpers ------------------------------------------------------------
    def _user_for_step(self, token: str, purpose: TokenPurpose, message: str) -> User:
        try:
            claims = self._tokens.decode(token, purpose)
        except TokenExpired as exc:
            raise TokenExpired(message) from exc
        except TokenInvalid as exc:
            raise TokenInvalid(message) from exc
        user = self._users.get_user_by_id(claims.subject_id)
        if not user:
            raise ResourceNotFound("User not found.")
        if not user.is_active:
            raise AccountInactive()
        return user

    @staticmethod
    def _validate_password(password: str) -> None:
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
        if len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
            raise ValidationError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes.")

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)


def _digest(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
