from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional

import jwt

from ..domain.errors import TokenExpired, TokenInvalid, TokenPurposeMismatch
from ..domain.models import User
from ..domain.privileges import has_admin_access

logger = logging.getLogger(__name__)

DEFAULT_ACCESS_SECRET = "change-me"
DEFAULT_REFRESH_SECRET = "change-me-refresh"


class TokenPurpose(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"
    SETUP_2FA = "setup_2fa"
    VERIFY_2FA = "verify_2fa"


PARTIAL_TOKEN_TTLS = {
    TokenPurpose.SETUP_2FA: timedelta(minutes=30),
    TokenPurpose.VERIFY_2FA: timedelta(minutes=10),
}


@dataclass(frozen=True, slots=True)
class TokenClaims:
    subject_id: int
    purpose: TokenPurpose
    issued_at: datetime
    expires_at: datetime
    role: Optional[str] = None
    has_admin_access: Optional[bool] = None


@dataclass(frozen=True, slots=True)
class TokenPair:
    access_token: str
    refresh_token: str


class TokenService:
    """Signs and verifies the purpose-tagged JWTs used by the login flow.

    Refresh tokens use their own signing key; every other purpose shares the
    access key and is told apart by the ``purpose`` claim.
    """

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        *,
        access_exp_minutes: int = 30,
        refresh_exp_days: int = 7,
        algorithm: str = "HS256",
    ) -> None:
        if not access_secret or not refresh_secret:
            raise RuntimeError("JWT_ACCESS_SECRET and JWT_REFRESH_SECRET must be configured.")
        if access_secret == DEFAULT_ACCESS_SECRET or refresh_secret == DEFAULT_REFRESH_SECRET:
            logger.warning("JWT secrets are using default values. Configure secure secrets in production.")
        if access_secret == refresh_secret:
            logger.warning("JWT_ACCESS_SECRET and JWT_REFRESH_SECRET are identical; use distinct keys.")
        self._access_secret = access_secret
        self._refresh_secret = refresh_secret
        self._algorithm = algorithm
        self._ttls = {
            TokenPurpose.ACCESS: timedelta(minutes=access_exp_minutes),
            TokenPurpose.REFRESH: timedelta(days=refresh_exp_days),
            **PARTIAL_TOKEN_TTLS,
        }

    def issue(self, purpose: TokenPurpose, user: User, now: Optional[datetime] = None) -> str:
        issued_at = now or datetime.now(tz=timezone.utc)
        payload: Dict[str, Any] = {
            "sub": str(user.id),
            "purpose": purpose.value,
            "iat": issued_at,
            "exp": issued_at + self._ttls[purpose],
            "jti": secrets.token_hex(8),
        }
        if purpose is TokenPurpose.ACCESS:
            payload["role"] = user.role.value
            payload["hasAdminAccess"] = has_admin_access(user, issued_at)
        return jwt.encode(payload, self._key_for(purpose), algorithm=self._algorithm)

    def issue_session(self, user: User) -> TokenPair:
        return TokenPair(
            access_token=self.issue(TokenPurpose.ACCESS, user),
            refresh_token=self.issue(TokenPurpose.REFRESH, user),
        )

    def decode(self, token: str, expected: TokenPurpose) -> TokenClaims:
        """
        Verify signature and expiry, then check the purpose claim.

        Raises:
            TokenExpired: The token was valid but its ``exp`` has passed
            TokenInvalid: Malformed token, bad signature or missing claims
            TokenPurposeMismatch: A valid token minted for another step
        """
        try:
            payload = jwt.decode(
                token,
                self._key_for(expected),
                algorithms=[self._algorithm],
                options={"require": ["sub", "iat", "exp"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpired() from exc
        except jwt.InvalidTokenError as exc:
            raise TokenInvalid() from exc

        try:
            purpose = TokenPurpose(payload.get("purpose"))
            subject_id = int(payload["sub"])
        except (TypeError, ValueError) as exc:
            raise TokenInvalid() from exc
        if purpose is not expected:
            raise TokenPurposeMismatch()

        return TokenClaims(
            subject_id=subject_id,
            purpose=purpose,
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            role=payload.get("role"),
            has_admin_access=payload.get("hasAdminAccess"),
        )

    def _key_for(self, purpose: TokenPurpose) -> str:
        if purpose is TokenPurpose.REFRESH:
            return self._refresh_secret
        return self._access_secret
