from typing import Callable, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ...application.services.privilege_service import PrivilegeService
from ...core.dependencies import get_persistence_gateway, get_privilege_service, get_token_service
from ...domain.errors import (
    AccountInactive,
    Forbidden,
    TokenInvalid,
    TokenMissing,
    TokenPurposeMismatch,
)
from ...domain.models import Role, User
from ...domain.ports.persistence import UserRepository
from ...domain.privileges import has_admin_access
from ...services.token_service import TokenPurpose, TokenService

_bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    token_service: TokenService = Depends(get_token_service),
    users: UserRepository = Depends(get_persistence_gateway),
    privilege_service: PrivilegeService = Depends(get_privilege_service),
) -> User:
    """Resolve the bearer access token to an active user with current privileges."""
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise TokenMissing()
    try:
        claims = token_service.decode(credentials.credentials, TokenPurpose.ACCESS)
    except TokenPurposeMismatch as exc:
        raise TokenInvalid() from exc

    user = users.get_user_by_id(claims.subject_id)
    if not user:
        raise TokenInvalid("User not found.")
    if not user.is_active:
        raise AccountInactive("Account is deactivated.")
    return privilege_service.revoke_if_lapsed(user)


def require_roles(*roles: str) -> Callable[..., User]:
    """Build a dependency admitting users whose role is in ``roles``.

    Listing ``"admin"`` also admits team members with live admin access.
    """
    allowed = tuple(roles)

    def _check(user: User = Depends(get_current_user)) -> User:
        if Role.ADMIN.value in allowed and has_admin_access(user):
            return user
        if user.role.value in allowed:
            return user
        raise Forbidden(
            f"Access denied. Requires one of: [{', '.join(allowed)}]. Your role: {user.role.value}"
        )

    return _check


require_admin_access = require_roles(Role.ADMIN.value)
