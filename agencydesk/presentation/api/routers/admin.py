from typing import Any, Dict

from fastapi import APIRouter, Depends

from ....application.services.admin_service import AdminService
from ....application.services.privilege_service import PrivilegeService
from ....core.dependencies import get_admin_service, get_privilege_service
from ....domain.models import User
from ...api.dependencies import require_admin_access
from ...api.schemas.admin import GrantAdminRequest, RevokeAdminRequest
from ...api.schemas.user_schemas import serialize_user

router = APIRouter(prefix="/api/admin", tags=["Administration"])


@router.post("/grant-admin")
def grant_admin(
    payload: GrantAdminRequest,
    current_user: User = Depends(require_admin_access),
    privilege_service: PrivilegeService = Depends(get_privilege_service),
) -> Dict[str, Any]:
    user = privilege_service.grant_admin_access(
        payload.user_id,
        is_permanent=payload.is_permanent,
        expiry_date=payload.expiry_date,
        granted_by=current_user.id,
    )
    if payload.is_permanent:
        scope = "permanently"
    else:
        scope = f"until {user.temporary_admin_until.date().isoformat()}"
    return {
        "success": True,
        "message": f"Admin access granted {scope}.",
        "data": {"user": serialize_user(user)},
    }


@router.post("/revoke-admin")
def revoke_admin(
    payload: RevokeAdminRequest,
    current_user: User = Depends(require_admin_access),
    privilege_service: PrivilegeService = Depends(get_privilege_service),
) -> Dict[str, Any]:
    user = privilege_service.revoke_admin_access(payload.user_id, revoked_by=current_user.id)
    return {"success": True, "message": "Admin access revoked.", "data": {"user": serialize_user(user)}}


@router.get("/users/{user_id}")
def get_user(
    user_id: int,
    _: User = Depends(require_admin_access),
    admin_service: AdminService = Depends(get_admin_service),
) -> Dict[str, Any]:
    return {"success": True, "data": {"user": serialize_user(admin_service.get_user(user_id))}}


@router.patch("/users/{user_id}/toggle-active")
def toggle_active(
    user_id: int,
    _: User = Depends(require_admin_access),
    admin_service: AdminService = Depends(get_admin_service),
) -> Dict[str, Any]:
    user = admin_service.toggle_user_active(user_id)
    return {
        "success": True,
        "message": f"User {'activated' if user.is_active else 'deactivated'}.",
        "data": {"isActive": user.is_active},
    }
