from typing import Any, Dict

from fastapi import APIRouter, Depends, Query, status

from ....application.services.auth_service import (
    AuthService,
    LoginStep,
    ProfileUpdate,
    RegistrationData,
    SessionResult,
)
from ....core.dependencies import get_auth_service, get_notification_service
from ....domain.models import User
from ....domain.privileges import dashboard_role
from ....services.notification_service import NotificationService
from ...api.dependencies import get_current_user
from ...api.schemas.auth import (
    ChangePasswordRequest,
    EnableTwoFactorRequest,
    ForgotPasswordRequest,
    LoginRequest,
    ProfileUpdateRequest,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
    SetupTokenPayload,
    VerifyTwoFactorRequest,
)
from ...api.schemas.user_schemas import serialize_notification, serialize_user

router = APIRouter(prefix="/api/auth", tags=["Authentication"])

RESET_REQUESTED_MESSAGE = "If that email exists, a reset link has been sent."


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    user = auth_service.register(
        RegistrationData(
            first_name=payload.first_name,
            last_name=payload.last_name,
            email=payload.email,
            password=payload.password,
            role=payload.role,
            phone=payload.phone,
            company=payload.company,
            industry=payload.industry,
            job_title=payload.job_title,
            skills=payload.skills,
        )
    )
    return {
        "success": True,
        "message": "Account created successfully. Please set up 2FA to complete your login.",
        "data": {"user": serialize_user(user), "nextStep": "setup_2fa"},
    }


@router.post("/login")
def login(
    payload: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    result = auth_service.login(payload.email, payload.password)

    if result.step is LoginStep.SESSION_ISSUED:
        return {
            "success": True,
            "message": "Login successful.",
            "data": {
                "user": serialize_user(result.user),
                "accessToken": result.tokens.access_token,
                "refreshToken": result.tokens.refresh_token,
                "requires2FA": False,
                "dashboardRole": dashboard_role(result.user),
            },
        }

    if result.step is LoginStep.SETUP_REQUIRED:
        return {
            "success": True,
            "message": "Credentials valid. Please set up 2FA.",
            "data": {
                "requires2FA": False,
                "needs2FASetup": True,
                "setupToken": result.setup_token,
                "userId": result.user.id,
            },
        }

    return {
        "success": True,
        "message": "Credentials valid. Please enter your 2FA code.",
        "data": {
            "requires2FA": True,
            "partialToken": result.partial_token,
            "userId": result.user.id,
        },
    }


@router.post("/2fa/setup")
def two_factor_setup(
    payload: SetupTokenPayload,
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    setup = auth_service.begin_two_factor_setup(payload.setup_token)
    return {
        "success": True,
        "message": "2FA secret generated. Scan the QR code with Google Authenticator.",
        "data": {
            "qrCode": setup.qr_code,
            "manualKey": setup.manual_key,
            "otpauthUrl": setup.otpauth_url,
        },
    }


@router.post("/2fa/enable")
def two_factor_enable(
    payload: EnableTwoFactorRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    session = auth_service.enable_two_factor(payload.setup_token, payload.otp)
    return _session_response("2FA enabled successfully. You are now logged in.", session)


@router.post("/2fa/verify")
def two_factor_verify(
    payload: VerifyTwoFactorRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    session = auth_service.verify_two_factor(payload.partial_token, payload.otp)
    return _session_response("Login successful.", session)


@router.post("/refresh")
def refresh(
    payload: RefreshRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    tokens = auth_service.refresh(payload.refresh_token)
    return {
        "success": True,
        "data": {"accessToken": tokens.access_token, "refreshToken": tokens.refresh_token},
    }


@router.post("/forgot-password")
def forgot_password(
    payload: ForgotPasswordRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    auth_service.forgot_password(payload.email)
    return {"success": True, "message": RESET_REQUESTED_MESSAGE}


@router.post("/reset-password")
def reset_password(
    payload: ResetPasswordRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    auth_service.reset_password(payload.token, payload.new_password)
    return {"success": True, "message": "Password reset successfully. You can now login."}


@router.get("/me")
def me(current_user: User = Depends(get_current_user)) -> Dict[str, Any]:
    return {
        "success": True,
        "data": {
            "user": serialize_user(current_user),
            "dashboardRole": dashboard_role(current_user),
        },
    }


@router.put("/profile")
def update_profile(
    payload: ProfileUpdateRequest,
    current_user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    user = auth_service.update_profile(
        current_user,
        ProfileUpdate(
            first_name=payload.first_name,
            last_name=payload.last_name,
            phone=payload.phone,
            timezone=payload.timezone,
            company=payload.company,
            industry=payload.industry,
            job_title=payload.job_title,
            skills=payload.skills,
        ),
    )
    return {"success": True, "message": "Profile updated.", "data": {"user": serialize_user(user)}}


@router.post("/change-password")
def change_password(
    payload: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    auth_service.change_password(current_user, payload.current_password, payload.new_password)
    return {"success": True, "message": "Password changed successfully."}


@router.get("/notifications")
def notifications(
    limit: int = Query(default=50, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    notification_service: NotificationService = Depends(get_notification_service),
) -> Dict[str, Any]:
    items = notification_service.for_user(current_user.id, limit=limit)
    return {
        "success": True,
        "data": {
            "notifications": [serialize_notification(item) for item in items],
            "unreadCount": notification_service.unread_count(current_user.id),
        },
    }


@router.patch("/notifications/read-all")
def mark_all_notifications_read(
    current_user: User = Depends(get_current_user),
    notification_service: NotificationService = Depends(get_notification_service),
) -> Dict[str, Any]:
    notification_service.mark_all_read(current_user.id)
    return {"success": True, "message": "All notifications marked as read."}


@router.patch("/notifications/{notification_id}/read")
def mark_notification_read(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    notification_service: NotificationService = Depends(get_notification_service),
) -> Dict[str, Any]:
    notification_service.mark_read(current_user.id, notification_id)
    return {"success": True, "message": "Notification marked as read."}


def _session_response(message: str, session: SessionResult) -> Dict[str, Any]:
    return {
        "success": True,
        "message": message,
        "data": {
            "user": serialize_user(session.user),
            "accessToken": session.tokens.access_token,
            "refreshToken": session.tokens.refresh_token,
            "dashboardRole": dashboard_role(session.user),
        },
    }
