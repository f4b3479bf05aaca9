from dataclasses import dataclass

from ..application.services.admin_service import AdminService
from ..application.services.auth_service import AuthService
from ..application.services.privilege_service import PrivilegeService
from .config import Settings
from ..domain.ports.persistence import PersistenceGateway
from ..services.admin_expiry_sweeper import AdminExpirySweeper
from ..services.dispatcher import BackgroundDispatcher
from ..services.email_service import EmailService
from ..services.notification_service import NotificationService
from ..services.password_hasher import PasswordHasher
from ..services.token_service import TokenService
from ..services.totp import TotpService


@dataclass(slots=True)
class ApplicationContainer:
    """Dependency registry shared across the FastAPI application lifecycle."""

    settings: Settings
    persistence: PersistenceGateway
    password_hasher: PasswordHasher
    totp: TotpService
    token_service: TokenService
    email_service: EmailService
    dispatcher: BackgroundDispatcher
    notification_service: NotificationService
    privilege_service: PrivilegeService
    auth_service: AuthService
    admin_service: AdminService
    expiry_sweeper: AdminExpirySweeper


def build_container(settings: Settings, persistence: PersistenceGateway) -> ApplicationContainer:
    password_hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    totp = TotpService(issuer=settings.totp_issuer)
    token_service = TokenService(
        settings.jwt_access_secret,
        settings.jwt_refresh_secret,
        access_exp_minutes=settings.access_token_exp_minutes,
        refresh_exp_days=settings.refresh_token_exp_days,
    )
    email_service = EmailService(frontend_base_url=settings.frontend_base_url)
    dispatcher = BackgroundDispatcher()
    notification_service = NotificationService(persistence)
    privilege_service = PrivilegeService(persistence, notification_service, email_service, dispatcher)
    auth_service = AuthService(
        persistence,
        password_hasher,
        totp,
        token_service,
        privilege_service,
        email_service,
        dispatcher,
    )
    admin_service = AdminService(persistence, password_hasher)
    expiry_sweeper = AdminExpirySweeper(
        privilege_service, interval_seconds=settings.admin_sweep_interval_seconds
    )
    return ApplicationContainer(
        settings=settings,
        persistence=persistence,
        password_hasher=password_hasher,
        totp=totp,
        token_service=token_service,
        email_service=email_service,
        dispatcher=dispatcher,
        notification_service=notification_service,
        privilege_service=privilege_service,
        auth_service=auth_service,
        admin_service=admin_service,
        expiry_sweeper=expiry_sweeper,
    )
