import getpass
import os

from dotenv import load_dotenv

from agencydesk.application.services.admin_service import AdminService
from agencydesk.core.config import Settings
from agencydesk.core.logging import configure_logging
from agencydesk.infrastructure.persistence.sqlite import SQLitePersistence
from agencydesk.services.password_hasher import PasswordHasher


def main() -> None:
    load_dotenv()
    configure_logging()
    settings = Settings()

    email = os.getenv("ADMIN_EMAIL") or input("Admin email: ").strip()
    password = os.getenv("ADMIN_PASSWORD") or getpass.getpass("Admin password: ").strip()
    first_name = os.getenv("ADMIN_FIRST_NAME", "Admin")
    last_name = os.getenv("ADMIN_LAST_NAME", "User")

    if not email or not password:
        raise RuntimeError("Set ADMIN_EMAIL and ADMIN_PASSWORD in the environment or a .env file.")

    persistence = SQLitePersistence(settings.database_path)
    try:
        admin_service = AdminService(persistence, PasswordHasher(rounds=settings.bcrypt_rounds))
        existing = persistence.get_user_by_email(email.strip().lower())
        if existing:
            print("Admin already exists:", existing.email)
            return
        user = admin_service.ensure_default_admin(email, password, first_name, last_name)
        print("Admin created:", user.email)
    finally:
        persistence.close()


if __name__ == "__main__":
    main()
