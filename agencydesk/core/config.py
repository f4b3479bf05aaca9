import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from ..services.admin_expiry_sweeper import SWEEP_INTERVAL_SECONDS


class Settings:
    """Centralised application configuration sourced from environment variables."""

    def __init__(self) -> None:
        load_dotenv()
        self.database_path = Path(os.getenv("DATABASE_PATH", "data/app.db")).resolve()
        self.jwt_access_secret = os.getenv("JWT_ACCESS_SECRET", "change-me")
        self.jwt_refresh_secret = os.getenv("JWT_REFRESH_SECRET", "change-me-refresh")
        self.access_token_exp_minutes = self._get_int(
            "ACCESS_TOKEN_EXP_MINUTES", default=30, minimum=15, maximum=30
        )
        self.refresh_token_exp_days = self._get_int(
            "REFRESH_TOKEN_EXP_DAYS", default=7, minimum=7, maximum=30
        )
        self.bcrypt_rounds = self._get_int("BCRYPT_ROUNDS", default=12, minimum=10)
        self.totp_issuer = os.getenv("TOTP_ISSUER", "DashboardPlatform")
        self.admin_default_email = os.getenv("ADMIN_EMAIL")
        self.admin_default_password = os.getenv("ADMIN_PASSWORD")
        self.admin_sweep_interval_seconds = SWEEP_INTERVAL_SECONDS
        self.rate_limit_window_seconds = self._get_int(
            "RATE_LIMIT_WINDOW_SECONDS", default=15 * 60, minimum=1
        )
        self.rate_limit_max = self._get_int("RATE_LIMIT_MAX", default=100, minimum=1)
        self.auth_rate_limit_max = self._get_int("AUTH_RATE_LIMIT_MAX", default=10, minimum=1)
        self.frontend_base_url = os.getenv("FRONTEND_BASE_URL", "http://localhost:3000")
        origins = os.getenv("CORS_ALLOW_ORIGINS")
        if origins:
            self.cors_allow_origins = [item.strip() for item in origins.split(",") if item.strip()]
        else:
            self.cors_allow_origins = ["*"]

    @staticmethod
    def _get_int(
        key: str,
        default: Optional[int] = None,
        minimum: Optional[int] = None,
        maximum: Optional[int] = None,
    ) -> int:
        value = os.getenv(key)
        if value is None:
            if default is None:
                raise RuntimeError(f"Missing required environment variable: {key}")
            return default
        try:
            result = int(value)
        except ValueError as exc:
            raise RuntimeError(f"Environment variable {key} must be an integer") from exc
        if minimum is not None and result < minimum:
            raise RuntimeError(f"Environment variable {key} must be at least {minimum}")
        if maximum is not None and result > maximum:
            raise RuntimeError(f"Environment variable {key} must be at most {maximum}")
        return result
