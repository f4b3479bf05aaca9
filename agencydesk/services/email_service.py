"""Service for sending transactional emails."""

import logging
import os
import smtplib
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from ..domain.models import User

logger = logging.getLogger(__name__)


class EmailService:
    """Service for sending emails via SMTP."""

    def __init__(
        self,
        smtp_host: Optional[str] = None,
        smtp_port: Optional[int] = None,
        smtp_username: Optional[str] = None,
        smtp_password: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: str = "Dashboard Platform",
        frontend_base_url: str = "http://localhost:3000",
    ):
        self.smtp_host = smtp_host or os.getenv("SMTP_HOST", "")
        self.smtp_port = smtp_port or int(os.getenv("SMTP_PORT", "587"))
        self.smtp_username = smtp_username or os.getenv("SMTP_USERNAME", "")
        self.smtp_password = smtp_password or os.getenv("SMTP_PASSWORD", "")
        self.from_email = from_email or os.getenv("SMTP_FROM_EMAIL", "")
        self.from_name = from_name
        self.frontend_base_url = frontend_base_url.rstrip("/")
        self.enabled = bool(self.smtp_host and self.smtp_username and self.from_email)

    def send_welcome_email(self, user: User) -> bool:
        subject = "Welcome to Dashboard Platform!"
        text_body = (
            f"Hi {user.first_name},\n\n"
            f"Your {user.role.value} account has been created.\n"
            f"Sign in at {self.frontend_base_url}/login to get started."
        )
        return self._send_email(user.email, subject, self._as_html(text_body), text_body)

    def send_two_factor_setup_email(self, user: User) -> bool:
        subject = "Set Up Two-Factor Authentication"
        text_body = (
            f"Hi {user.first_name},\n\n"
            "Two-factor authentication is required for your account.\n"
            "Install Google Authenticator (or any TOTP app), then sign in at "
            f"{self.frontend_base_url}/login and scan the QR code we show you."
        )
        return self._send_email(user.email, subject, self._as_html(text_body), text_body)

    def send_password_reset_email(self, user: User, reset_token: str) -> bool:
        """
        Send the password reset link.

        Args:
            user: Account owner
            reset_token: Plaintext single-use token (only its digest is stored)

        Returns:
            True if sent successfully, False otherwise
        """
        reset_url = f"{self.frontend_base_url}/reset-password?token={reset_token}"
        subject = "Reset Your Password"
        text_body = (
            f"Hi {user.first_name},\n\n"
            f"Reset your password here: {reset_url}\n\n"
            "This link expires in 1 hour. If you did not request it, ignore this email."
        )
        return self._send_email(user.email, subject, self._as_html(text_body), text_body)

    def send_admin_access_email(
        self, user: User, is_permanent: bool, expiry_date: Optional[datetime]
    ) -> bool:
        if is_permanent or expiry_date is None:
            scope = "permanent admin access"
        else:
            scope = f"temporary admin access until {expiry_date.strftime('%Y-%m-%d %H:%M UTC')}"
        subject = "Admin Access Granted"
        text_body = (
            f"Hi {user.first_name},\n\n"
            f"You have been granted {scope}.\n"
            f"Your dashboard at {self.frontend_base_url} now shows the admin view."
        )
        return self._send_email(user.email, subject, self._as_html(text_body), text_body)

    def send_admin_access_revoked_email(self, user: User) -> bool:
        subject = "Admin Access Revoked"
        text_body = (
            f"Hi {user.first_name},\n\n"
            "Your admin access has been revoked by an administrator.\n"
            f"Your dashboard at {self.frontend_base_url} is back to the team view."
        )
        return self._send_email(user.email, subject, self._as_html(text_body), text_body)

    @staticmethod
    def _as_html(text_body: str) -> str:
        paragraphs = "".join(f"<p>{line}</p>" for line in text_body.split("\n") if line)
        return f'<html><body style="font-family: Arial, sans-serif;">{paragraphs}</body></html>'

    def _send_email(self, to_email: str, subject: str, html_body: str, text_body: str) -> bool:
        """
        Send an email via SMTP.

        Returns:
            True if sent (or delivery is disabled), False on SMTP failure
        """
        if not self.enabled:
            logger.info("SMTP not configured; skipping email '%s' to %s", subject, to_email)
            return True

        try:
            msg = MIMEMultipart("alternative")
            msg["Subject"] = subject
            msg["From"] = f"{self.from_name} <{self.from_email}>"
            msg["To"] = to_email

            msg.attach(MIMEText(text_body, "plain", "utf-8"))
            msg.attach(MIMEText(html_body, "html", "utf-8"))

            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                server.starttls()
                server.login(self.smtp_username, self.smtp_password)
                server.send_message(msg)

            return True

        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Failed to send email '%s' to %s: %s", subject, to_email, exc)
            return False
