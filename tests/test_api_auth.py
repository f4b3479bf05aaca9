"""HTTP tests for the /api/auth endpoints."""

import hashlib
from datetime import datetime, timedelta, timezone

import pyotp
import pytest

from agencydesk.services.token_service import TokenPurpose
from tests.conftest import ADMIN_EMAIL, ADMIN_PASSWORD, reset_token_from

REGISTRATION = {
    "firstName": "Sam",
    "lastName": "Okafor",
    "email": "sam@agency.io",
    "password": "sam-password",
    "role": "client",
    "company": "Okafor Bakery",
    "industry": "Food",
}


def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


def _enroll(client, email, password):
    """Register-style onboarding: setup token, QR secret, first OTP."""
    login = client.post("/api/auth/login", json={"email": email, "password": password}).json()
    setup_token = login["data"]["setupToken"]
    setup = client.post("/api/auth/2fa/setup", json={"setupToken": setup_token}).json()
    secret = setup["data"]["manualKey"]
    enabled = client.post(
        "/api/auth/2fa/enable",
        json={"setupToken": setup_token, "otp": pyotp.TOTP(secret).now()},
    )
    return secret, enabled


class TestRegistrationScenario:
    def test_register_setup_enable_me(self, client):
        registered = client.post("/api/auth/register", json=REGISTRATION)
        assert registered.status_code == 201
        body = registered.json()
        assert body["success"] is True
        assert body["data"]["nextStep"] == "setup_2fa"
        assert body["data"]["user"]["twoFactorEnabled"] is False
        assert body["data"]["user"]["hasAdminAccess"] is False

        login = client.post(
            "/api/auth/login", json={"email": "sam@agency.io", "password": "sam-password"}
        ).json()["data"]
        assert login["requires2FA"] is False
        assert login["needs2FASetup"] is True
        assert "accessToken" not in login

        setup = client.post("/api/auth/2fa/setup", json={"setupToken": login["setupToken"]})
        assert setup.status_code == 200
        assert setup.json()["data"]["qrCode"].startswith("data:image/png;base64,")

        secret = setup.json()["data"]["manualKey"]
        enabled = client.post(
            "/api/auth/2fa/enable",
            json={"setupToken": login["setupToken"], "otp": pyotp.TOTP(secret).now()},
        )
        assert enabled.status_code == 200
        session = enabled.json()["data"]
        assert session["dashboardRole"] == "client"
        assert session["user"]["twoFactorEnabled"] is True

        me = client.get("/api/auth/me", headers=_bearer(session["accessToken"]))
        assert me.status_code == 200
        assert me.json()["data"]["user"]["email"] == "sam@agency.io"
        assert me.json()["data"]["user"]["company"] == "Okafor Bakery"

    def test_minimal_registration_through_otpauth_url(self, client):
        credentials = {"email": "a@x.com", "password": "Secret123"}

        registered = client.post("/api/auth/register", json={**credentials, "role": "client"})
        login = client.post("/api/auth/login", json=credentials).json()["data"]
        setup = client.post("/api/auth/2fa/setup", json={"setupToken": login["setupToken"]})
        code = pyotp.parse_uri(setup.json()["data"]["otpauthUrl"]).now()
        enabled = client.post(
            "/api/auth/2fa/enable", json={"setupToken": login["setupToken"], "otp": code}
        )

        assert registered.status_code == 201
        assert registered.json()["data"]["nextStep"] == "setup_2fa"
        assert login["needs2FASetup"] is True
        assert enabled.status_code == 200
        data = enabled.json()["data"]
        assert data["accessToken"] and data["refreshToken"]
        assert data["user"]["twoFactorEnabled"] is True

    def test_second_login_requires_otp(self, client):
        client.post("/api/auth/register", json=REGISTRATION)
        secret, _ = _enroll(client, "sam@agency.io", "sam-password")

        login = client.post(
            "/api/auth/login", json={"email": "sam@agency.io", "password": "sam-password"}
        ).json()["data"]
        assert login["requires2FA"] is True
        assert "setupToken" not in login

        verified = client.post(
            "/api/auth/2fa/verify",
            json={"partialToken": login["partialToken"], "otp": pyotp.TOTP(secret).now()},
        )
        assert verified.status_code == 200
        assert verified.json()["data"]["accessToken"]

    def test_user_projection_hides_secrets(self, client):
        client.post("/api/auth/register", json=REGISTRATION)
        _, enabled = _enroll(client, "sam@agency.io", "sam-password")

        user = enabled.json()["data"]["user"]

        for hidden in ("passwordHash", "twoFactorSecret", "resetPasswordToken", "resetPasswordExpiry"):
            assert hidden not in user
        assert user["fullName"] == "Sam Okafor"

    def test_duplicate_registration(self, client):
        client.post("/api/auth/register", json=REGISTRATION)

        duplicate = client.post("/api/auth/register", json=REGISTRATION)

        assert duplicate.status_code == 409
        assert duplicate.json() == {"success": False, "message": "Email already registered."}

    def test_admin_registration_refused(self, client):
        response = client.post("/api/auth/register", json={**REGISTRATION, "role": "admin"})

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_malformed_body(self, client):
        response = client.post("/api/auth/register", json={"email": "not-an-email"})

        assert response.status_code == 400
        assert response.json()["message"] == "Validation error."
        assert response.json()["errors"]


class TestLogin:
    def test_seeded_admin_skips_two_factor(self, client):
        response = client.post(
            "/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["requires2FA"] is False
        assert data["dashboardRole"] == "admin"
        assert data["accessToken"] and data["refreshToken"]

    def test_wrong_password(self, client):
        response = client.post(
            "/api/auth/login", json={"email": ADMIN_EMAIL, "password": "wrong-password"}
        )

        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Invalid credentials."}

    def test_deactivated_account(self, client):
        client.post("/api/auth/register", json=REGISTRATION)
        container = client.app.state.container
        user = container.persistence.get_user_by_email("sam@agency.io")
        container.persistence.set_user_active(user.id, False)

        response = client.post(
            "/api/auth/login", json={"email": "sam@agency.io", "password": "sam-password"}
        )

        assert response.status_code == 403


class TestTwoFactorEndpoints:
    def test_wrong_otp(self, client):
        client.post("/api/auth/register", json=REGISTRATION)
        login = client.post(
            "/api/auth/login", json={"email": "sam@agency.io", "password": "sam-password"}
        ).json()["data"]
        secret = client.post(
            "/api/auth/2fa/setup", json={"setupToken": login["setupToken"]}
        ).json()["data"]["manualKey"]
        wrong = "000000" if pyotp.TOTP(secret).now() != "000000" else "111111"

        response = client.post(
            "/api/auth/2fa/enable", json={"setupToken": login["setupToken"], "otp": wrong}
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid OTP code. Try again."

    def test_setup_with_garbage_token(self, client):
        response = client.post("/api/auth/2fa/setup", json={"setupToken": "garbage"})

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid or expired setup token."

    def test_setup_with_access_token(self, client):
        access = client.post(
            "/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
        ).json()["data"]["accessToken"]

        response = client.post("/api/auth/2fa/setup", json={"setupToken": access})

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid token purpose."

    def test_verify_with_expired_partial_token(self, client):
        client.post("/api/auth/register", json=REGISTRATION)
        secret, enabled = _enroll(client, "sam@agency.io", "sam-password")
        container = client.app.state.container
        user = container.persistence.get_user_by_id(enabled.json()["data"]["user"]["id"])
        stale = container.token_service.issue(
            TokenPurpose.VERIFY_2FA, user, now=datetime.now(timezone.utc) - timedelta(hours=1)
        )

        response = client.post(
            "/api/auth/2fa/verify", json={"partialToken": stale, "otp": pyotp.TOTP(secret).now()}
        )

        assert response.status_code == 401
        assert response.json() == {
            "success": False,
            "message": "Invalid or expired token. Please login again.",
        }


class TestGuard:
    def test_expired_access_token(self, client):
        container = client.app.state.container
        admin = container.persistence.get_user_by_email(ADMIN_EMAIL)
        stale = container.token_service.issue(
            TokenPurpose.ACCESS, admin, now=datetime.now(timezone.utc) - timedelta(hours=2)
        )

        response = client.get("/api/auth/me", headers=_bearer(stale))

        assert response.status_code == 401
        assert response.json() == {
            "success": False,
            "message": "Token expired. Please login again.",
        }

    def test_missing_token(self, client):
        response = client.get("/api/auth/me")

        assert response.status_code == 401
        assert response.json()["message"] == "No token provided. Access denied."

    def test_garbage_token(self, client):
        response = client.get("/api/auth/me", headers=_bearer("garbage"))

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid token."

    def test_setup_token_is_not_an_access_token(self, client):
        client.post("/api/auth/register", json=REGISTRATION)
        setup_token = client.post(
            "/api/auth/login", json={"email": "sam@agency.io", "password": "sam-password"}
        ).json()["data"]["setupToken"]

        response = client.get("/api/auth/me", headers=_bearer(setup_token))

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid token."

    def test_refresh_token_is_not_an_access_token(self, client):
        refresh = client.post(
            "/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
        ).json()["data"]["refreshToken"]

        response = client.get("/api/auth/me", headers=_bearer(refresh))

        assert response.status_code == 401

    def test_deactivated_after_login(self, client):
        client.post("/api/auth/register", json=REGISTRATION)
        _, enabled = _enroll(client, "sam@agency.io", "sam-password")
        access = enabled.json()["data"]["accessToken"]
        container = client.app.state.container
        container.persistence.set_user_active(enabled.json()["data"]["user"]["id"], False)

        response = client.get("/api/auth/me", headers=_bearer(access))

        assert response.status_code == 403
        assert response.json()["message"] == "Account is deactivated."


class TestRefreshEndpoint:
    def test_refresh(self, client):
        refresh = client.post(
            "/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
        ).json()["data"]["refreshToken"]

        response = client.post("/api/auth/refresh", json={"refreshToken": refresh})

        assert response.status_code == 200
        assert set(response.json()["data"]) == {"accessToken", "refreshToken"}

    def test_invalid_refresh(self, client):
        response = client.post("/api/auth/refresh", json={"refreshToken": "garbage"})

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid refresh token."


class TestPasswords:
    def test_forgot_and_reset(self, client, outbox):
        client.post("/api/auth/register", json=REGISTRATION)

        forgot = client.post("/api/auth/forgot-password", json={"email": "sam@agency.io"})
        client.app.state.container.dispatcher.flush(timeout=5)
        token = reset_token_from(outbox, "sam@agency.io")
        reset = client.post(
            "/api/auth/reset-password", json={"token": token, "newPassword": "fresh-password"}
        )
        login = client.post(
            "/api/auth/login", json={"email": "sam@agency.io", "password": "fresh-password"}
        )
        old_login = client.post(
            "/api/auth/login", json={"email": "sam@agency.io", "password": "sam-password"}
        )

        assert forgot.status_code == 200
        assert reset.status_code == 200
        assert login.status_code == 200
        assert old_login.status_code == 401

    def test_forgot_password_does_not_reveal_accounts(self, client):
        known = client.post("/api/auth/forgot-password", json={"email": ADMIN_EMAIL})
        unknown = client.post("/api/auth/forgot-password", json={"email": "ghost@agency.io"})

        assert known.status_code == unknown.status_code == 200
        assert known.json() == unknown.json()

    def test_reset_with_bad_token(self, client):
        response = client.post(
            "/api/auth/reset-password", json={"token": "abc", "newPassword": "fresh-password"}
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid or expired reset token."

    def test_reset_with_lapsed_token(self, client):
        registered = client.post("/api/auth/register", json=REGISTRATION).json()["data"]["user"]
        token = "ab" * 32
        client.app.state.container.persistence.set_reset_token(
            registered["id"],
            hashlib.sha256(token.encode()).hexdigest(),
            datetime.now(timezone.utc) - timedelta(minutes=1),
        )

        response = client.post(
            "/api/auth/reset-password", json={"token": token, "newPassword": "fresh-password"}
        )
        login = client.post(
            "/api/auth/login", json={"email": "sam@agency.io", "password": "sam-password"}
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid or expired reset token."
        assert login.status_code == 200

    def test_change_password(self, client):
        access = client.post(
            "/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
        ).json()["data"]["accessToken"]

        changed = client.post(
            "/api/auth/change-password",
            headers=_bearer(access),
            json={"currentPassword": ADMIN_PASSWORD, "newPassword": "rotated-password"},
        )
        relogin = client.post(
            "/api/auth/login", json={"email": ADMIN_EMAIL, "password": "rotated-password"}
        )

        assert changed.status_code == 200
        assert relogin.status_code == 200

    @pytest.mark.parametrize(
        "payload, message",
        [
            ({"currentPassword": "nope", "newPassword": "rotated-password"}, "Current password is incorrect."),
            ({"currentPassword": ADMIN_PASSWORD, "newPassword": "tiny"}, "Password must be at least 6 characters."),
        ],
    )
    def test_change_password_rejections(self, client, payload, message):
        access = client.post(
            "/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
        ).json()["data"]["accessToken"]

        response = client.post("/api/auth/change-password", headers=_bearer(access), json=payload)

        assert response.status_code == 400
        assert response.json()["message"] == message


class TestProfile:
    def test_update_profile(self, client):
        client.post("/api/auth/register", json=REGISTRATION)
        _, enabled = _enroll(client, "sam@agency.io", "sam-password")
        access = enabled.json()["data"]["accessToken"]

        response = client.put(
            "/api/auth/profile",
            headers=_bearer(access),
            json={"phone": "+351900000000", "timezone": "Europe/Lisbon"},
        )

        assert response.status_code == 200
        user = response.json()["data"]["user"]
        assert user["phone"] == "+351900000000"
        assert user["timezone"] == "Europe/Lisbon"


def test_health(client):
    assert client.get("/health").json() == {"ok": True}
