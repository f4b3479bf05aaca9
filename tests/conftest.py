import asyncio
import inspect
import itertools
import re
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from agencydesk.core.app_factory import create_application
from agencydesk.core.config import Settings
from agencydesk.core.container import build_container
from agencydesk.domain.models import Role
from agencydesk.infrastructure.persistence.sqlite import SQLitePersistence
from agencydesk.services.email_service import EmailService

ADMIN_EMAIL = "owner@agency.io"
ADMIN_PASSWORD = "owner-password-1"
USER_PASSWORD = "member-password-1"

_RESET_TOKEN = re.compile(r"token=([0-9a-f]+)")
_emails = itertools.count(1)


@pytest.fixture(autouse=True)
def test_environment(tmp_path, monkeypatch):
    """Point every test at its own database and deterministic secrets."""
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "agencydesk.db"))
    monkeypatch.setenv("JWT_ACCESS_SECRET", "test-access-secret-0123456789abcdef")
    monkeypatch.setenv("JWT_REFRESH_SECRET", "test-refresh-secret-0123456789abcdef")
    monkeypatch.setenv("BCRYPT_ROUNDS", "10")
    monkeypatch.setenv("RATE_LIMIT_MAX", "10000")
    monkeypatch.setenv("AUTH_RATE_LIMIT_MAX", "10000")
    monkeypatch.setenv("ADMIN_EMAIL", ADMIN_EMAIL)
    monkeypatch.setenv("ADMIN_PASSWORD", ADMIN_PASSWORD)
    for key in ("SMTP_HOST", "SMTP_USERNAME", "SMTP_PASSWORD", "SMTP_FROM_EMAIL"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    """Capture outgoing email instead of talking to SMTP."""
    sent = []

    def _record(self, to_email, subject, html_body, text_body):
        sent.append({"to": to_email, "subject": subject, "text": text_body})
        return True

    monkeypatch.setattr(EmailService, "_send_email", _record)
    return sent


def reset_token_from(outbox, email):
    for message in reversed(outbox):
        if message["to"] == email and message["subject"] == "Reset Your Password":
            return _RESET_TOKEN.search(message["text"]).group(1)
    raise AssertionError(f"No reset email sent to {email}")


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def persistence(settings):
    store = SQLitePersistence(settings.database_path)
    yield store
    store.close()


@pytest.fixture
def container(settings, persistence):
    container = build_container(settings, persistence)
    yield container
    container.dispatcher.stop()


@pytest.fixture
def make_user(container):
    """Factory creating users straight in the store with a known password."""

    def _make(role=Role.TEAM, *, email=None, password=USER_PASSWORD, **fields):
        user = container.persistence.create_user(
            email=email or f"user{next(_emails)}@agency.io",
            password_hash=container.password_hasher.hash(password),
            first_name="Test",
            last_name=role.value.title(),
            role=role,
            **fields,
        )
        return user

    return _make


@pytest.fixture
def grant_lapsed(container):
    """Give a user a temporary grant that ended an hour ago."""

    def _grant(user, ended=timedelta(hours=1)):
        return container.persistence.set_admin_grant(
            user.id,
            permanent_admin=False,
            is_temporary_admin=True,
            temporary_admin_until=datetime.now(timezone.utc) - ended,
        )

    return _grant


@pytest.fixture
def client():
    with TestClient(create_application()) as test_client:
        yield test_client


def pytest_pyfunc_call(pyfuncitem):
    if inspect.iscoroutinefunction(pyfuncitem.obj):
        call_kwargs = {
            name: pyfuncitem.funcargs[name]
            for name in pyfuncitem._fixtureinfo.argnames
            if name in pyfuncitem.funcargs
        }
        asyncio.run(pyfuncitem.obj(**call_kwargs))
        return True
    return None
