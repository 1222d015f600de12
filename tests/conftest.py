"""Pytest fixtures for the account management tests."""

import os

# Settings are read at import time, so the test environment is configured first.
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production-use-0123456789")
os.environ["DATABASE_URL_OVERRIDE"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["MAIL_SUPPRESS_SEND"] = "true"
os.environ["MAIL_FROM"] = "no-reply@account-management.net"

import re
import uuid
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from account_management.core.security import create_token_pair, hash_one_time_password
from account_management.core.telemetry import TelemetryEventsCollector, get_events, track_events
from account_management.database import Base, SessionLocal, engine
from account_management.main import app
from account_management.models.login import Login
from account_management.models.signup import Signup
from account_management.models.tenant import Tenant
from account_management.models.user import User
from account_management.services.email_service import get_email_client
from account_management.services.one_time_password import VALID_FOR_SECONDS

CODE_PATTERN = re.compile(r"<b>(\d{6})</b>")


class RecordingEmailClient:
    """Stands in for the SMTP client; keeps every message it was asked to send."""

    def __init__(self):
        self.sent: list[dict] = []

    async def send(self, recipient: str, subject: str, html_body: str) -> None:
        self.sent.append({"recipient": recipient, "subject": subject, "body": html_body})

    def last_code(self) -> str:
        match = CODE_PATTERN.search(self.sent[-1]["body"])
        assert match, "last email did not contain a code"
        return match.group(1)


@pytest.fixture(scope="function")
def db():
    """Fresh schema per test on the shared in-memory SQLite engine."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def email_client() -> RecordingEmailClient:
    return RecordingEmailClient()


class RecordingEventsCollector(TelemetryEventsCollector):
    """Shared by every request in a test; remembers what was dispatched and what was dropped."""

    def __init__(self):
        super().__init__()
        self.dispatched_events = []
        self.discarded_events = []

    def dispatch(self) -> None:
        self.dispatched_events.extend(self.collected_events)
        super().dispatch()

    def discard(self) -> None:
        self.discarded_events.extend(self.collected_events)
        super().discard()

    def dispatched_names(self) -> list[str]:
        return [event.name for event in self.dispatched_events]


@pytest.fixture(scope="function")
def events() -> RecordingEventsCollector:
    return RecordingEventsCollector()


@pytest.fixture(scope="function")
def app_overrides(db, email_client, events):
    """Swap in the recording email client; telemetry still runs through track_events."""
    def recording_events():
        yield from track_events(events)

    app.dependency_overrides[get_email_client] = lambda: email_client
    app.dependency_overrides[get_events] = recording_events
    yield
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def client(app_overrides):
    """Unauthenticated client."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture(scope="function")
def failing_client(app_overrides):
    """Client that turns unhandled errors into 500 responses instead of raising them."""
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture(scope="function")
def tenant(db) -> Tenant:
    tenant = Tenant(id=uuid.uuid4(), name="Tenant 1", state="trial")
    db.add(tenant)
    db.commit()
    db.refresh(tenant)
    return tenant


@pytest.fixture(scope="function")
def owner(db, tenant) -> User:
    user = User(
        tenant_id=tenant.id,
        email="owner@tenant-1.com",
        role="owner",
        email_confirmed=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture(scope="function")
def member(db, tenant) -> User:
    user = User(
        tenant_id=tenant.id,
        email="member@tenant-1.com",
        role="member",
        email_confirmed=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def _insert_attempt(db, model, email: str, created_at: datetime, code: str = "123456", **fields):
    """Write an attempt row directly, the way an earlier request would have left it."""
    attempt = model(
        email=email,
        one_time_password_hash=hash_one_time_password(code),
        retry_count=fields.pop("retry_count", 0),
        resend_count=fields.pop("resend_count", 0),
        completed=fields.pop("completed", False),
        created_at=created_at,
        last_sent_at=fields.pop("last_sent_at", created_at),
        valid_until=fields.pop("valid_until", created_at + timedelta(seconds=VALID_FOR_SECONDS)),
        **fields,
    )
    db.add(attempt)
    db.commit()
    db.refresh(attempt)
    return attempt


@pytest.fixture(scope="function")
def make_signup(db):
    """make_signup(email, created_at, code="123456", **columns) -> Signup"""
    def _make(email: str, created_at: datetime, **fields) -> Signup:
        fields.setdefault("tenant_id", uuid.uuid4())
        return _insert_attempt(db, Signup, email, created_at, **fields)
    return _make


@pytest.fixture(scope="function")
def make_login(db):
    """make_login(user, created_at, code="123456", **columns) -> Login"""
    def _make(user: User, created_at: datetime, **fields) -> Login:
        return _insert_attempt(
            db, Login, user.email, created_at, user_id=user.id, tenant_id=user.tenant_id, **fields
        )
    return _make


@pytest.fixture(scope="function")
def auth_headers():
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_token_pair(user)['access_token']}"}
    return _headers
