from __future__ import annotations

import os
import tempfile

import pytest
from fastapi.testclient import TestClient

_TMP_DIR = tempfile.mkdtemp(prefix="clubevents-tests-")

# Environment must be in place before the app (and its settings) are imported
os.environ.setdefault("ENV", "local")
os.environ.setdefault("AUTH_MODE", "dev")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(_TMP_DIR, 'clubevents.db')}")
os.environ.setdefault("DB_AUTO_CREATE", "false")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("TOKEN_REVOCATION_ENABLED", "false")
os.environ.setdefault("NOTIFICATIONS_BACKEND", "inline")
os.environ.setdefault("EMAIL_BACKEND", "console")
os.environ.setdefault("EXPORT_BACKEND", "local")
os.environ.setdefault("EXPORT_ROOT", os.path.join(_TMP_DIR, "exports"))

from clubevents.db import SessionLocal, init_db  # noqa: E402
from clubevents.main import app  # noqa: E402
from clubevents.models import Base  # noqa: E402
from clubevents.notifications import publisher  # noqa: E402
from clubevents.notifications.email import EmailMessage, EmailSender  # noqa: E402


class RecordingEmailSender(EmailSender):
    def __init__(self) -> None:
        self.sent: list[EmailMessage] = []

    def send(self, message: EmailMessage) -> None:
        self.sent.append(message)

    def subjects(self) -> list[str]:
        return [m.subject for m in self.sent]


@pytest.fixture(scope="session", autouse=True)
def schema():
    init_db()
    yield


@pytest.fixture(autouse=True)
def clean_db():
    db = SessionLocal()
    try:
        for table in reversed(Base.metadata.sorted_tables):
            db.execute(table.delete())
        db.commit()
    finally:
        db.close()
    yield


@pytest.fixture(autouse=True)
def outbox(monkeypatch) -> RecordingEmailSender:
    sender = RecordingEmailSender()
    monkeypatch.setattr(publisher, "get_email_sender", lambda: sender)
    return sender


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
