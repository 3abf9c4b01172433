# tests/conftest.py
"""
Shared fixtures: in-memory database, fake storage, recording mail sender.

Run with: pytest tests -v
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["EMAIL_NOTIFICATIONS_ENABLED"] = "true"
os.environ["NOTIFICATION_MAX_ATTEMPTS"] = "2"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ticketflow.core.database import get_db
from ticketflow.main import app
from ticketflow.models import Base, User, Ticket, Upload, Department, TicketPriority, TicketStatus
from ticketflow.schemas.identity import Identity
from ticketflow.services.auth_service import AuthService
from ticketflow.services.notification_service import NotificationOutbox, get_outbox
from ticketflow.services.storage_service import StoredObject, get_storage


class FakeStorage:
    """In-memory stand-in for S3."""

    def __init__(self):
        self.objects = {}
        self.deleted = []
        self.fail_deletes = set()

    def store(self, file_bytes, file_name, mime_type, uploader_id):
        key = f"tickets/{len(self.objects) + 1}-{file_name}"
        self.objects[key] = file_bytes
        return StoredObject(key=key, size_bytes=len(file_bytes))

    def delete(self, key):
        self.deleted.append(key)
        if key in self.fail_deletes:
            return False
        self.objects.pop(key, None)
        return True

    def signed_url(self, key, ttl_seconds=3600):
        if key not in self.objects:
            return None
        return f"https://storage.test/{key}?expires={ttl_seconds}"


class RecordingSender:
    """Mail sender that records messages instead of calling Zoho."""

    def __init__(self):
        self.sent = []

    def __call__(self, to, subject, html, text):
        self.sent.append({"to": to, "subject": subject, "html": html, "text": text})
        return {"success": True, "message_id": str(len(self.sent))}


@pytest.fixture
def db():
    """Fresh in-memory database per test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def outbox(sender):
    return NotificationOutbox(sender=sender)


def _add_user(db, **fields) -> User:
    user = User(**fields)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def users(db):
    """Employees and department managers"""
    return {
        "alice": _add_user(db, username="alice", name="Alice Employee", role="Software Engineer",
                           department="Engineering"),
        "bob": _add_user(db, username="bob", name="Bob Employee", role="Accountant",
                         department="Sales"),
        "hana": _add_user(db, username="hana", name="Hana Manager", role="Manager",
                          department="HR", is_manager=True, managed_departments=["HR"]),
        "fred": _add_user(db, username="fred", name="Fred Manager", role="Manager",
                          department="FINANCE", is_manager=True, managed_departments=["FINANCE", "ADMIN"]),
    }


@pytest.fixture
def identities(users):
    return {name: Identity.from_user(user) for name, user in users.items()}


@pytest.fixture
def make_ticket(db):
    """Insert a ticket row directly"""
    def _make(created_by, department=Department.HR, status=TicketStatus.OPEN,
              priority=TicketPriority.MEDIUM, subject="Printer jam", description="Paper stuck", files=None):
        ticket = Ticket(
            subject=subject,
            description=description,
            department=department,
            priority=priority,
            status=status,
            files=files or [],
            created_by=created_by,
        )
        db.add(ticket)
        db.commit()
        db.refresh(ticket)
        return ticket
    return _make


@pytest.fixture
def make_upload(db, storage):
    """Put an object in storage and record who uploaded it"""
    def _make(uploaded_by, name="slip.pdf", file_id=None, ticket_id=None):
        stored = storage.store(b"%PDF", name, "application/pdf", uploaded_by)
        upload = Upload(
            file_id=file_id or f"u{len(storage.objects)}",
            key=stored.key,
            name=name,
            size=stored.size_bytes,
            mimetype="application/pdf",
            uploaded_by=uploaded_by,
            ticket_id=ticket_id,
        )
        db.add(upload)
        db.commit()
        db.refresh(upload)
        return upload
    return _make


@pytest.fixture
def client(db, storage, sender):
    """HTTP client wired to the test database and fakes"""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_outbox] = lambda: NotificationOutbox(sender=sender)
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(users):
    """Authorization header per user name"""
    return {
        name: {"Authorization": f"Bearer {AuthService.create_jwt_token(user.id, user.username)}"}
        for name, user in users.items()
    }
