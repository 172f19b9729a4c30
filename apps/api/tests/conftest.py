"""
Test configuration and fixtures.

Provides:
- A throwaway database per test (tables created and dropped around each test)
- HTTPX AsyncClient against the ASGI app (public and operator variants)
- Envelope builders for intake submissions
"""
import hashlib
import json
import os
import tempfile
import uuid
from typing import AsyncGenerator, Generator

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.orm import Session

# Point the app at a scratch SQLite database before anything imports settings
_TEST_DB_DIR = tempfile.mkdtemp(prefix="intake-tests-")
os.environ["DATABASE_URL"] = os.environ.get(
    "TEST_DATABASE_URL", f"sqlite+pysqlite:///{_TEST_DB_DIR}/intake.db"
)
os.environ["ENV"] = "test"

from intake_api.main import app
from intake_api.core.config import settings
from intake_api.db.base import Base
from intake_api.db.session import engine, SessionLocal


OPERATOR_EMAIL = "operator@example.com"
INTAKE_VERSION = "loggie.intake.v1"


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Fresh schema for every test.

    The app opens its own sessions (requests and background audit writes),
    so tests share the database rather than a single transaction.
    """
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)


# =============================================================================
# Settings Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def intake_settings(monkeypatch):
    """Pin intake settings to known defaults; tests override what they need."""
    monkeypatch.setattr(settings, "ALLOWED_ORIGINS", frozenset())
    monkeypatch.setattr(settings, "ALLOWED_VERSIONS", frozenset({INTAKE_VERSION}))
    monkeypatch.setattr(settings, "MAX_BODY_BYTES", 65536)
    monkeypatch.setattr(settings, "INTAKE_IP_SALT", "")
    monkeypatch.setattr(settings, "INTAKE_HMAC_SECRET", "")
    monkeypatch.setattr(settings, "ADMIN_EMAILS", frozenset())
    monkeypatch.setattr(settings, "ADMIN_UI_ORIGIN", "")
    monkeypatch.setattr(settings, "NOTIFY_WEBHOOK_URL", "")
    monkeypatch.setattr(settings, "TRUST_PROXY_HEADERS", False)
    return settings


# =============================================================================
# Envelope Helpers
# =============================================================================

def _intake_id(seed: str | None = None) -> str:
    """64-char lowercase hex id, like the client's content hash."""
    return hashlib.sha256((seed or uuid.uuid4().hex).encode()).hexdigest()


def _envelope(intake_id: str | None = None, encrypted=None, version: str = INTAKE_VERSION) -> dict:
    return {
        "v": version,
        "id": intake_id or _intake_id(),
        "encrypted": encrypted if encrypted is not None else "ct:" + uuid.uuid4().hex,
    }


def _encode(envelope: dict) -> bytes:
    return json.dumps(envelope, separators=(",", ":")).encode("utf-8")


@pytest.fixture
def make_intake_id():
    return _intake_id


@pytest.fixture
def make_envelope():
    return _envelope


@pytest.fixture
def encode_body():
    return _encode


@pytest.fixture
def operator_email() -> str:
    return OPERATOR_EMAIL


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """
    Create unauthenticated AsyncClient for testing public endpoints.
    """
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as c:
        yield c


@pytest.fixture(scope="function")
async def admin_client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """
    Create AsyncClient carrying the platform-asserted operator identity header.
    """
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={settings.ADMIN_IDENTITY_HEADER: OPERATOR_EMAIL},
    ) as c:
        yield c
