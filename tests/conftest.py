"""
Shared fixtures.

Each test gets its own in-memory SQLite database, a low-cost bcrypt hasher and
a mailer that records messages instead of sending them.

Run with: PYTHONPATH=. uv run pytest tests -v
"""

import os
import smtplib

# Settings are read at import time; pin them before the app is imported
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-that-is-long-enough-for-hs256"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ["SMTP_HOST"] = ""
os.environ["CLIENT_URL"] = "http://client.test"

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Optional

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from api.apps.auth import models as _auth_models  # noqa: F401
from api.apps.stores import models as _store_models  # noqa: F401
from api.apps.auth.models import User, AuthProvider
from api.apps.auth.permissions import Role
from api.core.dependencies import get_password_hasher, get_token_issuer, get_email_service
from api.core.email import EmailService
from api.db.base_model import Base
from api.db.session import get_session
from api.utils.security import CredentialHasher, TokenIssuer
from helpers import STRONG_PASSWORD

TEST_SECRET = os.environ["JWT_SECRET_KEY"]


@dataclass
class SentEmail:
    to: str
    template: str
    context: dict[str, Any]


class RecordingMailer(EmailService):
    """Captures every message; never touches the network."""

    def __init__(self):
        super().__init__(client_url="http://client.test", app_name="Stockavoo")
        self.sent: list[SentEmail] = []

    async def send(self, to: str, template: str, **context: Any) -> bool:
        self.render(to, template, **context)  # templates must render
        self.sent.append(SentEmail(to=to, template=template, context=context))
        return True

    def last(self, template: str, to: Optional[str] = None) -> SentEmail:
        for email in reversed(self.sent):
            if email.template == template and (to is None or email.to == to):
                return email
        raise AssertionError(f"No '{template}' email sent to {to or 'anyone'}")

    def token_for(self, template: str, to: Optional[str] = None) -> str:
        return self.last(template, to).context["token"]


# ── Infrastructure ────────────────────────────────────────────────────────────

@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def hasher() -> CredentialHasher:
    return CredentialHasher(rounds=4)


@pytest.fixture
def issuer() -> TokenIssuer:
    return TokenIssuer(secret_key=TEST_SECRET, lifetime=timedelta(days=7))


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
async def client(session_factory, hasher, issuer, mailer):
    async def _session_override():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _session_override
    app.dependency_overrides[get_password_hasher] = lambda: hasher
    app.dependency_overrides[get_token_issuer] = lambda: issuer
    app.dependency_overrides[get_email_service] = lambda: mailer

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def dead_smtp(client, monkeypatch):
    """Swap the recording mailer for a real one whose relay refuses every connection."""

    def refuse(*args, **kwargs):
        raise smtplib.SMTPConnectError(421, "unavailable")

    monkeypatch.setattr(smtplib, "SMTP", refuse)
    mailer = EmailService(host="smtp.invalid", client_url="http://client.test")
    app.dependency_overrides[get_email_service] = lambda: mailer
    return mailer


# ── Accounts ──────────────────────────────────────────────────────────────────

@pytest.fixture
def make_user(session_factory, hasher, issuer):
    """Insert an account directly and return (user, session token)."""

    async def _make(
        email: str,
        role: Role = Role.OWNER,
        password: Optional[str] = STRONG_PASSWORD,
        created_by=None,
        is_verified: bool = True,
        is_active: bool = True,
        full_name: str = "Test User",
    ) -> tuple[User, str]:
        async with session_factory() as session:
            user = User(
                email=email,
                full_name=full_name,
                phone_number="+2348000000000",
                hashed_password=hasher.hash_password(password) if password else None,
                role=role,
                created_by=created_by,
                is_verified=is_verified,
                is_active=is_active,
                agreed_to_terms=True,
                auth_provider=AuthProvider.LOCAL,
            )
            session.add(user)
            await session.commit()
            await session.refresh(user)
        return user, issuer.issue(user.id)

    return _make


@pytest.fixture
async def owner(make_user):
    """A verified owner: (user, token)."""
    return await make_user("owner@x.com", role=Role.OWNER)


@pytest.fixture
def load_user(session_factory):
    """Fresh read of a user row, bypassing any request session."""

    async def _load(user_id) -> Optional[User]:
        async with session_factory() as session:
            return await User.get_by_id(session, user_id)

    return _load
