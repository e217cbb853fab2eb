"""
Shared fixtures.

Every test gets a fresh in-memory SQLite database (StaticPool keeps the
single connection alive across sessions). Google and the identity
provider are replaced with httpx.MockTransport fakes.
"""

import base64
from datetime import date, datetime, timezone

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from healthbridge.config import Settings
from healthbridge.models import Base, load_all_models
from healthbridge.shared.vault import CredentialVault
from healthbridge.features.consent import ConsentRepository, DAILY_METRICS_INGEST

OWNER_ID = "0b7e3d52-4f0c-4d7a-9a53-0d9a1f4c2b11"
VALID_TOKEN = "valid-session-token"
TEST_ENC_KEY = base64.b64encode(bytes(range(32))).decode("ascii")


# =============================================================================
# Settings
# =============================================================================

@pytest.fixture
def settings() -> Settings:
    """Fully configured settings (no .env)."""
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        auth_user_url="https://auth.example.com/auth/v1/user",
        auth_api_key="anon-key",
        google_fit_client_id="client-id",
        google_fit_client_secret="client-secret",
        google_fit_redirect_url="https://api.example.com/api/v1/google-fit/auth-callback",
        google_fit_state_secret="state-secret",
        google_fit_token_enc_key=TEST_ENC_KEY,
        metrics_timezone="UTC",
    )


@pytest.fixture
def owner_id() -> str:
    return OWNER_ID


@pytest.fixture
def vault(settings) -> CredentialVault:
    return CredentialVault(settings.google_fit_token_enc_key)


# =============================================================================
# Database
# =============================================================================

@pytest.fixture
async def engine():
    load_all_models()
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
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def grant_consent(db):
    """Store an active consent record (daily metrics by default)."""

    async def _grant(owner_id=OWNER_ID, consent=DAILY_METRICS_INGEST, granted=True, **kwargs):
        record = await ConsentRepository(db).set_consent(
            owner_id, consent.scope, consent.purpose, granted=granted, **kwargs
        )
        await db.commit()
        return record

    return _grant


# =============================================================================
# Fake collaborators
# =============================================================================

class FakeGoogle:
    """
    Stand-in for Google's token, revoke and dataset endpoints.

    Queue token responses in `token_responses`; set `aggregate_response`.
    Every request is recorded in `requests`.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.token_responses: list[httpx.Response] = []
        self.aggregate_response = httpx.Response(200, json={"bucket": []})
        self.revoke_response = httpx.Response(200)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/token":
            return self.token_responses.pop(0)
        if path == "/revoke":
            return self.revoke_response
        if path.endswith("dataset:aggregate"):
            return self.aggregate_response
        return httpx.Response(404, text="unexpected request")

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls(self, path_suffix: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith(path_suffix)]


@pytest.fixture
def google() -> FakeGoogle:
    return FakeGoogle()


@pytest.fixture
def identity_transport() -> httpx.MockTransport:
    """Identity provider accepting only VALID_TOKEN."""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.headers.get("Authorization") == f"Bearer {VALID_TOKEN}":
            return httpx.Response(200, json={"id": OWNER_ID, "email": "runner@example.com"})
        return httpx.Response(401, json={"msg": "invalid JWT"})

    return httpx.MockTransport(handler)


# =============================================================================
# Time
# =============================================================================

@pytest.fixture
def now() -> datetime:
    return datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def metric_day() -> date:
    return date(2024, 3, 15)
