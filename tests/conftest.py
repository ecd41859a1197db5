import os

# Settings are read once at import time, so the test environment is fixed first.
os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("JWT_SECRET", "accessguard-test-signing-secret-0123456789")
os.environ.setdefault("LOG_JSON", "false")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import accessguard.domain.entities  # noqa: F401
from accessguard.core.application import create_application
from accessguard.core.config.settings import settings
from accessguard.infrastructure.database import get_async_db
from tests.factories import create_fake_credential


@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    async with AsyncSession(db_engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
def app(db_session):
    application = create_application(with_lifespan=False)

    async def override_get_async_db():
        yield db_session

    application.dependency_overrides[get_async_db] = override_get_async_db
    yield application
    application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def async_client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def credential_for():
    """Build a signed bearer credential accepted by the configured verifier."""
    return create_fake_credential


@pytest.fixture
def auth_headers(credential_for):
    def _headers(user_id: str, **kwargs) -> dict:
        return {"Authorization": f"Bearer {credential_for(user_id, **kwargs)}"}

    return _headers


@pytest.fixture(autouse=True)
def default_policies(monkeypatch):
    """Every test starts from the shipped policy switches."""
    monkeypatch.setattr(settings, "RATE_LIMITING_ENABLED", True)
    monkeypatch.setattr(settings, "RATE_LIMIT_FAIL_OPEN", True)
    monkeypatch.setattr(settings, "SESSION_FAIL_OPEN", True)
    monkeypatch.setattr(settings, "ENTITLEMENT_ALLOW_ALL_AUTHENTICATED", False)
    monkeypatch.setattr(settings, "ENTITLEMENT_ADMIN_BYPASS", True)
    monkeypatch.setattr(settings, "ENTITLEMENT_FAIL_OPEN", False)
    monkeypatch.setattr(settings, "TRUST_PROXY_HEADERS", True)
