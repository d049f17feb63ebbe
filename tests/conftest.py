"""
Test configuration and fixtures.
Uses SQLite in-memory for fast tests. Mocks all external services.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["APP_SECRET_KEY"] = "test-app-secret"
os.environ["SENDGRID_API_KEY"] = ""
os.environ["STRIPE_SECRET_KEY"] = ""

import pytest
import httpx
from unittest.mock import AsyncMock, patch
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.dialects.postgresql import JSONB
from dolo.config import get_settings
from dolo.database import Base, get_db
import dolo.models  # noqa: F401  registers tables on Base.metadata


# Register JSONB as JSON for SQLite compatibility in tests
@compiles(JSONB, "sqlite")
def _compile_jsonb_sqlite(type_, compiler, **kw):
    return "JSON"


@pytest.fixture
async def db():
    """In-memory SQLite database for tests."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session
    await engine.dispose()


@pytest.fixture
def settings():
    """The cached Settings instance; tweak fields with monkeypatch.setattr."""
    return get_settings()


@pytest.fixture
def app(db):
    """Fresh application with its own limiter/monitor, wired to the test database."""
    from dolo.main import create_app

    with patch("dolo.main.configure_structured_logging"):
        application = create_app()

    async def _override_db():
        yield db

    application.dependency_overrides[get_db] = _override_db
    return application


@pytest.fixture
async def client(app):
    """Async HTTP client talking to the app in-process."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def mock_send_email():
    """Mock for async send_email - prevents real SendGrid calls in tests."""
    with patch("dolo.services.email._send_via_sendgrid", new_callable=AsyncMock) as mock:
        mock.return_value = "msg_test_123"
        yield mock


@pytest.fixture
def email_configured(monkeypatch, settings):
    monkeypatch.setattr(settings, "sendgrid_api_key", "SG.test_key")
    return settings
