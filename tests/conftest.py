from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from libs.auth.models import AuthUser
from libs.db.base import Base
from services.commerce_service import models as _commerce_models  # noqa: F401
from services.commerce_service.services import notifications
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class RecordingNotifier:
    """Stands in for the webhook client and keeps every event sent."""

    def __init__(self):
        self.events = []

    async def notify(self, event, *, recipient=None, data=None):
        self.events.append((event, recipient, data or {}))
        return True

    def names(self) -> list[str]:
        return [event for event, _, _ in self.events]


@pytest_asyncio.fixture
async def test_engine():
    """
    A fresh in-memory database per test.
    StaticPool keeps the single connection alive across sessions.
    """
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine, monkeypatch):
    """Session factory bound to the test engine, also used by background tasks."""
    factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    monkeypatch.setattr("libs.db.session.AsyncSessionLocal", factory)
    return factory


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    session = session_factory()
    try:
        yield session
    finally:
        await session.close()


@pytest.fixture(autouse=True)
def notifier(monkeypatch) -> RecordingNotifier:
    recorder = RecordingNotifier()
    monkeypatch.setattr(notifications, "get_notification_client", lambda: recorder)
    return recorder


# ---------------------------------------------------------------------------
# Actors
# ---------------------------------------------------------------------------


@pytest.fixture
def admin_user() -> AuthUser:
    return AuthUser(user_id="admin-1", email="admin@example.com", role="admin")


@pytest.fixture
def customer() -> AuthUser:
    return AuthUser(user_id="customer-1", email="customer@example.com")


@pytest.fixture
def other_customer() -> AuthUser:
    return AuthUser(user_id="customer-2", email="other@example.com")


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------


class ActingAs:
    """Switches the user the test client authenticates as."""

    def __init__(self, user: AuthUser):
        self.user = user

    def __call__(self, user: AuthUser) -> None:
        self.user = user


@pytest.fixture
def acting_as(customer) -> ActingAs:
    return ActingAs(customer)


@pytest_asyncio.fixture
async def client(db_session, acting_as) -> AsyncGenerator[AsyncClient, None]:
    """
    Yield an AsyncClient with the app and overridden DB and auth dependencies.
    """
    from libs.auth.dependencies import get_current_user
    from libs.db.session import get_async_db
    from services.commerce_service.app.main import app

    async def _db():
        yield db_session

    app.dependency_overrides[get_async_db] = _db
    app.dependency_overrides[get_current_user] = lambda: acting_as.user

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
