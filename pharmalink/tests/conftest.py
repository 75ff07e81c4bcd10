"""
Test configuration.

In-memory SQLite shared across sessions through a StaticPool, an in-process
stand-in for Redis, and a fresh notification hub and adapter set per test.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from pharmalink.app.main import app
from pharmalink.app.core.config import settings
from pharmalink.app.db.session import get_db, Base
import pharmalink.app.core.redis_client as redis_client_module
from pharmalink.app.models.enums import UserRole
from pharmalink.app.services.adapters.registry import AdapterSet
from pharmalink.app.services.notification_hub import NotificationHub
from pharmalink.tests.helpers import register_user

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine.sync_engine, "connect")
def enforce_foreign_keys(dbapi_conn, connection_record):
    # Orders, deliveries and claims rely on FK and unique constraints
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


class MockRedis:
    """Covers the calls made by token revocation, and remembers each TTL."""

    def __init__(self):
        self.store = {}
        self.ttls = {}
        self.available = True

    def _check(self):
        if not self.available:
            raise ConnectionError("redis unavailable")

    async def setex(self, key, ttl, value):
        self._check()
        self.store[key] = value
        self.ttls[key] = ttl
        return True

    async def exists(self, key):
        self._check()
        return 1 if key in self.store else 0

    async def aclose(self):
        self.store.clear()
        self.ttls.clear()


@pytest.fixture
def redis_client_session():
    return MockRedis()


@pytest.fixture(autouse=True)
def apply_overrides(redis_client_session):
    """Swap in the test database, mock Redis and fresh app collaborators."""
    original_client = redis_client_module.redis_client
    redis_client_module.redis_client = redis_client_session

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.state.notification_hub = NotificationHub()
    app.state.adapters = AdapterSet.from_settings(settings)
    yield

    app.dependency_overrides = {}
    redis_client_module.redis_client = original_client


@pytest.fixture(autouse=True)
async def setup_database():
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    # Tests may each run on their own event loop; never carry the connection over
    await engine.dispose()


@pytest.fixture
async def client():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
def hub(apply_overrides) -> NotificationHub:
    return app.state.notification_hub


@pytest.fixture
def adapters(apply_overrides) -> AdapterSet:
    return app.state.adapters


@pytest.fixture
async def cast(client):
    """One user per role. Pharmacy staff work for pharmacy 1, the rival for pharmacy 2."""
    return {
        "doctor": await register_user(client, UserRole.DOCTOR),
        "patient": await register_user(client, UserRole.PATIENT),
        "pharmacist": await register_user(client, UserRole.PHARMACIST, pharmacy_id=1),
        "dispatcher": await register_user(client, UserRole.DISPATCHER, pharmacy_id=1),
        "driver": await register_user(client, UserRole.DRIVER),
        "other_driver": await register_user(client, UserRole.DRIVER),
        "rival_pharmacist": await register_user(client, UserRole.PHARMACIST, pharmacy_id=2),
    }
