# tests/conftest.py
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.config import Settings, get_settings
from app.core.enums import DraftStatus
from app.core.utils import utcnow
from app.database import Base
from app.dependencies import get_db
from app.main import app
from app.models import DraftListing, Store, User
from app.services.ebay.client import EbayClient
from app.services.ebay.token_manager import TokenManager

# In-memory SQLite shared through a single connection
TEST_DATABASE_URL = "sqlite+aiosqlite://"

TINY_PNG = (
    "data:image/png;base64,"
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


@pytest.fixture
def settings():
    """Provide test settings"""
    return Settings(
        DATABASE_URL=TEST_DATABASE_URL,
        APP_URL="https://droplist.test",
        EBAY_ENVIRONMENT="sandbox",
        EBAY_CLIENT_ID="test-client-id",
        EBAY_CLIENT_SECRET="test-client-secret",
        EBAY_VERIFICATION_TOKEN="test-verification-token",
        OPENAI_API_KEY="test-openai-key",
    )


@pytest.fixture(scope="function")
async def test_engine():
    """Create and configure the test database engine (function-scoped)."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Create tables for each test function
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(test_engine):
    """Provide a database session for tests"""
    async_session_local = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with async_session_local() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def user(db_session):
    user = User(external_user_id="user_test_1", email="seller@example.com")
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
async def store(db_session, user):
    """A connected store with a location and all three policies configured"""
    store = Store(
        user_id=user.id,
        active_user_id=user.id,
        store_name="crystal_seller",
        ebay_username="crystal_seller",
        ebay_user_id="ebay-user-1",
        ebay_access_token="access-token",
        ebay_refresh_token="refresh-token",
        ebay_token_expiry=utcnow() + timedelta(hours=2),
        marketplace_id="EBAY_US",
        merchant_location_key="warehouse-1",
        payment_policy_id="pay-1",
        fulfillment_policy_id="ful-1",
        return_policy_id="ret-1",
    )
    db_session.add(store)
    await db_session.commit()
    await db_session.refresh(store)
    return store


@pytest.fixture
async def draft(db_session, store):
    """A reviewed draft ready to publish"""
    draft = DraftListing(
        store_id=store.id,
        status=DraftStatus.NEEDS_REVIEW.value,
        images=[TINY_PNG, TINY_PNG],
        sku="drop-1700000000000",
        marketplace_id="EBAY_US",
        title="Amethyst Cluster Natural Purple Quartz Geode 3in",
        description="<p>Amethyst cluster.</p>",
        category_id="8822",
        condition="USED_GOOD",
        price="24.50",
        quantity=1,
        specifics={"Mineral": "Amethyst"},
    )
    db_session.add(draft)
    await db_session.commit()
    await db_session.refresh(draft)
    return draft


@pytest.fixture
def mock_ebay_client(mocker):
    """Provide a mocked EbayClient whose coroutine methods are AsyncMocks"""
    return mocker.AsyncMock(spec=EbayClient)


@pytest.fixture
def mock_token_manager(mocker):
    manager = mocker.MagicMock(spec=TokenManager)
    manager.token_for_store = AsyncMock(return_value="access-token")
    return manager


@pytest.fixture
def test_client(settings):
    """Provide a test client with overridden settings and a stub DB session"""
    session = AsyncMock(spec=AsyncSession)

    async def override_get_db():
        yield session

    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_db] = override_get_db
    client = TestClient(app)
    client.db_session = session
    yield client
    app.dependency_overrides.clear()
