# tests/unit/services/ebay/test_token_manager.py
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.core.exceptions import StoreNotConnected, TokenRefreshFailed, TokenUnavailable
from app.core.utils import utcnow
from app.services.ebay.auth import EbayAuthManager
from app.services.ebay.token_manager import TokenManager

NOW = datetime(2026, 1, 15, 12, 0, 0)


@pytest.fixture
def auth_manager():
    manager = MagicMock(spec=EbayAuthManager)
    manager.refresh_access_token = AsyncMock(return_value={"access_token": "new-token", "expires_in": 7200})
    return manager


"""
1. Refresh decision
"""

def test_needs_refresh_when_expiring_within_five_minutes():
    assert TokenManager.needs_refresh("a", "r", NOW + timedelta(minutes=4), now=NOW) is True


def test_needs_refresh_at_exactly_five_minutes():
    assert TokenManager.needs_refresh("a", "r", NOW + timedelta(minutes=5), now=NOW) is True


def test_no_refresh_when_comfortably_valid():
    assert TokenManager.needs_refresh("a", "r", NOW + timedelta(minutes=10), now=NOW) is False


@pytest.mark.parametrize(
    "access,refresh,expiry",
    [(None, "r", NOW + timedelta(hours=1)), ("a", None, NOW + timedelta(hours=1)), ("a", "r", None)],
)
def test_needs_refresh_when_anything_missing(access, refresh, expiry):
    assert TokenManager.needs_refresh(access, refresh, expiry, now=NOW) is True


"""
2. ensure_valid
"""

@pytest.mark.asyncio
async def test_ensure_valid_refreshes_near_expiry(auth_manager):
    manager = TokenManager(auth_manager)

    result = await manager.ensure_valid("old-token", "refresh-token", NOW + timedelta(minutes=4), now=NOW)

    auth_manager.refresh_access_token.assert_awaited_once_with("refresh-token")
    assert result.access_token == "new-token"
    assert result.refreshed is True
    assert result.expires_at == NOW + timedelta(seconds=7200)


@pytest.mark.asyncio
async def test_ensure_valid_keeps_valid_token(auth_manager):
    manager = TokenManager(auth_manager)

    result = await manager.ensure_valid("old-token", "refresh-token", NOW + timedelta(minutes=30), now=NOW)

    auth_manager.refresh_access_token.assert_not_awaited()
    assert result.access_token == "old-token"
    assert result.refreshed is False


@pytest.mark.asyncio
async def test_ensure_valid_without_refresh_token(auth_manager):
    manager = TokenManager(auth_manager)

    with pytest.raises(TokenUnavailable):
        await manager.ensure_valid("old-token", None, NOW + timedelta(minutes=1), now=NOW)
    auth_manager.refresh_access_token.assert_not_awaited()


@pytest.mark.asyncio
async def test_ensure_valid_propagates_refresh_failure(auth_manager):
    auth_manager.refresh_access_token.side_effect = TokenRefreshFailed("Failed to refresh token", remote_body="invalid_grant")
    manager = TokenManager(auth_manager)

    with pytest.raises(TokenRefreshFailed) as exc_info:
        await manager.ensure_valid("old-token", "refresh-token", None, now=NOW)
    assert exc_info.value.remote_body == "invalid_grant"


"""
3. Per-store helper
"""

@pytest.mark.asyncio
async def test_token_for_store_persists_refreshed_token(db_session, store, auth_manager):
    store.ebay_token_expiry = utcnow() + timedelta(minutes=2)
    await db_session.commit()

    token = await TokenManager(auth_manager).token_for_store(db_session, store)

    assert token == "new-token"
    await db_session.refresh(store)
    assert store.ebay_access_token == "new-token"
    assert store.ebay_token_expiry > utcnow() + timedelta(hours=1)


@pytest.mark.asyncio
async def test_token_for_store_falls_back_to_stored_token(db_session, store, auth_manager):
    store.ebay_token_expiry = None
    await db_session.commit()
    auth_manager.refresh_access_token.side_effect = TokenRefreshFailed("Failed to refresh token")

    token = await TokenManager(auth_manager).token_for_store(db_session, store)

    assert token == "access-token"


@pytest.mark.asyncio
async def test_token_for_store_forced_refresh_failure_raises(db_session, store, auth_manager):
    auth_manager.refresh_access_token.side_effect = TokenRefreshFailed("Failed to refresh token")

    with pytest.raises(TokenRefreshFailed):
        await TokenManager(auth_manager).token_for_store(db_session, store, force_refresh=True)


@pytest.mark.asyncio
async def test_token_for_store_forced_refresh(db_session, store, auth_manager):
    token = await TokenManager(auth_manager).token_for_store(db_session, store, force_refresh=True)

    auth_manager.refresh_access_token.assert_awaited_once_with("refresh-token")
    assert token == "new-token"


@pytest.mark.asyncio
async def test_token_for_disconnected_store(db_session, store, auth_manager):
    store.ebay_access_token = None
    store.ebay_refresh_token = None
    await db_session.commit()

    with pytest.raises(StoreNotConnected):
        await TokenManager(auth_manager).token_for_store(db_session, store)
