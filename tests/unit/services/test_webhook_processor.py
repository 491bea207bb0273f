# tests/unit/services/test_webhook_processor.py
import pytest

from app.services.webhook_processor import (
    compute_challenge_response,
    endpoint_from_url,
    handle_account_deletion,
    process_notification,
)


def test_challenge_response_known_value():
    response = compute_challenge_response(
        "abc123", "test-verification-token", "https://droplist.test/ebay/webhook"
    )

    assert response == "4f9111c046a5d7edc1a77ba85e7c6cdb803006a3aa2026ee4cd3eb78e5b89e20"


def test_challenge_response_depends_on_argument_order():
    assert compute_challenge_response(
        "test-verification-token", "abc123", "https://droplist.test/ebay/webhook"
    ) != "4f9111c046a5d7edc1a77ba85e7c6cdb803006a3aa2026ee4cd3eb78e5b89e20"


def test_endpoint_from_url_strips_trailing_slash():
    assert endpoint_from_url("https", "droplist.test", "/ebay/webhook/") == "https://droplist.test/ebay/webhook"


@pytest.mark.asyncio
async def test_account_deletion_by_user_id(db_session, store):
    event = {
        "metadata": {"topic": "MARKETPLACE_ACCOUNT_DELETION"},
        "notification": {"data": {"userId": "ebay-user-1", "username": "someone_else"}},
    }

    count = await handle_account_deletion(db_session, event)

    assert count == 1
    assert store.ebay_access_token is None
    assert store.ebay_refresh_token is None
    assert store.ebay_token_expiry is None
    assert store.active_user_id is None
    assert store.is_connected is False


@pytest.mark.asyncio
async def test_account_deletion_by_username(db_session, store):
    count = await handle_account_deletion(db_session, {"data": {"username": "crystal_seller"}})

    assert count == 1
    assert store.ebay_access_token is None


@pytest.mark.asyncio
async def test_account_deletion_without_ids(db_session, store):
    count = await handle_account_deletion(db_session, {"notification": {"data": {}}})

    assert count == 0
    assert store.ebay_access_token == "access-token"


@pytest.mark.asyncio
async def test_unknown_topic_is_ignored(db_session, store):
    await process_notification(db_session, "ITEM_SOLD", {"data": {"userId": "ebay-user-1"}})

    assert store.ebay_access_token == "access-token"
