# tests/unit/services/ebay/test_ebay_auth.py
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from unittest.mock import AsyncMock

from app.core.config import Settings
from app.core.exceptions import EbayNotConfigured, TokenRefreshFailed, TokenUnavailable
from app.services.ebay.auth import EbayAuthManager


def make_settings(**overrides):
    values = dict(
        EBAY_CLIENT_ID="test-client-id",
        EBAY_CLIENT_SECRET="test-client-secret",
        APP_URL="https://droplist.test/",
        EBAY_ENVIRONMENT="production",
    )
    values.update(overrides)
    return Settings(**values)


"""
1. Authentication Manager Initialization Tests
"""

def test_ebay_auth_manager_initialization():
    auth_manager = EbayAuthManager(make_settings())

    assert auth_manager.client_id == "test-client-id"
    assert "auth.ebay.com" in auth_manager.auth_url
    assert "sandbox" not in auth_manager.token_url
    assert auth_manager.redirect_uri == "https://droplist.test/stores/connect/callback"


def test_ebay_auth_manager_initialization_sandbox():
    auth_manager = EbayAuthManager(make_settings(EBAY_ENVIRONMENT="sandbox"))

    assert "auth.sandbox.ebay.com" in auth_manager.auth_url
    assert "api.sandbox.ebay.com" in auth_manager.token_url


def test_explicit_redirect_uri_wins():
    auth_manager = EbayAuthManager(make_settings(EBAY_OAUTH_REDIRECT_URI="https://example.com/cb"))

    assert auth_manager.redirect_uri == "https://example.com/cb"


"""
2. Authorization URL
"""

def test_get_authorization_url():
    auth_manager = EbayAuthManager(make_settings())

    url = auth_manager.get_authorization_url(state="abc")
    query = parse_qs(urlparse(url).query)

    assert url.startswith("https://auth.ebay.com/oauth2/authorize?")
    assert query["client_id"] == ["test-client-id"]
    assert query["response_type"] == ["code"]
    assert query["redirect_uri"] == ["https://droplist.test/stores/connect/callback"]
    assert query["state"] == ["abc"]
    assert "https://api.ebay.com/oauth/api_scope/commerce.taxonomy.readonly" in query["scope"][0].split(" ")


def test_get_authorization_url_requires_client_id():
    auth_manager = EbayAuthManager(make_settings(EBAY_CLIENT_ID=""))

    with pytest.raises(EbayNotConfigured) as exc_info:
        auth_manager.get_authorization_url()
    assert exc_info.value.status_code == 503


"""
3. Token exchanges
"""

@pytest.mark.asyncio
async def test_refresh_access_token_success(mocker):
    post = mocker.patch(
        "httpx.AsyncClient.post",
        new=AsyncMock(return_value=httpx.Response(200, json={"access_token": "fresh", "expires_in": 7200})),
    )
    auth_manager = EbayAuthManager(make_settings())

    token_data = await auth_manager.refresh_access_token("refresh-token")

    assert token_data["access_token"] == "fresh"
    data = post.call_args.kwargs["data"]
    assert data["grant_type"] == "refresh_token"
    assert data["refresh_token"] == "refresh-token"
    assert "sell.inventory" in data["scope"]
    assert isinstance(post.call_args.kwargs["auth"], httpx.BasicAuth)


@pytest.mark.asyncio
async def test_refresh_without_client_secret_is_a_service_error(mocker):
    post = mocker.patch("httpx.AsyncClient.post", new=AsyncMock())
    auth_manager = EbayAuthManager(make_settings(EBAY_CLIENT_SECRET=""))

    with pytest.raises(EbayNotConfigured) as exc_info:
        await auth_manager.refresh_access_token("refresh-token")

    assert exc_info.value.to_dict()["error"] == "EBAY_CLIENT_ID and EBAY_CLIENT_SECRET must be set"
    post.assert_not_awaited()


@pytest.mark.asyncio
async def test_refresh_access_token_failure_carries_body(mocker):
    mocker.patch(
        "httpx.AsyncClient.post",
        new=AsyncMock(return_value=httpx.Response(400, text='{"error":"invalid_grant"}')),
    )
    auth_manager = EbayAuthManager(make_settings())

    with pytest.raises(TokenRefreshFailed) as exc_info:
        await auth_manager.refresh_access_token("refresh-token")
    assert "invalid_grant" in exc_info.value.remote_body
    assert exc_info.value.to_dict()["remoteBody"] == '{"error":"invalid_grant"}'


@pytest.mark.asyncio
async def test_refresh_access_token_network_error(mocker):
    mocker.patch("httpx.AsyncClient.post", new=AsyncMock(side_effect=httpx.ConnectError("boom")))
    auth_manager = EbayAuthManager(make_settings())

    with pytest.raises(TokenRefreshFailed):
        await auth_manager.refresh_access_token("refresh-token")


@pytest.mark.asyncio
async def test_refresh_without_refresh_token():
    with pytest.raises(TokenUnavailable):
        await EbayAuthManager(make_settings()).refresh_access_token(None)


@pytest.mark.asyncio
async def test_exchange_code_uses_same_redirect_uri(mocker):
    post = mocker.patch(
        "httpx.AsyncClient.post",
        new=AsyncMock(return_value=httpx.Response(200, json={"access_token": "a", "refresh_token": "r"})),
    )
    auth_manager = EbayAuthManager(make_settings())

    await auth_manager.exchange_code("the-code")

    data = post.call_args.kwargs["data"]
    assert data == {
        "grant_type": "authorization_code",
        "code": "the-code",
        "redirect_uri": "https://droplist.test/stores/connect/callback",
    }
