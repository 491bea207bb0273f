"""
eBay OAuth exchanges for connected seller accounts.

Tokens belong to each seller's Store row; this module only talks to the
identity endpoint (authorization URL, code exchange, refresh exchange) and
never stores anything itself.
"""

import logging
from typing import Dict, Optional
from urllib.parse import urlencode

import httpx

from app.core.config import Settings, get_settings
from app.core.exceptions import EbayNotConfigured, TokenRefreshFailed, TokenUnavailable

logger = logging.getLogger(__name__)

EBAY_SCOPES = [
    "https://api.ebay.com/oauth/api_scope/sell.inventory",
    "https://api.ebay.com/oauth/api_scope/sell.account",
    "https://api.ebay.com/oauth/api_scope/sell.account.readonly",
    "https://api.ebay.com/oauth/api_scope/sell.marketing.readonly",
    "https://api.ebay.com/oauth/api_scope/sell.stores.readonly",
    "https://api.ebay.com/oauth/api_scope/commerce.identity.readonly",
    "https://api.ebay.com/oauth/api_scope/commerce.taxonomy.readonly",
]


class EbayAuthManager:
    """
    Manages eBay OAuth exchanges using the application's client credentials
    """

    def __init__(self, settings: Optional[Settings] = None):
        """Initialize the eBay authentication manager"""
        self.settings = settings or get_settings()
        self.sandbox_mode = self.settings.ebay_sandbox

        self.client_id = self.settings.EBAY_CLIENT_ID
        self.client_secret = self.settings.EBAY_CLIENT_SECRET
        self.redirect_uri = self.settings.oauth_redirect_uri

        if self.sandbox_mode:
            self.auth_url = "https://auth.sandbox.ebay.com/oauth2/authorize"
            self.token_url = "https://api.sandbox.ebay.com/identity/v1/oauth2/token"
        else:
            self.auth_url = "https://auth.ebay.com/oauth2/authorize"
            self.token_url = "https://api.ebay.com/identity/v1/oauth2/token"

        self.scopes = list(EBAY_SCOPES)

        logger.debug(f"EbayAuthManager initialized. Sandbox: {self.sandbox_mode}")

    def _require_credentials(self) -> None:
        if not self.client_id or not self.client_secret:
            raise EbayNotConfigured("EBAY_CLIENT_ID and EBAY_CLIENT_SECRET must be set")

    def get_authorization_url(self, state: Optional[str] = None) -> str:
        """Generate the URL for user consent"""
        if not self.client_id:
            raise EbayNotConfigured("EBAY_CLIENT_ID is not set in environment variables")

        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.scopes),
        }
        if state:
            params["state"] = state

        logger.info("Generated user authorization URL")
        return f"{self.auth_url}?{urlencode(params)}"

    async def _token_request(self, data: Dict[str, str], action: str) -> Dict:
        self._require_credentials()
        auth = httpx.BasicAuth(self.client_id, self.client_secret)

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    self.token_url,
                    data=data,
                    auth=auth,
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
        except httpx.RequestError as e:
            logger.error(f"Network error during token {action}: {str(e)}")
            raise TokenRefreshFailed(f"Network error during token {action}: {str(e)}")

        if response.status_code != 200:
            logger.error(f"Token {action} failed ({response.status_code})")
            raise TokenRefreshFailed(f"Failed to {action} token", remote_body=response.text)

        token_data = response.json()
        if not token_data.get("access_token"):
            raise TokenRefreshFailed(f"No access_token in {action} response", remote_body=response.text)
        return token_data

    async def exchange_code(self, authorization_code: str) -> Dict:
        """
        Exchange an authorization code for an access/refresh token pair.
        The redirect_uri must be identical to the one used for the authorize step.
        """
        token_data = await self._token_request(
            {
                "grant_type": "authorization_code",
                "code": authorization_code,
                "redirect_uri": self.redirect_uri,
            },
            action="exchange",
        )
        logger.info("Exchanged authorization code for eBay tokens")
        return token_data

    async def refresh_access_token(self, refresh_token: Optional[str]) -> Dict:
        """Exchange a refresh token for a new access token (grant_type=refresh_token)."""
        if not refresh_token:
            raise TokenUnavailable("No refresh token available")

        token_data = await self._token_request(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "scope": " ".join(self.scopes),
            },
            action="refresh",
        )
        logger.info("Successfully refreshed access token")
        return token_data
