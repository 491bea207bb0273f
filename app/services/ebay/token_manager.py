"""
Per-store eBay token management.

``ensure_valid`` decides whether a refresh is needed and performs it, but
never persists; ``token_for_store`` is the call-site helper that persists a
changed token pair on the store inside the caller's session.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import StoreNotConnected, TokenRefreshFailed, TokenUnavailable
from app.core.utils import utcnow
from app.models.store import Store
from app.services.ebay.auth import EbayAuthManager

logger = logging.getLogger(__name__)

REFRESH_BUFFER = timedelta(minutes=5)
DEFAULT_EXPIRES_IN = 7200


@dataclass
class TokenResult:
    access_token: str
    refreshed: bool = False
    expires_at: Optional[datetime] = None


class TokenManager:
    """
    Keeps a seller's access token valid:
    - refreshes when any of the token pair/expiry is missing
    - refreshes when the token expires within the next 5 minutes
    """

    def __init__(self, auth_manager: EbayAuthManager):
        self.auth_manager = auth_manager

    @staticmethod
    def needs_refresh(
        access_token: Optional[str],
        refresh_token: Optional[str],
        expiry: Optional[datetime],
        now: Optional[datetime] = None,
    ) -> bool:
        if not access_token or not refresh_token or not expiry:
            return True
        now = now or utcnow()
        return now >= expiry - REFRESH_BUFFER

    async def ensure_valid(
        self,
        access_token: Optional[str],
        refresh_token: Optional[str],
        expiry: Optional[datetime],
        now: Optional[datetime] = None,
    ) -> TokenResult:
        """
        Return a usable access token, refreshing when needed.

        Raises:
            TokenUnavailable: a refresh is needed but there is no refresh token
            TokenRefreshFailed: the refresh exchange was rejected
        """
        if not self.needs_refresh(access_token, refresh_token, expiry, now=now):
            return TokenResult(access_token=access_token)

        if not refresh_token:
            raise TokenUnavailable("No refresh token available")

        token_data = await self.auth_manager.refresh_access_token(refresh_token)
        expires_in = int(token_data.get("expires_in") or DEFAULT_EXPIRES_IN)
        expires_at = (now or utcnow()) + timedelta(seconds=expires_in)
        logger.debug(f"Access token refreshed (expires: {expires_at})")
        return TokenResult(access_token=token_data["access_token"], refreshed=True, expires_at=expires_at)

    async def token_for_store(
        self,
        db: AsyncSession,
        store: Store,
        optimistic: bool = True,
        force_refresh: bool = False,
    ) -> str:
        """
        Valid access token for ``store``, persisting a refreshed token pair.

        With ``optimistic`` set, a failed refresh falls back to the last known
        access token so the remote call surfaces the real error instead of a
        stale expiry estimate failing the request up front.
        """
        if not store.ebay_access_token and not store.ebay_refresh_token:
            raise StoreNotConnected("eBay account not connected")

        try:
            if force_refresh:
                result = await self.ensure_valid(store.ebay_access_token, store.ebay_refresh_token, None)
            else:
                result = await self.ensure_valid(
                    store.ebay_access_token, store.ebay_refresh_token, store.ebay_token_expiry
                )
        except (TokenUnavailable, TokenRefreshFailed) as e:
            if optimistic and store.ebay_access_token and not force_refresh:
                logger.warning(f"Token refresh failed for store {store.id}, continuing with stored token: {e.message}")
                return store.ebay_access_token
            raise

        if result.refreshed:
            store.ebay_access_token = result.access_token
            store.ebay_token_expiry = result.expires_at
            await db.commit()
            logger.info(f"Persisted refreshed token for store {store.id} (expires: {result.expires_at})")

        return result.access_token
