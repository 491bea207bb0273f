# app/services/store_service.py
import asyncio
import logging
from datetime import timedelta
from typing import Any, Dict, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.core.exceptions import NotFoundError, RemoteRequestFailed, StoreNotConnected, ValidationError
from app.core.utils import opt_str, require_string, utcnow
from app.models.store import Store
from app.models.user import User
from app.services.ebay.auth import EbayAuthManager
from app.services.ebay.client import EbayClient
from app.services.ebay.token_manager import DEFAULT_EXPIRES_IN, TokenManager

logger = logging.getLogger(__name__)


class StoreService:
    """
    Seller account connection and per-store eBay configuration
    (defaults, inventory locations, business policy program, diagnostics).
    """

    def __init__(
        self,
        db: AsyncSession,
        client: EbayClient,
        auth_manager: EbayAuthManager,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.client = client
        self.auth_manager = auth_manager
        self.token_manager = TokenManager(auth_manager)
        self.settings = settings or get_settings()

    # -----------------------------------------------------------------
    # Lookup
    # -----------------------------------------------------------------

    async def get_active_store(self, user: User, store_id: Optional[int] = None) -> Store:
        """
        The user's canonical connected store, or a specific store of theirs
        when ``store_id`` is given.
        """
        query = select(Store).where(Store.user_id == user.id)
        if store_id is not None:
            query = query.where(Store.id == store_id)
        else:
            query = query.where(Store.active_user_id == user.id)

        result = await self.db.execute(query)
        store = result.scalar_one_or_none()
        if store is None:
            if store_id is not None:
                raise NotFoundError("Store not found")
            raise StoreNotConnected("eBay account not connected")
        if not store.is_connected:
            raise StoreNotConnected("eBay account not connected")
        return store

    async def token(self, store: Store) -> str:
        return await self.token_manager.token_for_store(self.db, store)

    # -----------------------------------------------------------------
    # OAuth connection
    # -----------------------------------------------------------------

    def authorization_url(self, state: Optional[str] = None) -> str:
        return self.auth_manager.get_authorization_url(state=state)

    async def _best_effort(self, name: str, call) -> Dict[str, Any]:
        try:
            return await call
        except RemoteRequestFailed as e:
            logger.warning(f"Could not load eBay {name} during connect: {e.message}")
            return {}

    async def connect(self, user: User, code: str) -> Store:
        """
        Exchange the OAuth code, create the Store and make it the user's
        canonical store (the flag is cleared on their previous stores first).
        """
        code = require_string(code, "code")
        token_data = await self.auth_manager.exchange_code(code)
        access_token = token_data["access_token"]
        expires_in = int(token_data.get("expires_in") or DEFAULT_EXPIRES_IN)

        identity = await self._best_effort("identity", self.client.get_identity(access_token))
        account = await self._best_effort("account", self.client.get_account(access_token))

        username = identity.get("username") or account.get("username")
        store = Store(
            user_id=user.id,
            store_name=username or "eBay Store",
            ebay_username=username,
            ebay_user_id=identity.get("userId"),
            ebay_access_token=access_token,
            ebay_refresh_token=token_data.get("refresh_token"),
            ebay_token_expiry=utcnow() + timedelta(seconds=expires_in),
            marketplace_id=self.settings.EBAY_DEFAULT_MARKETPLACE_ID,
        )

        await self.db.execute(
            update(Store).where(Store.active_user_id == user.id).values(active_user_id=None)
        )
        await self.db.flush()
        store.active_user_id = user.id
        self.db.add(store)
        await self.db.commit()
        await self.db.refresh(store)

        logger.info(f"Connected eBay account {username or '(unknown)'} as store {store.id} for user {user.id}")
        return store

    # -----------------------------------------------------------------
    # Defaults & locations
    # -----------------------------------------------------------------

    async def update_defaults(self, store: Store, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Set any of marketplace/policy defaults; blank values leave the current choice alone."""
        for key, attr in (
            ("marketplaceId", "marketplace_id"),
            ("paymentPolicyId", "payment_policy_id"),
            ("fulfillmentPolicyId", "fulfillment_policy_id"),
            ("returnPolicyId", "return_policy_id"),
            ("merchantLocationKey", "merchant_location_key"),
        ):
            value = opt_str(payload.get(key))
            if value:
                setattr(store, attr, value)
        await self.db.commit()
        return store.defaults()

    async def create_location(self, store: Store, payload: Dict[str, Any]) -> Dict[str, Any]:
        key = require_string(payload.get("merchantLocationKey"), "merchantLocationKey")
        country = require_string(payload.get("country"), "country")
        postal_code = require_string(payload.get("postalCode"), "postalCode")
        phone = require_string(payload.get("phone"), "phone")

        token = await self.token(store)
        await self.client.create_inventory_location(token, key, country.upper(), postal_code, phone)

        store.merchant_location_key = key
        await self.db.commit()
        logger.info(f"Created inventory location {key} for store {store.id}")
        return {"ok": True, "merchantLocationKey": key}

    # -----------------------------------------------------------------
    # Business policies program
    # -----------------------------------------------------------------

    async def opt_in_business_policies(self, store: Store) -> Dict[str, Any]:
        token = await self.token(store)
        try:
            await self.client.opt_in_to_program(token)
        except RemoteRequestFailed as e:
            # Already opted in
            if e.http_status != 409:
                raise
        return {"ok": True}

    async def business_policies_status(self, store: Store) -> Dict[str, Any]:
        token = await self.token(store)
        data = await self.client.get_opted_in_programs(token)
        programs = data.get("programs") or []
        opted_in = any(
            isinstance(p, dict) and p.get("programType") == "SELLING_POLICY_MANAGEMENT" for p in programs
        )
        return {"hasBusinessPolicies": opted_in, "programs": programs}

    # -----------------------------------------------------------------
    # Diagnostics
    # -----------------------------------------------------------------

    async def diagnostics(self, store: Store) -> Dict[str, Any]:
        """Everything needed to tell the seller what is still missing before they can list."""
        token = await self.token(store)
        marketplace_id = store.marketplace_id or self.settings.EBAY_DEFAULT_MARKETPLACE_ID

        identity, account, policies, locations = await asyncio.gather(
            self.client.get_identity(token),
            self.client.get_account(token),
            self.client.get_policies(token, marketplace_id),
            self.client.get_inventory_locations(token),
            return_exceptions=True,
        )

        def captured(value):
            if isinstance(value, RemoteRequestFailed):
                return value.to_dict()
            if isinstance(value, BaseException):
                raise value
            return value

        identity = captured(identity)
        account = captured(account)
        policies = captured(policies)
        locations = captured(locations)

        location_list = locations.get("locations") or [] if isinstance(locations, dict) else []
        defaults = store.defaults()
        return {
            "store": {"id": store.id, "name": store.store_name, "ebayUsername": store.ebay_username},
            "identity": identity,
            "account": account,
            "policies": policies,
            "locations": locations,
            "storedDefaults": defaults,
            "nextRequirements": {
                "needsLocation": not defaults["merchantLocationKey"] and not location_list,
                "needsPaymentPolicy": not defaults["paymentPolicyId"]
                and not (policies.get("paymentPolicies") if isinstance(policies, dict) else None),
                "needsFulfillmentPolicy": not defaults["fulfillmentPolicyId"]
                and not (policies.get("fulfillmentPolicies") if isinstance(policies, dict) else None),
                "needsReturnPolicy": not defaults["returnPolicyId"]
                and not (policies.get("returnPolicies") if isinstance(policies, dict) else None),
            },
        }

    def validate_callback(self, code: Optional[str], error: Optional[str], error_description: Optional[str]) -> str:
        if error:
            raise ValidationError(f"eBay authorization failed: {error_description or error}", field="error")
        if not code:
            raise ValidationError("Missing authorization code", field="code")
        return code
