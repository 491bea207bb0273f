# app/services/listing_service.py
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.core.exceptions import MissingLocation, RemoteRequestFailed, ValidationError
from app.core.utils import (
    normalize_price,
    opt_str,
    optional_positive_int,
    optional_price,
    positive_int_or_default,
    require_string,
)
from app.models.listing import Listing
from app.models.store import Store
from app.services.ebay.client import EbayClient
from app.services.ebay.publisher import ListingInput, PublicationWorkflow, PublishResult
from app.services.ebay.token_manager import TokenManager
from app.services.listing_store import ListingRecordStore

logger = logging.getLogger(__name__)


class ListingService:
    """
    Manual listing operations on the seller's active store: create, publish an
    existing offer, change price/quantity, end, and sync offers from eBay.
    """

    def __init__(
        self,
        db: AsyncSession,
        client: EbayClient,
        token_manager: TokenManager,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.client = client
        self.token_manager = token_manager
        self.settings = settings or get_settings()
        self.records = ListingRecordStore(db)
        self.workflow = PublicationWorkflow(db, client, token_manager, self.settings)

    async def create_listing(self, store: Store, payload: Dict[str, Any]) -> PublishResult:
        """
        Create and publish a listing from explicit fields. Marketplace,
        location and policy overrides fall back to the store defaults and are
        saved as the new defaults.
        """
        title = require_string(payload.get("title"), "title")
        sku = require_string(payload.get("sku"), "sku")
        category_id = require_string(payload.get("categoryId"), "categoryId")
        price = normalize_price(payload.get("price"))

        marketplace_id = (
            opt_str(payload.get("marketplaceId"))
            or store.marketplace_id
            or self.settings.EBAY_DEFAULT_MARKETPLACE_ID
        )
        overrides = {
            "merchantLocationKey": opt_str(payload.get("merchantLocationKey")),
            "paymentPolicyId": opt_str(payload.get("paymentPolicyId")),
            "fulfillmentPolicyId": opt_str(payload.get("fulfillmentPolicyId")),
            "returnPolicyId": opt_str(payload.get("returnPolicyId")),
        }
        if not (overrides["merchantLocationKey"] or store.merchant_location_key):
            raise MissingLocation(
                "merchantLocationKey is required (inventory location / warehouse)",
                store_defaults=store.defaults(),
            )

        image_urls = [u.strip() for u in payload.get("imageUrls") or [] if isinstance(u, str) and u.strip()]
        description = payload.get("description") if isinstance(payload.get("description"), str) else None

        listing_input = ListingInput(
            sku=sku,
            title=title,
            category_id=category_id,
            price=price,
            quantity=positive_int_or_default(payload.get("quantity"), 1),
            marketplace_id=marketplace_id,
            currency=opt_str(payload.get("currency")) or self.settings.EBAY_DEFAULT_CURRENCY,
            description=description,
            condition=opt_str(payload.get("condition")),
            image_urls=image_urls,
        )

        # Persist choices as defaults for next time
        store.marketplace_id = marketplace_id
        if overrides["merchantLocationKey"]:
            store.merchant_location_key = overrides["merchantLocationKey"]
        for key, attr in (
            ("paymentPolicyId", "payment_policy_id"),
            ("fulfillmentPolicyId", "fulfillment_policy_id"),
            ("returnPolicyId", "return_policy_id"),
        ):
            if overrides[key]:
                setattr(store, attr, overrides[key])
        await self.db.commit()

        result = await self.workflow.publish(store, listing_input, allow_category_retry=False, overrides=overrides)
        logger.info(f"Manual listing {result.listing_id} created for SKU {sku}")
        return result

    async def publish_existing(self, store: Store, listing: Listing) -> Listing:
        """Publish the offer already stored on a listing row."""
        token = await self.token_manager.token_for_store(self.db, store)
        response = await self.client.publish_offer(token, listing.ebay_offer_id)
        return await self.records.mark_published(listing, response.get("listingId") or listing.ebay_listing_id)

    async def update_price_quantity(self, store: Store, listing: Listing, payload: Dict[str, Any]) -> Listing:
        price = optional_price(payload.get("price"))
        quantity = optional_positive_int(payload.get("quantity"))
        if price is None and quantity is None:
            raise ValidationError("Provide price and/or quantity")

        token = await self.token_manager.token_for_store(self.db, store)
        await self.client.update_offer_price_quantity(
            token,
            listing.ebay_offer_id,
            price_value=price,
            currency=opt_str(payload.get("currency")) or self.settings.EBAY_DEFAULT_CURRENCY,
            quantity=quantity,
        )
        return await self.records.apply_price_quantity(listing, price=price, quantity=quantity)

    async def end_listing(self, store: Store, listing: Listing) -> Listing:
        token = await self.token_manager.token_for_store(self.db, store)
        await self.client.withdraw_offer(token, listing.ebay_offer_id)
        logger.info(f"Ended listing {listing.id} (offer {listing.ebay_offer_id})")
        return await self.records.mark_ended(listing)

    async def _fetch_offers(self, store: Store) -> List[Dict[str, Any]]:
        token = await self.token_manager.token_for_store(self.db, store)
        try:
            data = await self.client.get_offers(token, limit=200)
        except RemoteRequestFailed as e:
            if not e.is_unauthorized:
                raise
            logger.warning(f"Offer fetch for store {store.id} unauthorized, forcing token refresh")
            token = await self.token_manager.token_for_store(self.db, store, force_refresh=True)
            data = await self.client.get_offers(token, limit=200)

        offers = data.get("offers")
        if offers is None:
            offers = data.get("offerSummaries")
        return offers if isinstance(offers, list) else []

    async def sync(self, store: Store) -> Dict[str, Any]:
        """Pull the store's offers from eBay and upsert them locally by offer id."""
        offers = await self._fetch_offers(store)
        counts = await self.records.sync_offers(store, offers)
        return {"ok": True, **counts}

