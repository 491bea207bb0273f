# app/services/ebay/publisher.py
"""
eBay publication workflow.

Validate -> token -> policies -> inventory item -> offer -> publish -> record,
with one automatic recovery: when eBay rejects the category (errorId 25005)
the workflow looks up a suggested category, creates ONE new offer with it and
publishes that instead.

Remote side effects of the item/offer/publish steps are not rolled back. The
latest created offer id is written onto the draft as soon as it exists so
orphans can be found later; the next attempt for that draft deletes the
leftover offer before creating a new one.
"""

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.core.enums import CATEGORY_INVALID_ERROR_ID, DraftStatus, ItemCondition, ListingStatus, PolicyType
from app.core.exceptions import (
    CategoryLookupUnavailable,
    ConflictingOperation,
    InvalidCategoryNoAlternative,
    MalformedRemoteResponse,
    MissingLocation,
    MissingPolicies,
    NotFoundError,
    PublishRejected,
    RemoteRequestFailed,
    StoreNotConnected,
)
from app.core.utils import generate_sku, normalize_price, positive_int_or_default, require_string, utcnow
from app.models.draft import DraftListing
from app.models.store import Store
from app.services.ebay.client import EbayClient
from app.services.ebay.token_manager import TokenManager
from app.services.listing_store import ListingRecordStore

logger = logging.getLogger(__name__)

POLICY_TYPES = (PolicyType.PAYMENT, PolicyType.FULFILLMENT, PolicyType.RETURN)

TAXONOMY_HINT = (
    "Reconnect your eBay account (the commerce.taxonomy.readonly scope is now requested) "
    "and retry, or choose a leaf categoryId manually."
)


@dataclass
class ListingInput:
    """Everything needed to put one item live, already validated."""
    sku: str
    title: str
    category_id: str
    price: str
    quantity: int = 1
    marketplace_id: str = "EBAY_US"
    currency: str = "USD"
    description: Optional[str] = None
    condition: Optional[str] = None
    image_urls: List[str] = field(default_factory=list)
    aspects: Optional[Dict[str, Any]] = None


@dataclass
class PublishResult:
    listing_id: int
    offer_id: str
    ebay_listing_id: Optional[str]
    sku: str
    category_id: str
    category_retried: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": True,
            "listingId": self.listing_id,
            "ebayOfferId": self.offer_id,
            "ebayListingId": self.ebay_listing_id,
            "sku": self.sku,
            "categoryId": self.category_id,
            "categoryRetried": self.category_retried,
        }


def draft_image_urls(draft: DraftListing, app_url: str, limit: int = 8) -> List[str]:
    """Public URLs eBay can fetch the draft's photos from."""
    base = app_url.rstrip("/")
    count = min(len(draft.images or []), limit)
    return [f"{base}/drafts/{draft.id}/images/{i}" for i in range(count)]


class PublicationWorkflow:
    """
    Orchestrates the multi-step publish sequence for drafts and manual listings.

    The remote client and token manager are injected so the sequence can be
    exercised against doubles.
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

    # -----------------------------------------------------------------
    # Drafts
    # -----------------------------------------------------------------

    async def _load_draft(self, draft_id: int, user_id: int) -> DraftListing:
        result = await self.db.execute(
            select(DraftListing)
            .join(Store, DraftListing.store_id == Store.id)
            .where(DraftListing.id == draft_id, Store.user_id == user_id)
        )
        draft = result.scalar_one_or_none()
        if draft is None:
            raise NotFoundError("Draft not found")
        return draft

    async def claim_draft(self, draft: DraftListing) -> None:
        """
        Move the draft to ``publishing`` only if it is still in a publishable
        state, or its earlier claim has gone stale. Two concurrent publishes of
        the same draft cannot both win.
        """
        publishable = [s.value for s in DraftStatus.publishable()]
        stale_before = utcnow() - timedelta(seconds=self.settings.DRAFT_PUBLISH_CLAIM_TIMEOUT_SECONDS)
        result = await self.db.execute(
            update(DraftListing)
            .where(
                DraftListing.id == draft.id,
                or_(
                    DraftListing.status.in_(publishable),
                    and_(
                        DraftListing.status == DraftStatus.PUBLISHING.value,
                        DraftListing.updated_at < stale_before,
                    ),
                ),
            )
            .values(status=DraftStatus.PUBLISHING.value, error=None, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

        if result.rowcount != 1:
            await self.db.refresh(draft)
            raise ConflictingOperation(
                f"Draft cannot be published while {draft.status}", current_status=draft.status
            )
        await self.db.refresh(draft)

    async def _mark_draft_failed(self, draft: DraftListing, message: str, discard_pending: bool = False) -> None:
        if discard_pending:
            # Every step commits as it goes; only a half-finished statement is lost
            await self.db.rollback()
        draft.status = DraftStatus.FAILED.value
        draft.error = message[:2000]
        await self.db.commit()

    def listing_input_from_draft(self, draft: DraftListing, store: Store) -> ListingInput:
        title = require_string(draft.title, "title")
        category_id = require_string(draft.category_id, "categoryId")
        price = normalize_price(draft.price, "price")
        marketplace_id = store.marketplace_id or draft.marketplace_id or self.settings.EBAY_DEFAULT_MARKETPLACE_ID

        return ListingInput(
            sku=draft.sku or generate_sku(),
            title=title,
            category_id=category_id,
            price=price,
            quantity=positive_int_or_default(draft.quantity, 1),
            marketplace_id=marketplace_id,
            currency=self.settings.EBAY_DEFAULT_CURRENCY,
            description=draft.description or None,
            condition=draft.condition or ItemCondition.USED_GOOD.value,
            image_urls=draft_image_urls(draft, self.settings.APP_URL, self.settings.DRAFT_MAX_IMAGES),
            aspects=draft.specifics if isinstance(draft.specifics, dict) else None,
        )

    async def publish_draft(self, draft_id: int, user_id: int) -> PublishResult:
        """
        Publish a draft owned by ``user_id``.

        Failures after the claim, including cancellation, leave the draft
        ``failed`` with the error message and re-raise. Success leaves it
        ``published`` and linked to its Listing.
        """
        draft = await self._load_draft(draft_id, user_id)
        store = await self.db.get(Store, draft.store_id)
        if store is None or not store.is_connected:
            raise StoreNotConnected("eBay not connected")

        await self.claim_draft(draft)
        logger.info(f"Publishing draft {draft.id} for store {store.id}")

        try:
            listing_input = self.listing_input_from_draft(draft, store)
            if draft.sku != listing_input.sku:
                draft.sku = listing_input.sku
                await self.db.commit()

            result = await self.publish(store, listing_input, draft=draft, allow_category_retry=True)
        except Exception as e:
            message = getattr(e, "message", None) or str(e) or e.__class__.__name__
            logger.error(f"Publishing draft {draft.id} failed: {message}")
            await self._mark_draft_failed(draft, message)
            raise
        except BaseException:
            # Cancelled or shutting down; release the claim before unwinding
            logger.warning(f"Publishing draft {draft.id} was interrupted")
            await self._mark_draft_failed(
                draft, "Publishing was interrupted before it finished", discard_pending=True
            )
            raise

        draft.status = DraftStatus.PUBLISHED.value
        draft.published_listing_id = result.listing_id
        draft.error = None
        await self.db.commit()
        logger.info(f"Draft {draft.id} published as listing {result.listing_id} (offer {result.offer_id})")
        return result

    # -----------------------------------------------------------------
    # Shared sequence
    # -----------------------------------------------------------------

    async def resolve_policies(
        self, token: str, store: Store, marketplace_id: str, overrides: Optional[Dict[str, Optional[str]]] = None
    ) -> Dict[str, str]:
        """
        Payment/fulfillment/return policy ids for an offer.

        Missing ids are discovered from the seller's account (first policy of
        each type) and persisted onto the store; ids already set on the store
        are never overwritten.
        """
        overrides = overrides or {}
        policy_ids: Dict[str, Optional[str]] = {
            p.id_key: overrides.get(p.id_key) or getattr(store, f"{p.value}_policy_id") for p in POLICY_TYPES
        }

        if not all(policy_ids.values()):
            discovered = await self.client.get_policies(token, marketplace_id)
            changed = False
            for p in POLICY_TYPES:
                if policy_ids[p.id_key]:
                    continue
                entries = discovered.get(p.collection_key) or []
                found = entries[0].get(p.id_key) if entries and isinstance(entries[0], dict) else None
                if found:
                    policy_ids[p.id_key] = str(found)
                    setattr(store, f"{p.value}_policy_id", str(found))
                    changed = True
                    logger.info(f"Discovered {p.value} policy {found} for store {store.id}")

            if changed:
                if not store.marketplace_id:
                    store.marketplace_id = marketplace_id
                await self.db.commit()

        missing = {p.value: not policy_ids[p.id_key] for p in POLICY_TYPES}
        if any(missing.values()):
            raise MissingPolicies(
                "Missing eBay policy IDs (payment/fulfillment/return). "
                "Create business policies in Seller Hub, or load them via /ebay/diagnostics.",
                missing=missing,
                store_defaults={**store.defaults(), **policy_ids, "marketplaceId": marketplace_id},
            )
        return policy_ids

    async def _create_offer(
        self,
        token: str,
        listing_input: ListingInput,
        category_id: str,
        location_key: str,
        policy_ids: Dict[str, str],
        draft: Optional[DraftListing],
    ) -> str:
        response = await self.client.create_offer(
            token,
            sku=listing_input.sku,
            marketplace_id=listing_input.marketplace_id,
            merchant_location_key=location_key,
            category_id=category_id,
            title=listing_input.title,
            price_value=listing_input.price,
            currency=listing_input.currency,
            quantity=listing_input.quantity,
            payment_policy_id=policy_ids[PolicyType.PAYMENT.id_key],
            fulfillment_policy_id=policy_ids[PolicyType.FULFILLMENT.id_key],
            return_policy_id=policy_ids[PolicyType.RETURN.id_key],
            description=listing_input.description,
        )
        offer_id = response.get("offerId") if isinstance(response, dict) else None
        if not offer_id:
            raise MalformedRemoteResponse("eBay did not return offerId", response=response)

        offer_id = str(offer_id)
        if draft is not None:
            draft.offer_id = offer_id
            await self.db.commit()
        logger.info(f"Created offer {offer_id} for SKU {listing_input.sku} in category {category_id}")
        return offer_id

    @staticmethod
    def _rejection(error: RemoteRequestFailed) -> Exception:
        if error.code is None:
            return error
        return PublishRejected(
            f"eBay rejected the listing: {error.error_message or error.code}",
            code=error.code,
            remote_message=error.error_message,
        )

    async def _discard_offer(self, token: str, offer_id: str) -> None:
        """Best-effort delete of an offer that never went live."""
        try:
            await self.client.delete_offer(token, offer_id)
            logger.info(f"Deleted abandoned offer {offer_id}")
        except RemoteRequestFailed as e:
            logger.warning(f"Could not delete abandoned offer {offer_id}: {e.message}")

    async def _discard_leftover_offer(self, token: str, draft: Optional[DraftListing]) -> None:
        """
        A draft that failed after offer creation still points at that offer.
        Drop it before the retry creates another one for the same SKU, unless
        it was recorded as a live listing.
        """
        if draft is None or not draft.offer_id:
            return
        leftover = draft.offer_id
        if await self.records.find_by_offer_id(leftover) is not None:
            logger.info(f"Offer {leftover} of draft {draft.id} is already a listing; keeping it")
        else:
            await self._discard_offer(token, leftover)
        draft.offer_id = None
        await self.db.commit()

    async def _recover_category(
        self,
        token: str,
        rejection: RemoteRequestFailed,
        listing_input: ListingInput,
        rejected_offer_id: str,
        location_key: str,
        policy_ids: Dict[str, str],
        draft: Optional[DraftListing],
    ):
        """Retry a 25005 rejection once with eBay's suggested category."""
        try:
            suggestions = await self.client.get_category_suggestions(
                token, listing_input.marketplace_id, listing_input.title
            )
        except RemoteRequestFailed as lookup_error:
            logger.warning(f"Category suggestion lookup failed: {lookup_error.message}")
            raise CategoryLookupUnavailable(
                "eBay rejected the categoryId as invalid and category suggestions are unavailable.",
                ebay_error=rejection.parsed,
                hint=TAXONOMY_HINT,
            )

        suggested = suggestions[0]["categoryId"] if suggestions else None
        if not suggested or suggested == listing_input.category_id:
            raise InvalidCategoryNoAlternative(
                "eBay rejected the categoryId as invalid. Select another leaf category and try again.",
                ebay_error=rejection.parsed,
                suggestions=suggestions,
            )

        logger.info(f"Category {listing_input.category_id} rejected, retrying with suggested {suggested}")
        if draft is not None:
            draft.category_id = suggested
            await self.db.commit()

        await self._discard_offer(token, rejected_offer_id)

        offer_id = await self._create_offer(token, listing_input, suggested, location_key, policy_ids, draft)
        try:
            response = await self.client.publish_offer(token, offer_id)
        except RemoteRequestFailed as e:
            raise self._rejection(e)
        return suggested, offer_id, response

    async def publish(
        self,
        store: Store,
        listing_input: ListingInput,
        draft: Optional[DraftListing] = None,
        allow_category_retry: bool = True,
        overrides: Optional[Dict[str, Optional[str]]] = None,
    ) -> PublishResult:
        """
        Run item -> offer -> publish -> record for one validated listing.

        Raises:
            MissingLocation: no merchant location key (before any remote call)
            MissingPolicies: policy ids unresolved after discovery
            MalformedRemoteResponse: offer creation returned no offerId
            PublishRejected / CategoryLookupUnavailable / InvalidCategoryNoAlternative
        """
        overrides = overrides or {}
        location_key = overrides.get("merchantLocationKey") or store.merchant_location_key
        if not location_key:
            raise MissingLocation(store_defaults=store.defaults())

        token = await self.token_manager.token_for_store(self.db, store)
        policy_ids = await self.resolve_policies(token, store, listing_input.marketplace_id, overrides)

        await self.client.upsert_inventory_item(
            token,
            listing_input.sku,
            title=listing_input.title,
            quantity=listing_input.quantity,
            description=listing_input.description,
            condition=listing_input.condition,
            image_urls=listing_input.image_urls,
            aspects=listing_input.aspects,
        )

        await self._discard_leftover_offer(token, draft)

        category_id = listing_input.category_id
        offer_id = await self._create_offer(token, listing_input, category_id, location_key, policy_ids, draft)

        retried = False
        try:
            response = await self.client.publish_offer(token, offer_id)
        except RemoteRequestFailed as e:
            if not (allow_category_retry and e.code == CATEGORY_INVALID_ERROR_ID):
                raise self._rejection(e)
            category_id, offer_id, response = await self._recover_category(
                token, e, listing_input, offer_id, location_key, policy_ids, draft
            )
            retried = True

        ebay_listing_id = response.get("listingId") if isinstance(response, dict) else None

        listing = await self.records.upsert_by_offer_id(
            store.id,
            offer_id,
            {
                "ebay_listing_id": ebay_listing_id,
                "sku": listing_input.sku,
                "title": listing_input.title,
                "description": listing_input.description,
                "price": listing_input.price,
                "quantity": listing_input.quantity,
                "status": ListingStatus.ACTIVE.value,
                "marketplace_id": listing_input.marketplace_id,
                "category_id": category_id,
                "condition": listing_input.condition,
                "images": list(listing_input.image_urls),
                "listed_at": utcnow(),
            },
        )

        return PublishResult(
            listing_id=listing.id,
            offer_id=offer_id,
            ebay_listing_id=ebay_listing_id,
            sku=listing_input.sku,
            category_id=category_id,
            category_retried=retried,
        )
