# app/services/listing_store.py
"""
Local mirror of remote eBay offers.

``upsert_by_offer_id`` is an INSERT ... ON CONFLICT (ebay_offer_id) DO UPDATE,
so publishing and syncing the same offer any number of times converges on a
single row, even when the writes race.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import ListingStatus
from app.core.exceptions import NotFoundError
from app.core.utils import utcnow
from app.models.listing import Listing
from app.models.store import Store

logger = logging.getLogger(__name__)

UPSERT_FIELDS = {
    "ebay_listing_id",
    "sku",
    "title",
    "description",
    "price",
    "quantity",
    "status",
    "marketplace_id",
    "category_id",
    "condition",
    "images",
    "listed_at",
}


def _as_number_string(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, dict):
        return _as_number_string(value.get("value"))
    return None


def normalize_remote_offer(offer: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Map one remote offer payload onto Listing fields.

    Missing price / SKU become None rather than errors. Returns None when the
    offer has no id (nothing to key the row on).
    """
    offer_id = offer.get("offerId") or (offer.get("offer") or {}).get("offerId")
    if not offer_id:
        return None

    listing_description = offer.get("listingDescription")
    if isinstance(listing_description, dict):
        title = listing_description.get("title") or listing_description.get("description")
        description = listing_description.get("description")
    else:
        title = None
        description = listing_description if isinstance(listing_description, str) else None

    pricing = offer.get("pricingSummary") or {}
    price = _as_number_string(pricing.get("price")) if isinstance(pricing, dict) else None

    quantity = offer.get("availableQuantity")
    status = offer.get("status") or offer.get("offerStatus") or ListingStatus.ACTIVE.value
    listing = offer.get("listing") or {}

    return {
        "ebay_offer_id": str(offer_id),
        "ebay_listing_id": listing.get("listingId") if isinstance(listing, dict) else None,
        "sku": offer.get("sku") or offer.get("inventoryItemGroupKey") or None,
        "title": title or offer.get("title") or "Untitled",
        "description": description,
        "price": price,
        "quantity": quantity if isinstance(quantity, int) and not isinstance(quantity, bool) else 1,
        "status": str(status).lower(),
        "marketplace_id": offer.get("marketplaceId") or None,
        "category_id": offer.get("categoryId") or None,
    }


class ListingRecordStore:
    """Owns upsert-by-offer-id semantics and status transitions for Listing rows."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _insert(self):
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(Listing)
        if dialect == "sqlite":
            return sqlite.insert(Listing)
        raise NotImplementedError(f"Upsert not supported for dialect {dialect}")

    async def upsert_by_offer_id(self, store_id: int, offer_id: str, fields: Dict[str, Any]) -> Listing:
        """
        Create or update the listing for ``offer_id``; the last write wins.
        Only keys present in ``fields`` are overwritten on conflict.
        """
        values = {k: v for k, v in fields.items() if k in UPSERT_FIELDS}
        now = utcnow()

        stmt = self._insert().values(
            store_id=store_id,
            ebay_offer_id=offer_id,
            created_at=now,
            updated_at=now,
            **values,
        )
        update_set = {key: stmt.excluded[key] for key in values}
        update_set["store_id"] = stmt.excluded.store_id
        update_set["updated_at"] = now
        stmt = stmt.on_conflict_do_update(index_elements=["ebay_offer_id"], set_=update_set)

        await self.db.execute(stmt)
        await self.db.commit()

        result = await self.db.execute(
            select(Listing)
            .where(Listing.ebay_offer_id == offer_id)
            .execution_options(populate_existing=True)
        )
        listing = result.scalar_one()
        logger.debug(f"Upserted listing {listing.id} for offer {offer_id}")
        return listing

    async def find_by_offer_id(self, offer_id: str) -> Optional[Listing]:
        result = await self.db.execute(select(Listing).where(Listing.ebay_offer_id == offer_id))
        return result.scalar_one_or_none()

    async def sync_offers(self, store: Store, offers: Iterable[Dict[str, Any]]) -> Dict[str, int]:
        """
        Upsert every remote offer on a page. Offers without an id, or whose
        payload cannot be read, are skipped without stopping the batch.
        """
        upserted = 0
        skipped = 0

        for offer in offers:
            try:
                fields = normalize_remote_offer(offer) if isinstance(offer, dict) else None
            except (AttributeError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable offer during sync for store {store.id}: {e}")
                fields = None

            if not fields:
                skipped += 1
                continue

            offer_id = fields.pop("ebay_offer_id")
            await self.upsert_by_offer_id(store.id, offer_id, fields)
            upserted += 1

        logger.info(f"Sync for store {store.id}: {upserted} upserted, {skipped} skipped")
        return {"upserted": upserted, "skipped": skipped}

    async def get_for_user(self, listing_id: int, user_id: int) -> Listing:
        result = await self.db.execute(
            select(Listing).join(Store, Listing.store_id == Store.id).where(
                Listing.id == listing_id, Store.user_id == user_id
            )
        )
        listing = result.scalar_one_or_none()
        if listing is None:
            raise NotFoundError("Listing not found")
        return listing

    async def list_for_user(self, user_id: int) -> List[Listing]:
        result = await self.db.execute(
            select(Listing)
            .join(Store, Listing.store_id == Store.id)
            .where(Store.user_id == user_id)
            .order_by(Listing.updated_at.desc())
        )
        return list(result.scalars().all())

    async def mark_ended(self, listing: Listing) -> Listing:
        listing.status = ListingStatus.ENDED.value
        await self.db.commit()
        return listing

    async def mark_published(self, listing: Listing, ebay_listing_id: Optional[str]) -> Listing:
        listing.ebay_listing_id = ebay_listing_id
        listing.status = ListingStatus.ACTIVE.value
        listing.listed_at = utcnow()
        await self.db.commit()
        return listing

    async def apply_price_quantity(
        self, listing: Listing, price: Optional[str] = None, quantity: Optional[int] = None
    ) -> Listing:
        if price is not None:
            listing.price = price
        if quantity is not None:
            listing.quantity = quantity
        await self.db.commit()
        return listing
