"""
Schemas for eBay listing endpoints.
"""

from datetime import datetime
from typing import Any, List, Optional

from .base import BaseSchema, TimestampedSchema


class ListingCreate(BaseSchema):
    title: Any = None
    sku: Any = None
    category_id: Any = None
    price: Any = None
    description: Any = None
    quantity: Any = None
    currency: Any = None
    condition: Any = None
    image_urls: Any = None
    marketplace_id: Any = None
    merchant_location_key: Any = None
    payment_policy_id: Any = None
    fulfillment_policy_id: Any = None
    return_policy_id: Any = None


class ListingUpdate(BaseSchema):
    price: Any = None
    quantity: Any = None
    currency: Any = None


class ListingRead(TimestampedSchema):
    id: int
    store_id: int
    ebay_offer_id: str
    ebay_listing_id: Optional[str] = None
    sku: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    price: Optional[str] = None
    quantity: Optional[int] = None
    status: Optional[str] = None
    marketplace_id: Optional[str] = None
    category_id: Optional[str] = None
    condition: Optional[str] = None
    images: Optional[List[str]] = None
    listed_at: Optional[datetime] = None


class PublishResultRead(BaseSchema):
    ok: bool = True
    listing_id: int
    ebay_offer_id: str
    ebay_listing_id: Optional[str] = None
    sku: str
    category_id: str
    category_retried: bool = False


class SyncResult(BaseSchema):
    ok: bool = True
    upserted: int
    skipped: int
