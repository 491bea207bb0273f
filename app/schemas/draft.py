"""
Schemas for draft listing endpoints.

Request fields are typed ``Any``; the service layer validates them and
rejects bad input with the usual 400 error body.
"""

from typing import Any, Dict, List, Optional

from .base import BaseSchema, TimestampedSchema


class DraftCreate(BaseSchema):
    images: Any = None


class DraftUpdate(BaseSchema):
    title: Any = None
    description: Any = None
    category_id: Any = None
    condition: Any = None
    price: Any = None
    quantity: Any = None
    status: Any = None
    specifics: Any = None
    images: Any = None


class DraftRead(TimestampedSchema):
    id: int
    store_id: int
    status: str
    sku: Optional[str] = None
    marketplace_id: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    category_id: Optional[str] = None
    condition: Optional[str] = None
    price: Optional[str] = None
    quantity: int = 1
    specifics: Optional[Dict[str, Any]] = None
    ai_notes: Optional[List[Any]] = None
    ai_extracted_text: Optional[str] = None
    error: Optional[str] = None
    offer_id: Optional[str] = None
    published_listing_id: Optional[int] = None
    image_urls: List[str] = []
