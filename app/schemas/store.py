"""
Schemas for store connection and configuration endpoints.
"""

from typing import Any, Optional

from .base import BaseSchema


class StoreRead(BaseSchema):
    id: int
    store_name: Optional[str] = None
    ebay_username: Optional[str] = None
    marketplace_id: Optional[str] = None
    merchant_location_key: Optional[str] = None
    payment_policy_id: Optional[str] = None
    fulfillment_policy_id: Optional[str] = None
    return_policy_id: Optional[str] = None
    is_connected: bool = False


class StoreDefaultsUpdate(BaseSchema):
    marketplace_id: Any = None
    merchant_location_key: Any = None
    payment_policy_id: Any = None
    fulfillment_policy_id: Any = None
    return_policy_id: Any = None


class LocationCreate(BaseSchema):
    merchant_location_key: Any = None
    country: Any = None
    postal_code: Any = None
    phone: Any = None


class ConnectUrl(BaseSchema):
    url: str
