"""
Shared enums and constants used across the application.
"""

from enum import Enum


class DraftStatus(str, Enum):
    """Lifecycle of a draft listing built from photos"""
    PROCESSING = "processing"
    NEEDS_REVIEW = "needs_review"
    READY_TO_PUBLISH = "ready_to_publish"
    PUBLISHING = "publishing"
    PUBLISHED = "published"
    FAILED = "failed"

    @classmethod
    def publishable(cls):
        # States a publish attempt may claim the draft from
        return (cls.NEEDS_REVIEW, cls.READY_TO_PUBLISH, cls.FAILED)

    @classmethod
    def editable(cls):
        # States a seller may set directly
        return (cls.NEEDS_REVIEW, cls.READY_TO_PUBLISH)


class ListingStatus(str, Enum):
    """Listing status values used in both models and schemas"""
    ACTIVE = "active"
    ENDED = "ended"
    UNPUBLISHED = "unpublished"
    PUBLISHED = "published"


class ItemCondition(str, Enum):
    """Inventory API condition enum values"""
    NEW = "NEW"
    USED_EXCELLENT = "USED_EXCELLENT"
    USED_VERY_GOOD = "USED_VERY_GOOD"
    USED_GOOD = "USED_GOOD"
    USED_ACCEPTABLE = "USED_ACCEPTABLE"


class PolicyType(str, Enum):
    PAYMENT = "payment"
    FULFILLMENT = "fulfillment"
    RETURN = "return"

    @property
    def endpoint(self) -> str:
        return f"/sell/account/v1/{self.value}_policy"

    @property
    def collection_key(self) -> str:
        # e.g. "paymentPolicies"
        return f"{self.value}Policies"

    @property
    def id_key(self) -> str:
        # e.g. "paymentPolicyId"
        return f"{self.value}PolicyId"


class Tier(str, Enum):
    A = "A"
    B = "B"
    C = "C"


class Uniqueness(str, Enum):
    STANDARD = "Standard"
    STANDOUT = "Standout"


class Saturation(str, Enum):
    VIBRANT = "Vibrant"
    MUTED = "Muted"


class Surface(str, Enum):
    POLISHED = "Polished"
    ROUGH = "Rough"


EBAY_ACCOUNT_DELETION_TOPIC = "MARKETPLACE_ACCOUNT_DELETION"
CATEGORY_INVALID_ERROR_ID = 25005
