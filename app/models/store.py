# store.py
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from app.core.utils import utcnow
from ..database import Base


class Store(Base):
    """
    One connected eBay seller account.

    ``active_user_id`` is set to the owner's id on exactly one store per user
    (the canonical connection used for listing operations) and is NULL on all
    others; the unique constraint makes "one active store per user" enforceable.
    """
    __tablename__ = "stores"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    active_user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=True)

    # Display / identity
    store_name = Column(String)
    ebay_username = Column(String, index=True)
    ebay_user_id = Column(String, index=True)

    # OAuth credentials
    ebay_access_token = Column(Text)
    ebay_refresh_token = Column(Text)
    ebay_token_expiry = Column(DateTime)

    # Listing defaults
    marketplace_id = Column(String, default="EBAY_US")
    payment_policy_id = Column(String)
    fulfillment_policy_id = Column(String)
    return_policy_id = Column(String)
    merchant_location_key = Column(String)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    user = relationship("User", back_populates="stores", foreign_keys=[user_id])

    @property
    def is_connected(self) -> bool:
        return bool(self.ebay_access_token)

    def defaults(self) -> dict:
        return {
            "marketplaceId": self.marketplace_id,
            "merchantLocationKey": self.merchant_location_key,
            "paymentPolicyId": self.payment_policy_id,
            "fulfillmentPolicyId": self.fulfillment_policy_id,
            "returnPolicyId": self.return_policy_id,
        }
