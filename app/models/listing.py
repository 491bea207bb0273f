# listing.py
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship

from app.core.enums import ListingStatus
from app.core.utils import utcnow
from ..database import Base


class Listing(Base):
    """Local mirror of a remote eBay offer. ``ebay_offer_id`` is the natural upsert key."""
    __tablename__ = "listings"

    id = Column(Integer, primary_key=True, index=True)
    store_id = Column(Integer, ForeignKey("stores.id"), index=True, nullable=False)

    ebay_offer_id = Column(String, unique=True, index=True, nullable=False)
    ebay_listing_id = Column(String, nullable=True)  # null until actually live
    sku = Column(String, index=True)

    title = Column(String)
    description = Column(Text)
    price = Column(String)  # decimal string
    quantity = Column(Integer)
    status = Column(String, default=ListingStatus.ACTIVE.value, index=True)
    marketplace_id = Column(String)
    category_id = Column(String)
    condition = Column(String)
    images = Column(JSON, default=list)

    listed_at = Column(DateTime)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    store = relationship("Store")
