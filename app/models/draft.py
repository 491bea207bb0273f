# draft.py
from datetime import timedelta

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship

from app.core.enums import DraftStatus
from app.core.utils import utcnow
from ..database import Base


class DraftListing(Base):
    __tablename__ = "draft_listings"

    id = Column(Integer, primary_key=True, index=True)
    store_id = Column(Integer, ForeignKey("stores.id"), index=True, nullable=False)
    status = Column(String, default=DraftStatus.PROCESSING.value, index=True, nullable=False)

    # Photos as data URLs, at most 8, replaced only as a whole
    images = Column(JSON, default=list, nullable=False)

    # Listing fields
    sku = Column(String)
    marketplace_id = Column(String)
    title = Column(String(80))
    description = Column(Text)
    category_id = Column(String)
    condition = Column(String)
    price = Column(String)  # decimal string, e.g. "24.50"
    quantity = Column(Integer, default=1, nullable=False)
    specifics = Column(JSON, default=dict)

    # Analysis output
    ai_notes = Column(JSON, default=list)
    ai_extracted_text = Column(Text)
    ai_raw = Column(JSON)

    # Publication tracking
    error = Column(Text)
    offer_id = Column(String, index=True)  # latest remote offer created for this draft
    published_listing_id = Column(Integer, ForeignKey("listings.id"), nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    store = relationship("Store")
    published_listing = relationship("Listing")

    def publish_in_progress(self, claim_timeout_seconds: int) -> bool:
        """True while a publish claim is held and has not gone stale."""
        if self.status != DraftStatus.PUBLISHING.value:
            return False
        if self.updated_at is None:
            return True
        return utcnow() - self.updated_at < timedelta(seconds=claim_timeout_seconds)
