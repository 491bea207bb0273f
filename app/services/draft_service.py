# app/services/draft_service.py
import base64
import binascii
import logging
import math
import re
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.core.enums import DraftStatus
from app.core.exceptions import ConflictingOperation, NotFoundError, ValidationError
from app.core.utils import generate_sku, opt_str, optional_price
from app.models.draft import DraftListing
from app.models.store import Store
from app.models.user import User
from app.services.analyzer import AnalyzedDraft, DraftAnalyzer
from app.services.pricing import compute_price_from_signals

logger = logging.getLogger(__name__)

DATA_URL_RE = re.compile(r"^data:(image/[a-zA-Z0-9.+-]+);base64,(.*)$", re.DOTALL)

TITLE_MAX = 80


def decode_data_url(data_url: str) -> Tuple[str, bytes]:
    """Split an image data URL into (content type, bytes)."""
    match = DATA_URL_RE.match(data_url or "")
    if not match:
        raise ValueError("Invalid data URL")
    try:
        return match.group(1), base64.b64decode(match.group(2), validate=False)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Invalid base64 image data: {e}")


class DraftService:
    """
    Drafts built from photos: create (analyze + price), regenerate, edit,
    and serve stored images.
    """

    def __init__(self, db: AsyncSession, analyzer: DraftAnalyzer, settings: Optional[Settings] = None):
        self.db = db
        self.analyzer = analyzer
        self.settings = settings or get_settings()

    def validate_images(self, images: Any) -> List[str]:
        max_images = self.settings.DRAFT_MAX_IMAGES
        if not isinstance(images, list) or not 1 <= len(images) <= max_images:
            raise ValidationError(f"Upload between 1 and {max_images} photos", field="images")
        for image in images:
            if not isinstance(image, str) or not image.startswith("data:image/"):
                raise ValidationError("Images must be data URLs (data:image/...)", field="images")
            if len(image) > self.settings.DRAFT_MAX_IMAGE_CHARS:
                raise ValidationError(
                    "One or more images are too large. Please upload smaller photos.", field="images"
                )
        return list(images)

    async def get_for_user(self, draft_id: int, user: User) -> DraftListing:
        result = await self.db.execute(
            select(DraftListing)
            .join(Store, DraftListing.store_id == Store.id)
            .where(DraftListing.id == draft_id, Store.user_id == user.id)
        )
        draft = result.scalar_one_or_none()
        if draft is None:
            raise NotFoundError("Draft not found")
        return draft

    async def list_for_user(self, user: User) -> List[DraftListing]:
        result = await self.db.execute(
            select(DraftListing)
            .join(Store, DraftListing.store_id == Store.id)
            .where(Store.user_id == user.id)
            .order_by(DraftListing.created_at.desc())
        )
        return list(result.scalars().all())

    def _apply_analysis(self, draft: DraftListing, analyzed: AnalyzedDraft) -> None:
        # Prefer the computed range midpoint; keep the analyzer's own price otherwise
        pricing = compute_price_from_signals(analyzed.pricing_signals)
        draft.status = DraftStatus.NEEDS_REVIEW.value
        draft.title = analyzed.title[:TITLE_MAX]
        draft.description = analyzed.description
        draft.category_id = analyzed.category_id
        draft.condition = analyzed.condition
        draft.price = pricing.recommended_price() or analyzed.price
        draft.quantity = analyzed.quantity or 1
        draft.specifics = analyzed.specifics
        draft.ai_extracted_text = analyzed.extracted_text
        draft.ai_raw = {**analyzed.to_dict(), "pricing": pricing.to_dict()}
        draft.ai_notes = analyzed.notes
        draft.error = None

    async def _analyze_into(self, draft: DraftListing, images: List[str]) -> DraftListing:
        try:
            analyzed = await self.analyzer.analyze(images)
        except Exception as e:
            draft.status = DraftStatus.FAILED.value
            draft.error = (getattr(e, "message", None) or str(e))[:2000]
            await self.db.commit()
            logger.error(f"Analysis failed for draft {draft.id}: {draft.error}")
            raise

        self._apply_analysis(draft, analyzed)
        await self.db.commit()
        await self.db.refresh(draft)
        return draft

    async def create_draft(self, store: Store, images: Any) -> DraftListing:
        images = self.validate_images(images)

        # Placeholder row first so a failed analysis is still visible
        draft = DraftListing(
            store_id=store.id,
            status=DraftStatus.PROCESSING.value,
            images=images,
            marketplace_id=store.marketplace_id or self.settings.EBAY_DEFAULT_MARKETPLACE_ID,
            sku=generate_sku(),
            ai_notes=[],
        )
        self.db.add(draft)
        await self.db.commit()
        await self.db.refresh(draft)
        logger.info(f"Created draft {draft.id} with {len(images)} image(s) for store {store.id}")

        return await self._analyze_into(draft, images)

    async def regenerate(self, draft: DraftListing) -> DraftListing:
        """Re-run analysis over the stored images; the SKU is kept."""
        if draft.publish_in_progress(self.settings.DRAFT_PUBLISH_CLAIM_TIMEOUT_SECONDS):
            raise ConflictingOperation("Draft is being published", current_status=draft.status)
        images = self.validate_images(draft.images)

        draft.status = DraftStatus.PROCESSING.value
        draft.error = None
        await self.db.commit()
        return await self._analyze_into(draft, images)

    async def update_draft(self, draft: DraftListing, payload: Dict[str, Any]) -> DraftListing:
        if draft.publish_in_progress(self.settings.DRAFT_PUBLISH_CLAIM_TIMEOUT_SECONDS):
            raise ConflictingOperation("Draft is being published", current_status=draft.status)

        if isinstance(payload.get("title"), str):
            draft.title = payload["title"][:TITLE_MAX]
        if isinstance(payload.get("description"), str):
            draft.description = payload["description"]
        if isinstance(payload.get("categoryId"), str):
            draft.category_id = opt_str(payload["categoryId"])
        if isinstance(payload.get("condition"), str):
            draft.condition = opt_str(payload["condition"])
        if payload.get("price") is not None:
            draft.price = optional_price(payload["price"])

        quantity = payload.get("quantity")
        if isinstance(quantity, (int, float)) and not isinstance(quantity, bool) and math.isfinite(quantity):
            draft.quantity = max(1, math.floor(quantity))

        status = payload.get("status")
        if status is not None:
            allowed = [s.value for s in DraftStatus.editable()]
            if status not in allowed:
                raise ValidationError(f"status must be one of {', '.join(allowed)}", field="status")
            draft.status = status

        specifics = payload.get("specifics")
        if isinstance(specifics, dict):
            draft.specifics = {str(k): str(v) for k, v in specifics.items() if v is not None}

        if "images" in payload:
            draft.images = self.validate_images(payload["images"])

        await self.db.commit()
        await self.db.refresh(draft)
        return draft

    async def get_image(self, draft_id: int, index: int) -> Tuple[str, bytes]:
        """Decoded image ``index`` of a draft. Public: eBay fetches these by URL."""
        draft = await self.db.get(DraftListing, draft_id)
        if draft is None or index < 0 or index >= len(draft.images or []):
            raise NotFoundError("Not found")
        try:
            return decode_data_url(draft.images[index])
        except ValueError:
            raise NotFoundError("Not found")
