# app/routes/drafts.py
from typing import List

from fastapi import APIRouter, Depends, Response

from app.core.config import Settings, get_settings
from app.core.security import get_current_user
from app.dependencies import get_draft_service, get_publisher, get_store_service
from app.models.draft import DraftListing
from app.models.user import User
from app.schemas.draft import DraftCreate, DraftRead, DraftUpdate
from app.schemas.listing import PublishResultRead
from app.services.draft_service import DraftService
from app.services.ebay.publisher import PublicationWorkflow, draft_image_urls
from app.services.store_service import StoreService

router = APIRouter(prefix="/drafts", tags=["drafts"])


def to_read(draft: DraftListing, settings: Settings) -> DraftRead:
    read = DraftRead.model_validate(draft)
    read.image_urls = draft_image_urls(draft, settings.APP_URL, settings.DRAFT_MAX_IMAGES)
    return read


@router.get("", response_model=List[DraftRead])
async def list_drafts(
    user: User = Depends(get_current_user),
    drafts: DraftService = Depends(get_draft_service),
    settings: Settings = Depends(get_settings),
):
    return [to_read(d, settings) for d in await drafts.list_for_user(user)]


@router.post("", response_model=DraftRead)
async def create_draft(
    body: DraftCreate,
    user: User = Depends(get_current_user),
    stores: StoreService = Depends(get_store_service),
    drafts: DraftService = Depends(get_draft_service),
    settings: Settings = Depends(get_settings),
):
    """Create a draft from 1-8 photos (data URLs) and fill it from image analysis."""
    store = await stores.get_active_store(user)
    draft = await drafts.create_draft(store, body.images)
    return to_read(draft, settings)


@router.get("/{draft_id}", response_model=DraftRead)
async def get_draft(
    draft_id: int,
    user: User = Depends(get_current_user),
    drafts: DraftService = Depends(get_draft_service),
    settings: Settings = Depends(get_settings),
):
    return to_read(await drafts.get_for_user(draft_id, user), settings)


@router.post("/{draft_id}/regenerate", response_model=DraftRead)
async def regenerate_draft(
    draft_id: int,
    user: User = Depends(get_current_user),
    drafts: DraftService = Depends(get_draft_service),
    settings: Settings = Depends(get_settings),
):
    draft = await drafts.get_for_user(draft_id, user)
    return to_read(await drafts.regenerate(draft), settings)


@router.post("/{draft_id}/update", response_model=DraftRead)
async def update_draft(
    draft_id: int,
    body: DraftUpdate,
    user: User = Depends(get_current_user),
    drafts: DraftService = Depends(get_draft_service),
    settings: Settings = Depends(get_settings),
):
    draft = await drafts.get_for_user(draft_id, user)
    return to_read(await drafts.update_draft(draft, body.payload()), settings)


@router.post("/{draft_id}/publish", response_model=PublishResultRead)
async def publish_draft(
    draft_id: int,
    user: User = Depends(get_current_user),
    publisher: PublicationWorkflow = Depends(get_publisher),
):
    result = await publisher.publish_draft(draft_id, user.id)
    return result.to_dict()


@router.get("/{draft_id}/images/{index}")
async def draft_image(
    draft_id: int,
    index: int,
    drafts: DraftService = Depends(get_draft_service),
):
    """Public: eBay fetches listing photos from here."""
    content_type, data = await drafts.get_image(draft_id, index)
    return Response(
        content=data,
        media_type=content_type,
        headers={"Cache-Control": "public, max-age=31536000, immutable"},
    )
