# app/routes/listings.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from app.core.security import get_current_user
from app.dependencies import get_listing_service, get_store_service
from app.models.user import User
from app.schemas.listing import ListingCreate, ListingRead, ListingUpdate, PublishResultRead, SyncResult
from app.services.listing_service import ListingService
from app.services.store_service import StoreService

router = APIRouter(prefix="/ebay", tags=["listings"])


@router.get("/listings", response_model=List[ListingRead])
async def list_listings(
    user: User = Depends(get_current_user),
    listings: ListingService = Depends(get_listing_service),
):
    return await listings.records.list_for_user(user.id)


@router.post("/listings", response_model=PublishResultRead)
async def create_listing(
    body: ListingCreate,
    user: User = Depends(get_current_user),
    stores: StoreService = Depends(get_store_service),
    listings: ListingService = Depends(get_listing_service),
):
    """Create and publish a listing from explicit fields."""
    store = await stores.get_active_store(user)
    result = await listings.create_listing(store, body.payload())
    return result.to_dict()


@router.post("/listings/{listing_id}/publish", response_model=ListingRead)
async def publish_listing(
    listing_id: int,
    user: User = Depends(get_current_user),
    stores: StoreService = Depends(get_store_service),
    listings: ListingService = Depends(get_listing_service),
):
    listing = await listings.records.get_for_user(listing_id, user.id)
    store = await stores.get_active_store(user, store_id=listing.store_id)
    return await listings.publish_existing(store, listing)


@router.post("/listings/{listing_id}/update", response_model=ListingRead)
async def update_listing(
    listing_id: int,
    body: ListingUpdate,
    user: User = Depends(get_current_user),
    stores: StoreService = Depends(get_store_service),
    listings: ListingService = Depends(get_listing_service),
):
    listing = await listings.records.get_for_user(listing_id, user.id)
    store = await stores.get_active_store(user, store_id=listing.store_id)
    return await listings.update_price_quantity(store, listing, body.payload())


@router.post("/listings/{listing_id}/end", response_model=ListingRead)
async def end_listing(
    listing_id: int,
    user: User = Depends(get_current_user),
    stores: StoreService = Depends(get_store_service),
    listings: ListingService = Depends(get_listing_service),
):
    listing = await listings.records.get_for_user(listing_id, user.id)
    store = await stores.get_active_store(user, store_id=listing.store_id)
    return await listings.end_listing(store, listing)


@router.get("/sync", response_model=SyncResult)
@router.post("/sync", response_model=SyncResult)
async def sync_listings(
    store_id: Optional[int] = Query(None, alias="storeId"),
    user: User = Depends(get_current_user),
    stores: StoreService = Depends(get_store_service),
    listings: ListingService = Depends(get_listing_service),
):
    """Pull offers from eBay and upsert them locally; safe to run repeatedly."""
    store = await stores.get_active_store(user, store_id=store_id)
    return await listings.sync(store)
