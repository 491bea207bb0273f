# app/routes/ebay.py
from fastapi import APIRouter, Depends

from app.core.security import get_current_user
from app.dependencies import get_store_service
from app.models.user import User
from app.schemas.store import LocationCreate, StoreDefaultsUpdate
from app.services.store_service import StoreService

router = APIRouter(prefix="/ebay", tags=["ebay"])


@router.post("/defaults")
async def update_defaults(
    body: StoreDefaultsUpdate,
    user: User = Depends(get_current_user),
    stores: StoreService = Depends(get_store_service),
):
    store = await stores.get_active_store(user)
    return {"ok": True, "storeDefaults": await stores.update_defaults(store, body.payload())}


@router.post("/inventory/locations")
async def create_inventory_location(
    body: LocationCreate,
    user: User = Depends(get_current_user),
    stores: StoreService = Depends(get_store_service),
):
    store = await stores.get_active_store(user)
    return await stores.create_location(store, body.payload())


@router.post("/business-policies/opt-in")
async def opt_in_business_policies(
    user: User = Depends(get_current_user),
    stores: StoreService = Depends(get_store_service),
):
    store = await stores.get_active_store(user)
    return await stores.opt_in_business_policies(store)


@router.get("/business-policies/status")
async def business_policies_status(
    user: User = Depends(get_current_user),
    stores: StoreService = Depends(get_store_service),
):
    store = await stores.get_active_store(user)
    return await stores.business_policies_status(store)


@router.get("/diagnostics")
async def diagnostics(
    user: User = Depends(get_current_user),
    stores: StoreService = Depends(get_store_service),
):
    store = await stores.get_active_store(user)
    return await stores.diagnostics(store)
