# app/routes/stores.py
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy import select

from app.core.security import get_current_user
from app.dependencies import get_store_service
from app.models.store import Store
from app.models.user import User
from app.schemas.store import ConnectUrl, StoreRead
from app.services.store_service import StoreService

router = APIRouter(prefix="/stores", tags=["stores"])


@router.get("", response_model=List[StoreRead])
async def list_stores(
    user: User = Depends(get_current_user),
    stores: StoreService = Depends(get_store_service),
):
    result = await stores.db.execute(select(Store).where(Store.user_id == user.id).order_by(Store.id))
    return list(result.scalars().all())


@router.get("/connect", response_model=ConnectUrl)
async def connect_url(
    state: Optional[str] = None,
    user: User = Depends(get_current_user),
    stores: StoreService = Depends(get_store_service),
):
    """eBay consent URL; the seller is sent back to /stores/connect/callback."""
    return {"url": stores.authorization_url(state=state)}


@router.get("/connect/callback", response_model=StoreRead)
async def connect_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    error_description: Optional[str] = None,
    user: User = Depends(get_current_user),
    stores: StoreService = Depends(get_store_service),
):
    code = stores.validate_callback(code, error, error_description)
    return await stores.connect(user, code)
