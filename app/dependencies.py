from typing import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.database import get_session
from app.services.analyzer import DraftAnalyzer
from app.services.draft_service import DraftService
from app.services.ebay.auth import EbayAuthManager
from app.services.ebay.client import EbayClient
from app.services.ebay.publisher import PublicationWorkflow
from app.services.ebay.token_manager import TokenManager
from app.services.listing_service import ListingService
from app.services.store_service import StoreService


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions."""
    async with get_session() as session:
        yield session


def get_ebay_auth(settings: Settings = Depends(get_settings)) -> EbayAuthManager:
    return EbayAuthManager(settings)


def get_ebay_client(settings: Settings = Depends(get_settings)) -> EbayClient:
    return EbayClient(sandbox=settings.ebay_sandbox)


def get_token_manager(auth_manager: EbayAuthManager = Depends(get_ebay_auth)) -> TokenManager:
    return TokenManager(auth_manager)


def get_analyzer(settings: Settings = Depends(get_settings)) -> DraftAnalyzer:
    return DraftAnalyzer(settings)


def get_store_service(
    db: AsyncSession = Depends(get_db),
    client: EbayClient = Depends(get_ebay_client),
    auth_manager: EbayAuthManager = Depends(get_ebay_auth),
    settings: Settings = Depends(get_settings),
) -> StoreService:
    return StoreService(db, client, auth_manager, settings)


def get_publisher(
    db: AsyncSession = Depends(get_db),
    client: EbayClient = Depends(get_ebay_client),
    token_manager: TokenManager = Depends(get_token_manager),
    settings: Settings = Depends(get_settings),
) -> PublicationWorkflow:
    return PublicationWorkflow(db, client, token_manager, settings)


def get_listing_service(
    db: AsyncSession = Depends(get_db),
    client: EbayClient = Depends(get_ebay_client),
    token_manager: TokenManager = Depends(get_token_manager),
    settings: Settings = Depends(get_settings),
) -> ListingService:
    return ListingService(db, client, token_manager, settings)


def get_draft_service(
    db: AsyncSession = Depends(get_db),
    analyzer: DraftAnalyzer = Depends(get_analyzer),
    settings: Settings = Depends(get_settings),
) -> DraftService:
    return DraftService(db, analyzer, settings)
