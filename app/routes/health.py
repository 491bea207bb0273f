import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.dependencies import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

REQUIRED_TABLES = ("users", "stores", "listings", "draft_listings")


@router.get("/health")
async def health_check(settings: Settings = Depends(get_settings)):
    return {
        "status": "healthy",
        "service": "droplist",
        "environment": settings.ENVIRONMENT,
        "ebayEnvironment": "sandbox" if settings.ebay_sandbox else "production",
        "ebayConfigured": bool(settings.EBAY_CLIENT_ID and settings.EBAY_CLIENT_SECRET),
        "analyzerConfigured": bool(settings.OPENAI_API_KEY),
    }


@router.get("/health/db")
async def database_health(db: AsyncSession = Depends(get_db)):
    """Connectivity plus a check that migrations have created the droplist tables."""
    try:
        await db.execute(text("SELECT 1"))
        missing = []
        for table in REQUIRED_TABLES:
            try:
                await db.execute(text(f"SELECT 1 FROM {table} LIMIT 1"))
            except SQLAlchemyError:
                await db.rollback()
                missing.append(table)
    except SQLAlchemyError as e:
        logger.error("Database health check failed: %s", e)
        return {"status": "unhealthy", "database": "error", "error": str(e)}

    if missing:
        return {"status": "degraded", "database": "connected", "missingTables": missing}
    return {"status": "healthy", "database": "connected"}
