import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.core.utils import utcnow
from app.dependencies import get_db
from app.services.webhook_processor import compute_challenge_response, endpoint_from_url, process_notification

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhooks"])


@router.get("/ebay/webhook")
async def ebay_webhook_challenge(
    request: Request,
    challenge_code: Optional[str] = None,
    settings: Settings = Depends(get_settings),
):
    """eBay endpoint verification (GET ?challenge_code=...)."""
    token = settings.EBAY_VERIFICATION_TOKEN

    if not challenge_code:
        return {
            "message": "eBay webhook endpoint is active",
            "timestamp": utcnow().isoformat(),
            "verificationToken": "Set" if token else "Not set",
        }

    if not token:
        logger.error("EBAY_VERIFICATION_TOKEN is not set")
        return JSONResponse(status_code=500, content={"error": "Verification token not configured"})

    endpoint = settings.EBAY_WEBHOOK_ENDPOINT.strip().rstrip("/") or endpoint_from_url(
        request.url.scheme, request.url.netloc, request.url.path
    )
    logger.info(f"eBay challenge for endpoint {endpoint} (token length {len(token)})")
    return {"challengeResponse": compute_challenge_response(challenge_code, token, endpoint)}


@router.post("/ebay/webhook")
async def ebay_webhook_event(request: Request, db: AsyncSession = Depends(get_db)):
    """
    eBay event notifications. Always acknowledged with 200 so eBay does not
    keep redelivering, even when processing fails.
    """
    topic = request.headers.get("x-ebay-event-topic")
    body = await request.body()
    logger.info(f"eBay webhook received (topic={topic}, {len(body)} bytes)")

    try:
        event = json.loads(body or b"{}")
    except ValueError:
        logger.error("eBay webhook body is not valid JSON")
        return {"received": True, "error": "Invalid JSON"}
    if not isinstance(event, dict):
        event = {}

    try:
        await process_notification(db, topic, event)
    except Exception as e:
        logger.exception(f"Error processing eBay webhook: {e}")
        await db.rollback()
        return {"received": True, "error": str(e)}

    return {"received": True}
