"""
eBay notification webhook processing.

Challenge: eBay verifies the endpoint with GET ?challenge_code=X and expects
hex(sha256(challengeCode + verificationToken + endpoint)), the three strings
concatenated as UTF-8 in exactly that order.

Events: MARKETPLACE_ACCOUNT_DELETION nulls the tokens of the stores connected
to the deleted eBay account. Store rows are kept.
"""

import hashlib
import logging
from typing import Any, Dict, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import EBAY_ACCOUNT_DELETION_TOPIC
from app.models.store import Store

logger = logging.getLogger(__name__)


def endpoint_from_url(scheme: str, host: str, path: str) -> str:
    """scheme://host/path without query string or trailing slash."""
    return f"{scheme}://{host}{path}".rstrip("/")


def compute_challenge_response(challenge_code: str, verification_token: str, endpoint: str) -> str:
    digest = hashlib.sha256()
    digest.update(challenge_code.encode("utf-8"))
    digest.update(verification_token.encode("utf-8"))
    digest.update(endpoint.encode("utf-8"))
    return digest.hexdigest()


def _deletion_data(event: Dict[str, Any]) -> Dict[str, Any]:
    notification = event.get("notification")
    if isinstance(notification, dict) and isinstance(notification.get("data"), dict):
        return notification["data"]
    if isinstance(event.get("data"), dict):
        return event["data"]
    return event


async def handle_account_deletion(db: AsyncSession, event: Dict[str, Any]) -> int:
    """
    Disconnect stores matching the deleted account's userId or username.
    Returns the number of stores disconnected.
    """
    data = _deletion_data(event)
    ebay_user_id: Optional[str] = data.get("userId")
    username: Optional[str] = data.get("username")

    if not ebay_user_id and not username:
        logger.warning("Account deletion notification without userId or username, nothing to do")
        return 0

    conditions = []
    if ebay_user_id:
        conditions.append(Store.ebay_user_id == str(ebay_user_id))
    if username:
        conditions.append(Store.ebay_username == str(username))

    result = await db.execute(select(Store).where(or_(*conditions)))
    stores = result.scalars().all()

    for store in stores:
        store.ebay_access_token = None
        store.ebay_refresh_token = None
        store.ebay_token_expiry = None
        store.active_user_id = None
        logger.info(f"Disconnected store {store.id} ({store.store_name}) due to eBay account deletion")

    await db.commit()
    return len(stores)


async def process_notification(db: AsyncSession, topic: Optional[str], event: Dict[str, Any]) -> None:
    if topic == EBAY_ACCOUNT_DELETION_TOPIC:
        await handle_account_deletion(db, event)
    else:
        logger.info(f"Unhandled eBay event topic: {topic}")
