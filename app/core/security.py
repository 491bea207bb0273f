"""
Request identity.

Authentication is done by an upstream proxy which forwards the identity
provider's stable user id in ``X-User-Id`` (and optionally ``X-User-Email``).
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.dependencies import get_db
from app.models.user import User


async def get_or_create_user(db: AsyncSession, external_user_id: str, email: Optional[str] = None) -> User:
    result = await db.execute(select(User).where(User.external_user_id == external_user_id))
    user = result.scalar_one_or_none()

    if user is None:
        user = User(external_user_id=external_user_id, email=email)
        db.add(user)
        await db.commit()
        await db.refresh(user)
    elif email and user.email != email:
        user.email = email
        await db.commit()

    return user


async def get_current_user(
    x_user_id: Optional[str] = Header(None),
    x_user_email: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Local user for the caller, created on first sight.
    Usage: user: User = Depends(get_current_user)
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
    return await get_or_create_user(db, x_user_id.strip(), (x_user_email or "").strip() or None)
