# user.py
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship

from app.core.utils import utcnow
from ..database import Base


class User(Base):
    """Local mirror of an identity-provider user, keyed by its stable external id."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    external_user_id = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    stores = relationship("Store", back_populates="user", foreign_keys="Store.user_id")
