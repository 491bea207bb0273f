"""
Schema exports for the application.
"""

# Base schemas
from .base import BaseSchema, TimestampedSchema

# Draft schemas
from .draft import DraftCreate, DraftUpdate, DraftRead

# Listing schemas
from .listing import ListingCreate, ListingUpdate, ListingRead, PublishResultRead, SyncResult

# Store schemas
from .store import StoreRead, StoreDefaultsUpdate, LocationCreate, ConnectUrl
