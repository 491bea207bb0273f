from .user import User
from .store import Store
from .listing import Listing
from .draft import DraftListing

# This ensures all models are registered with SQLAlchemy
__all__ = [
    'User',
    'Store',
    'Listing',
    'DraftListing',
]
