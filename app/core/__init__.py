"""
Core module exports.
"""
from .enums import (
    DraftStatus,
    ListingStatus,
    ItemCondition,
    PolicyType,
)

from .exceptions import (
    BaseServiceError,
    ValidationError,
    NotFoundError,
    ConflictingOperation,
    EbayServiceError,
    StoreNotConnected,
    RemoteRequestFailed,
    PublishRejected,
    AnalyzerError,
)

from .utils import (
    utcnow,
    generate_sku,
    normalize_price,
)
