"""
Utility functions for the application.
"""
import math
import time
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

from app.core.exceptions import ValidationError


def utcnow() -> datetime:
    """Naive UTC timestamp; all DateTime columns store naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def generate_sku(prefix: str = "drop") -> str:
    """Timestamp based SKU, e.g. drop-1718031234567"""
    return f"{prefix}-{int(time.time() * 1000)}"


def opt_str(value: Any) -> Optional[str]:
    """Trimmed string, or None for anything blank or not a string."""
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def require_string(value: Any, name: str) -> str:
    result = opt_str(value)
    if result is None:
        raise ValidationError(f"{name} is required", field=name)
    return result


def positive_int_or_default(value: Any, default: int = 1) -> int:
    """Positive integer from an int or numeric string, falling back to ``default``."""
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        n = value
    elif isinstance(value, float) and math.isfinite(value):
        n = int(value)
    elif isinstance(value, str):
        try:
            n = int(value.strip())
        except ValueError:
            return default
    else:
        return default
    return n if n > 0 else default


def optional_positive_int(value: Any, name: str = "quantity") -> Optional[int]:
    if value is None or value == "":
        return None
    n = positive_int_or_default(value, default=0)
    if n <= 0:
        raise ValidationError(f"{name} must be a positive integer", field=name)
    return n


def normalize_price(value: Any, name: str = "price") -> str:
    """Positive decimal price formatted with two places, e.g. 12 -> "12.00"."""
    if value is None or isinstance(value, bool) or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{name} is required", field=name)
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{name} must be a positive number", field=name)
    if not amount.is_finite() or amount <= 0:
        raise ValidationError(f"{name} must be a positive number", field=name)
    return f"{amount.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP):f}"


def optional_price(value: Any, name: str = "price") -> Optional[str]:
    if value is None or value == "":
        return None
    return normalize_price(value, name)
