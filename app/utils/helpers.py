"""
Helper utilities
"""

import math
import uuid
from typing import Any, Optional, Union
from decimal import Decimal, InvalidOperation
from datetime import datetime, timezone

def utcnow() -> datetime:
    """Timezone-aware current UTC time"""
    return datetime.now(timezone.utc)

def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite returns them naive)"""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value

def coerce_uuid(value: Union[str, uuid.UUID]) -> uuid.UUID:
    """
    Convert an identifier to UUID

    Args:
        value: UUID instance or its string form

    Returns:
        UUID

    Raises:
        ValueError: if the string is not a valid UUID
    """
    if isinstance(value, uuid.UUID):
        return value
    return uuid.UUID(str(value))

def short_id(value: Any, length: int = 8, default: str = "N/A") -> str:
    """First `length` characters of an identifier, used in message bodies"""
    if value is None or value == "":
        return default
    return str(value)[:length]

def to_number(value: Any) -> Optional[Decimal]:
    """Parse numbers and numeric strings; None for anything else"""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).replace(",", ""))
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    return number

def format_amount(value: Any, default: str = "0") -> str:
    """
    Format an amount with thousands separators

    Whole amounts render without decimals, fractional ones with
    at most two (e.g. 150000 -> "150,000", 1234.5 -> "1,234.5").
    Non-numeric values fall back to their string form.
    """
    if value is None or value == "":
        return default
    number = to_number(value)
    if number is None:
        return str(value)
    if number == number.to_integral_value():
        return f"{number:,.0f}"
    return f"{number:,.2f}".rstrip("0").rstrip(".")

def format_percentage(rate: Any, default: str = "0.0") -> str:
    """Render a fractional rate (0.125) as a percentage with one decimal (12.5)"""
    number = to_number(rate)
    if number is None:
        return default
    return f"{number * 100:.1f}"

def days_until(moment: datetime, now: Optional[datetime] = None) -> int:
    """Whole days until `moment`, rounded up"""
    now = now or utcnow()
    delta = ensure_aware(moment) - ensure_aware(now)
    return math.ceil(delta.total_seconds() / 86400)
