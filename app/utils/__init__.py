"""Utilities package"""

from .helpers import utcnow, ensure_aware, coerce_uuid, short_id, format_amount, format_percentage, days_until
from .pagination import paginate, Page

__all__ = [
    "utcnow",
    "ensure_aware",
    "coerce_uuid",
    "short_id",
    "format_amount",
    "format_percentage",
    "days_until",
    "paginate",
    "Page",
]
