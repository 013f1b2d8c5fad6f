"""Utilities package"""

from .dates import utcnow, add_months_clamped, days_until
from .validators import normalize_phone, normalize_text, validate_months_purchased
from .pagination import paginate, PaginationParams, PaginatedResponse

__all__ = [
    "utcnow",
    "add_months_clamped",
    "days_until",
    "normalize_phone",
    "normalize_text",
    "validate_months_purchased",
    "paginate",
    "PaginationParams",
    "PaginatedResponse",
]
