"""Models package initialization"""

from .base import Base
from .marketer import Marketer
from .customer import Customer
from .card import Card, CardRenewal, CardStatus, CardPaymentStatus
from .pending_customer import PendingCustomer, PendingStatus
from .subscription import BillingRecord, BillingStatus, BillingSource
from .notification import Notification, NotificationType
from .admin_log import CardAuditLog
from .sequence import Sequence

# Export all models
__all__ = [
    "Base",
    "Marketer",
    "Customer",
    "Card",
    "CardRenewal",
    "CardStatus",
    "CardPaymentStatus",
    "PendingCustomer",
    "PendingStatus",
    "BillingRecord",
    "BillingStatus",
    "BillingSource",
    "Notification",
    "NotificationType",
    "CardAuditLog",
    "Sequence",
]
