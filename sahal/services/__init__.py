"""Services package"""

from .sequence_service import SequenceService
from .notification import NotificationService
from .audit_service import AuditService
from .card_service import CardService
from .recruitment_service import RecruitmentService
from .overdue_sweep import OverdueSweepService, SweepSummary
from .payment_recorder import PaymentRecorder
from .customer_service import CustomerService
from .marketer_service import MarketerService

__all__ = [
    "SequenceService",
    "NotificationService",
    "AuditService",
    "CardService",
    "RecruitmentService",
    "OverdueSweepService",
    "SweepSummary",
    "PaymentRecorder",
    "CustomerService",
    "MarketerService",
]
