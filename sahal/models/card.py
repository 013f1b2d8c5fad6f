"""
Sahal Card model with its state transitions

The transition methods are pure: they mutate the instance and return any
new history rows, leaving persistence to the card service.
"""

from sqlalchemy import (
    Column, String, Boolean, Integer, Numeric, ForeignKey, Index, DateTime, Text, Uuid, event
)
from sqlalchemy.orm import relationship
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple
import enum
import math
import re
import uuid

from .base import Base, TimestampedModel, UUIDModel, SerializableModel, value_enum
from sahal.core.config import settings
from sahal.core.exceptions import CardCancelledError, ValidationException
from sahal.utils.dates import add_months_clamped, days_until

CARD_NUMBER_LENGTH = 8

PAYMENT_NOT_RECEIVED = "Payment not received"
PAYMENT_OVERDUE = "Payment overdue"

class CardStatus(str, enum.Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"

class CardPaymentStatus(str, enum.Enum):
    VALID = "valid"
    INVALID = "invalid"

class Card(Base, TimestampedModel, UUIDModel, SerializableModel):
    """Membership card, one per customer"""

    __tablename__ = "cards"

    card_number = Column(String(CARD_NUMBER_LENGTH), unique=True, nullable=False, index=True)
    owner_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("customers.id", ondelete="CASCADE"),
        unique=True,
        nullable=False
    )

    # Validity window
    valid_until = Column(DateTime, nullable=False, index=True)
    next_payment_due = Column(DateTime, nullable=False, index=True)
    monthly_fee = Column(Numeric(10, 2), default=Decimal("1.00"), nullable=False)
    last_payment_date = Column(DateTime)
    payment_notes = Column(Text)

    # Status
    payment_status = Column(value_enum(CardPaymentStatus), default=CardPaymentStatus.VALID, nullable=False)
    status = Column(value_enum(CardStatus), default=CardStatus.ACTIVE, nullable=False, index=True)
    is_enabled = Column(Boolean, default=True, nullable=False)
    suspension_reason = Column(String(500))

    # Usage
    total_savings = Column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)
    total_transactions = Column(Integer, default=0, nullable=False)
    last_used_at = Column(DateTime)

    # Optimistic concurrency counter
    version = Column(Integer, nullable=False)

    owner = relationship("Customer", lazy="joined")

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("idx_cards_status_due", "status", "next_payment_due"),
    )

    @staticmethod
    def derive_card_number(member_code: str) -> str:
        """Last eight digits of the owner's member code, zero padded"""
        digits = re.sub(r"\D", "", member_code or "")
        return digits[-CARD_NUMBER_LENGTH:].rjust(CARD_NUMBER_LENGTH, "0")

    @classmethod
    def issue(
        cls,
        owner,
        now: datetime,
        monthly_fee: Optional[Decimal] = None
    ) -> Tuple["Card", "CardRenewal"]:
        """
        Build a new card valid for one month

        Args:
            owner: Customer receiving the card
            now: Issue time
            monthly_fee: Fee per month, defaults to the configured fee

        Returns:
            The card and its initial history entry
        """
        fee = Decimal(str(monthly_fee)) if monthly_fee is not None else settings.DEFAULT_MONTHLY_FEE
        valid_until = add_months_clamped(now, 1)

        card = cls(
            id=uuid.uuid4(),
            card_number=cls.derive_card_number(owner.member_code),
            owner=owner,
            owner_id=owner.id,
            valid_until=valid_until,
            next_payment_due=valid_until,
            monthly_fee=fee,
            last_payment_date=now,
            payment_status=CardPaymentStatus.VALID,
            status=CardStatus.ACTIVE,
            is_enabled=True,
            total_savings=Decimal("0.00"),
            total_transactions=0,
        )
        renewal = CardRenewal(
            card_id=card.id,
            renewed_at=now,
            amount_paid=fee,
            months_added=1,
            valid_until_after=valid_until,
            method="initial",
        )
        return card, renewal

    def _ensure_not_cancelled(self):
        if self.status == CardStatus.CANCELLED:
            raise CardCancelledError(self.card_number)

    def renew_for_duration(
        self,
        amount_paid: Decimal,
        now: datetime,
        method: str = "cash",
        external_reference: Optional[str] = None
    ) -> "CardRenewal":
        """
        Extend validity by one month per whole currency unit paid

        The extension starts from the current expiry while the card is still
        valid, otherwise from now. Amounts below one unit add nothing but are
        still written to the history.

        Raises:
            CardCancelledError: If the card is cancelled
            ValidationException: If the amount buys more than MAX_MONTHS_PER_PAYMENT
        """
        self._ensure_not_cancelled()

        amount = Decimal(str(amount_paid))
        months = max(math.floor(amount), 0)
        if months > settings.MAX_MONTHS_PER_PAYMENT:
            raise ValidationException(
                f"A single payment can cover at most {settings.MAX_MONTHS_PER_PAYMENT} months"
            )

        if months > 0:
            anchor = max(self.valid_until, now)
            self.valid_until = add_months_clamped(anchor, months)
            self.next_payment_due = add_months_clamped(self.valid_until, -1)
            self.payment_status = CardPaymentStatus.VALID
            self.status = CardStatus.ACTIVE
            self.suspension_reason = None
            self.is_enabled = True
            self.last_payment_date = now

        return CardRenewal(
            card_id=self.id,
            renewed_at=now,
            amount_paid=amount,
            months_added=months,
            valid_until_after=self.valid_until,
            method=method,
            external_reference=external_reference,
        )

    def mark_valid(self, now: datetime, notes: Optional[str] = None):
        """Manual override: paid up for one month from now"""
        self._ensure_not_cancelled()

        one_month = add_months_clamped(now, 1)
        self.payment_status = CardPaymentStatus.VALID
        self.status = CardStatus.ACTIVE
        self.is_enabled = True
        self.suspension_reason = None
        self.valid_until = one_month
        self.next_payment_due = one_month
        self.last_payment_date = now
        self.payment_notes = notes or None

    def mark_invalid(self, notes: Optional[str] = None):
        """Manual override: payment not received"""
        self._ensure_not_cancelled()

        self.payment_status = CardPaymentStatus.INVALID
        self.status = CardStatus.SUSPENDED
        self.is_enabled = False
        self.suspension_reason = notes or PAYMENT_NOT_RECEIVED
        self.payment_notes = notes or None

    def suspend(self, reason: str):
        """Disciplinary suspension, payment status untouched"""
        self._ensure_not_cancelled()

        self.is_enabled = False
        self.status = CardStatus.SUSPENDED
        self.suspension_reason = reason

    def reactivate(self):
        """Lift a suspension; an unpaid card stays unusable"""
        self._ensure_not_cancelled()

        self.is_enabled = True
        self.status = CardStatus.ACTIVE
        self.suspension_reason = None

    def cancel(self, reason: Optional[str] = None):
        """Terminal state"""
        self._ensure_not_cancelled()

        self.status = CardStatus.CANCELLED
        self.is_enabled = False
        self.suspension_reason = reason

    def add_savings(self, amount: Decimal, now: datetime):
        """Record a discounted purchase"""
        self.total_savings = (self.total_savings or Decimal("0")) + Decimal(str(amount))
        self.total_transactions = (self.total_transactions or 0) + 1
        self.last_used_at = now

    def is_usable(self, now: datetime) -> bool:
        """Card may be used for discounts"""
        return (
            bool(self.is_enabled)
            and self.status == CardStatus.ACTIVE
            and self.payment_status == CardPaymentStatus.VALID
            and self.valid_until > now
        )

    def days_remaining(self, now: datetime) -> int:
        """Days of validity left, zero when not usable"""
        if not self.is_usable(now):
            return 0
        return days_until(self.valid_until, now)

    def days_until_due(self, now: datetime) -> int:
        """Signed whole days until the next payment, negative when overdue"""
        return math.ceil((self.next_payment_due - now).total_seconds() / 86400)

    def status_text(self, now: datetime) -> str:
        """Human readable status"""
        if self.status == CardStatus.SUSPENDED:
            return "Suspended"
        if self.status == CardStatus.CANCELLED:
            return "Cancelled"
        if self.valid_until <= now:
            return "Expired"
        if self.days_remaining(now) <= settings.EXPIRING_SOON_DAYS:
            return "Expiring Soon"
        return "Active"

    def unusable_reason(self, now: datetime) -> Optional[str]:
        """Why the card cannot be used, None when usable"""
        if self.is_usable(now):
            return None
        if self.payment_status == CardPaymentStatus.INVALID:
            return "Card suspended - payment not received. Please contact admin to reactivate."
        if self.status == CardStatus.SUSPENDED:
            return f"Card suspended: {self.suspension_reason}"
        if self.status == CardStatus.CANCELLED:
            return "Card cancelled"
        if self.valid_until <= now:
            return "Card expired"
        if not self.is_enabled:
            return "Card disabled"
        return "Card is not valid"

    def __repr__(self):
        return f"<Card {self.card_number} {self.status.value if self.status else None}>"

# Values applied by the overdue sweep's conditional update
OVERDUE_SUSPENSION_VALUES = {
    "payment_status": CardPaymentStatus.INVALID,
    "status": CardStatus.SUSPENDED,
    "is_enabled": False,
    "suspension_reason": PAYMENT_OVERDUE,
}

class CardRenewal(Base):
    """Append-only renewal history"""

    __tablename__ = "card_renewals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    card_id = Column(Uuid(as_uuid=True), ForeignKey("cards.id", ondelete="CASCADE"), nullable=False)
    renewed_at = Column(DateTime, nullable=False)
    amount_paid = Column(Numeric(10, 2), nullable=False)
    months_added = Column(Integer, nullable=False)
    valid_until_after = Column(DateTime, nullable=False)
    method = Column(String(30), nullable=False)
    external_reference = Column(String(100))

    __table_args__ = (
        Index("idx_card_renewals_card", "card_id", "renewed_at"),
    )

@event.listens_for(CardRenewal, "before_update")
def _reject_renewal_update(mapper, connection, target):
    raise ValueError("Renewal history entries are immutable")
