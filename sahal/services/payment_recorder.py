"""
Payment recording
Every accepted payment extends the card through the ledger and leaves a
renewal entry plus a billing record behind
"""

from typing import Dict, Any, List, Optional
from datetime import datetime
from decimal import Decimal
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
import logging
import time
import uuid

from sahal.core.database import persistence_retry, commit_or_conflict
from sahal.core.exceptions import (
    BelowMinimumPaymentError, PaymentNotDueException, ValidationException
)
from sahal.models import Card, CardRenewal, CardPaymentStatus, BillingRecord, BillingSource
from sahal.services.audit_service import AuditService
from sahal.services.card_service import CardService, AUDIT_FIELDS
from sahal.services.notification import NotificationService
from sahal.utils.dates import utcnow

logger = logging.getLogger(__name__)

MINIMUM_PAYMENT = Decimal("1")

# Transaction id prefixes when no external reference is supplied
TRANSACTION_PREFIXES = {
    BillingSource.SELF_SERVICE: "SELF",
    BillingSource.MANUAL: "MANUAL",
    BillingSource.FLEXIBLE: "FLEXIBLE",
}

def generate_transaction_id(source: BillingSource) -> str:
    """Prefix plus current epoch milliseconds"""
    return f"{TRANSACTION_PREFIXES[source]}_{int(time.time() * 1000)}"

class PaymentRecorder:
    """Service recording card payments"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.cards = CardService(db)
        self.audit = AuditService(db)
        self.notifications = NotificationService(db)

    def _record(
        self,
        card: Card,
        amount: Decimal,
        source: BillingSource,
        method: str,
        reference: Optional[str],
        now: datetime,
        notes: Optional[str] = None,
        actor_id: Optional[uuid.UUID] = None
    ) -> Dict[str, Any]:
        """Apply the renewal and stage its history rows"""
        old_values = card.snapshot(AUDIT_FIELDS)
        transaction_id = reference or generate_transaction_id(source)

        renewal = card.renew_for_duration(amount, now, method=method, external_reference=transaction_id)
        self.db.add(renewal)

        billing = BillingRecord(
            card_id=card.id,
            customer_id=card.owner_id,
            amount=renewal.amount_paid,
            months_added=renewal.months_added,
            source=source,
            transaction_id=transaction_id,
            payment_method=method,
            billed_at=now,
            notes=notes,
            recorded_by_id=actor_id,
        )
        self.db.add(billing)

        if actor_id is not None:
            self.audit.log_card_action(
                actor_id, f"{source.value}_payment", card.id, notes,
                old_values=old_values, new_values=card.snapshot(AUDIT_FIELDS)
            )

        if renewal.months_added > 0:
            self.notifications.send_payment_received(card, renewal.amount_paid, renewal.months_added)

        return {"card": card, "renewal": renewal, "billing": billing}

    @persistence_retry
    async def renew_self_service(
        self,
        customer_id: uuid.UUID,
        amount_paid: Optional[Decimal] = None,
        method: str = "cash",
        reference: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Customer pays for their own card

        Raises:
            PaymentNotDueException: If the card is paid up and not yet due
        """
        now = now or utcnow()
        card = await self.cards.get_by_owner(customer_id)

        if card.next_payment_due > now and card.payment_status == CardPaymentStatus.VALID:
            raise PaymentNotDueException(card.days_until_due(now))

        amount = Decimal(str(amount_paid)) if amount_paid is not None else card.monthly_fee
        if amount <= 0:
            raise ValidationException("Amount must be positive")

        recorded = self._record(card, amount, BillingSource.SELF_SERVICE, method, reference, now)
        await commit_or_conflict(self.db, "Card")

        logger.info(
            f"Self-service payment of {amount} for card {card.card_number}, "
            f"valid until {card.valid_until}"
        )
        return recorded

    @persistence_retry
    async def record_flexible_payment(
        self,
        card_number: str,
        amount: Decimal,
        method: str = "cash",
        reference: Optional[str] = None,
        notes: Optional[str] = None,
        actor_id: Optional[uuid.UUID] = None,
        now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Operator records a payment covering one month per currency unit

        Amounts under one unit are still written to the history, then
        rejected.

        Raises:
            BelowMinimumPaymentError: If the amount buys no whole month
        """
        now = now or utcnow()
        amount = Decimal(str(amount))
        if amount <= 0:
            raise ValidationException("Amount must be positive")

        card = await self.cards.get_by_number(card_number)
        recorded = self._record(
            card, amount, BillingSource.FLEXIBLE, method, reference, now, notes, actor_id
        )
        await commit_or_conflict(self.db, "Card")

        if amount < MINIMUM_PAYMENT:
            logger.warning(f"Flexible payment of {amount} for card {card_number} below minimum")
            raise BelowMinimumPaymentError()

        logger.info(
            f"Flexible payment of {amount} for card {card_number}: "
            f"{recorded['renewal'].months_added} months, valid until {card.valid_until}"
        )
        return recorded

    @persistence_retry
    async def record_manual_payment(
        self,
        card_number: str,
        amount: Optional[Decimal] = None,
        method: str = "cash",
        reference: Optional[str] = None,
        notes: Optional[str] = None,
        actor_id: Optional[uuid.UUID] = None,
        now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """Operator records a payment, one month's fee unless stated"""
        now = now or utcnow()
        card = await self.cards.get_by_number(card_number)

        amount = Decimal(str(amount)) if amount is not None else card.monthly_fee
        if amount <= 0:
            raise ValidationException("Amount must be positive")

        recorded = self._record(
            card, amount, BillingSource.MANUAL, method, reference, now, notes, actor_id
        )
        await commit_or_conflict(self.db, "Card")

        logger.info(f"Manual payment of {amount} recorded for card {card_number}")
        return recorded

    async def get_payment_history(self, card_id: uuid.UUID, limit: int = 50) -> List[CardRenewal]:
        """Renewal history, newest first"""
        result = await self.db.execute(
            select(CardRenewal)
            .where(CardRenewal.card_id == card_id)
            .order_by(CardRenewal.renewed_at.desc(), CardRenewal.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_billing_records(self, card_id: uuid.UUID, limit: int = 50) -> List[BillingRecord]:
        result = await self.db.execute(
            select(BillingRecord)
            .where(BillingRecord.card_id == card_id)
            .order_by(BillingRecord.billed_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
