"""
Card ledger service
Persists card transitions together with their history, audit and notifications
"""

from typing import Dict, Any, Optional
from datetime import datetime
from decimal import Decimal
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from sqlalchemy import select, func, and_
import logging
import uuid

from sahal.core.database import persistence_retry, commit_or_conflict
from sahal.core.exceptions import (
    NotFoundException, DuplicateCardError, DuplicateCardNumberError
)
from sahal.models import Card, CardRenewal, CardPaymentStatus, CardStatus, Customer
from sahal.services.audit_service import AuditService
from sahal.services.notification import NotificationService
from sahal.utils.dates import utcnow
from sahal.utils.pagination import paginate

logger = logging.getLogger(__name__)

# Fields captured in audit entries
AUDIT_FIELDS = (
    "payment_status", "status", "is_enabled", "suspension_reason",
    "valid_until", "next_payment_due",
)

class CardService:
    """Service for the card ledger"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)
        self.notifications = NotificationService(db)

    async def get_by_number(self, card_number: str) -> Card:
        """Get card by its number"""
        card = await self.db.scalar(select(Card).where(Card.card_number == card_number))
        if not card:
            raise NotFoundException("Sahal Card not found")
        return card

    async def get_by_owner(self, customer_id: uuid.UUID) -> Card:
        """Get the card of a customer"""
        card = await self.db.scalar(select(Card).where(Card.owner_id == customer_id))
        if not card:
            raise NotFoundException("No Sahal Card found for this customer")
        return card

    async def create_card(
        self,
        owner: Customer,
        monthly_fee: Optional[Decimal] = None,
        now: Optional[datetime] = None
    ) -> Card:
        """
        Issue a card for a customer within the caller's unit of work

        Args:
            owner: Card holder, must already be flushed
            monthly_fee: Fee per month
            now: Issue time

        Returns:
            The new card, flushed but not committed

        Raises:
            DuplicateCardError: If the owner already has a card
            DuplicateCardNumberError: If the derived number is taken
        """
        now = now or utcnow()

        existing = await self.db.scalar(select(Card.id).where(Card.owner_id == owner.id))
        if existing:
            raise DuplicateCardError()

        card, renewal = Card.issue(owner, now, monthly_fee)

        taken = await self.db.scalar(select(Card.id).where(Card.card_number == card.card_number))
        if taken:
            raise DuplicateCardNumberError(card.card_number)

        self.db.add(card)

        try:
            await self.db.flush()
        except IntegrityError as e:
            # Lost a race with another issuer
            logger.warning(f"Card creation conflict for owner {owner.id}: {e.orig}")
            if "card_number" in str(e.orig):
                raise DuplicateCardNumberError(card.card_number) from e
            raise DuplicateCardError() from e

        self.db.add(renewal)
        await self.db.flush()

        logger.info(f"Issued card {card.card_number} to customer {owner.id}")
        return card

    @persistence_retry
    async def mark_valid(
        self,
        card_number: str,
        actor_id: Optional[uuid.UUID] = None,
        notes: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Card:
        """Operator confirms payment for one month from now"""
        now = now or utcnow()
        card = await self.get_by_number(card_number)

        old_values = card.snapshot(AUDIT_FIELDS)
        card.mark_valid(now, notes)
        self.audit.log_card_action(
            actor_id, "mark_valid", card.id, notes,
            old_values=old_values, new_values=card.snapshot(AUDIT_FIELDS)
        )

        await commit_or_conflict(self.db, "Card")
        logger.info(f"Card {card_number} marked valid by {actor_id}")
        return card

    @persistence_retry
    async def mark_invalid(
        self,
        card_number: str,
        actor_id: Optional[uuid.UUID] = None,
        notes: Optional[str] = None
    ) -> Card:
        """Operator records missing payment"""
        card = await self.get_by_number(card_number)

        old_values = card.snapshot(AUDIT_FIELDS)
        card.mark_invalid(notes)
        self.audit.log_card_action(
            actor_id, "mark_invalid", card.id, notes,
            old_values=old_values, new_values=card.snapshot(AUDIT_FIELDS)
        )

        await commit_or_conflict(self.db, "Card")
        logger.info(f"Card {card_number} marked invalid by {actor_id}")
        return card

    @persistence_retry
    async def suspend(
        self,
        card_number: str,
        reason: str,
        actor_id: Optional[uuid.UUID] = None
    ) -> Card:
        """Disciplinary suspension"""
        card = await self.get_by_number(card_number)

        old_values = card.snapshot(AUDIT_FIELDS)
        card.suspend(reason)
        self.audit.log_card_action(
            actor_id, "suspend", card.id, reason,
            old_values=old_values, new_values=card.snapshot(AUDIT_FIELDS)
        )
        self.notifications.send_card_suspended(card.owner_id, card.card_number, reason, utcnow())

        await commit_or_conflict(self.db, "Card")
        logger.info(f"Card {card_number} suspended: {reason}")
        return card

    @persistence_retry
    async def reactivate(
        self,
        card_number: str,
        actor_id: Optional[uuid.UUID] = None
    ) -> Card:
        """Lift a suspension"""
        card = await self.get_by_number(card_number)

        old_values = card.snapshot(AUDIT_FIELDS)
        card.reactivate()
        self.audit.log_card_action(
            actor_id, "reactivate", card.id,
            old_values=old_values, new_values=card.snapshot(AUDIT_FIELDS)
        )
        self.notifications.send_card_reactivated(card)

        await commit_or_conflict(self.db, "Card")
        logger.info(f"Card {card_number} reactivated")
        return card

    @persistence_retry
    async def cancel(
        self,
        card_number: str,
        reason: Optional[str] = None,
        actor_id: Optional[uuid.UUID] = None
    ) -> Card:
        """Cancel a card permanently"""
        card = await self.get_by_number(card_number)

        old_values = card.snapshot(AUDIT_FIELDS)
        card.cancel(reason)
        self.audit.log_card_action(
            actor_id, "cancel", card.id, reason,
            old_values=old_values, new_values=card.snapshot(AUDIT_FIELDS)
        )

        await commit_or_conflict(self.db, "Card")
        logger.info(f"Card {card_number} cancelled")
        return card

    @persistence_retry
    async def add_savings(self, card_number: str, amount: Decimal) -> Card:
        """Record a discounted purchase made with the card"""
        card = await self.get_by_number(card_number)
        card.add_savings(amount, utcnow())
        await commit_or_conflict(self.db, "Card")
        return card

    async def is_card_usable(self, card_number: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Check whether a card can be used for discounts

        Returns:
            Usability flag with the reason, remaining days and payment details
        """
        now = now or utcnow()
        card = await self.get_by_number(card_number)

        usable = card.is_usable(now)
        reason = card.unusable_reason(now)

        if usable and card.owner is not None and not card.owner.is_active:
            usable = False
            reason = "Customer account is inactive"

        return {
            "card_number": card.card_number,
            "usable": usable,
            "reason": reason,
            "days_remaining": card.days_remaining(now) if usable else 0,
            "status_text": card.status_text(now),
            "payment_status": card.payment_status.value,
            "next_payment_due": card.next_payment_due,
            "monthly_fee": card.monthly_fee,
        }

    async def get_card_stats(self, customer_id: uuid.UUID, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Usage and validity figures for the holder's dashboard"""
        now = now or utcnow()
        card = await self.get_by_owner(customer_id)

        renewal_count = await self.db.scalar(
            select(func.count(CardRenewal.id)).where(CardRenewal.card_id == card.id)
        )

        return {
            "card_number": card.card_number,
            "total_savings": card.total_savings,
            "total_transactions": card.total_transactions,
            "days_remaining": card.days_remaining(now),
            "is_usable": card.is_usable(now),
            "status_text": card.status_text(now),
            "valid_until": card.valid_until,
            "next_payment_due": card.next_payment_due,
            "last_used_at": card.last_used_at,
            "renewal_count": renewal_count or 0,
        }

    async def list_cards(
        self,
        payment_status: Optional[CardPaymentStatus] = None,
        page: int = 1,
        size: int = 50,
        now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """Admin listing, soonest due first"""
        now = now or utcnow()
        query = select(Card).order_by(Card.next_payment_due.asc())
        if payment_status:
            query = query.where(Card.payment_status == payment_status)

        page_data = await paginate(self.db, query, page, size)
        page_data["items"] = [
            {
                "card": card,
                "days_until_due": card.days_until_due(now),
                "is_overdue": card.next_payment_due < now,
            }
            for card in page_data["items"]
        ]
        return page_data

    async def get_payment_summary(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Counts by payment state"""
        now = now or utcnow()

        total = await self.db.scalar(select(func.count(Card.id))) or 0
        valid = await self.db.scalar(
            select(func.count(Card.id)).where(Card.payment_status == CardPaymentStatus.VALID)
        ) or 0
        invalid = await self.db.scalar(
            select(func.count(Card.id)).where(Card.payment_status == CardPaymentStatus.INVALID)
        ) or 0
        overdue = await self.db.scalar(
            select(func.count(Card.id)).where(
                and_(
                    Card.next_payment_due < now,
                    Card.status == CardStatus.ACTIVE
                )
            )
        ) or 0

        return {
            "total_cards": total,
            "valid_payments": valid,
            "invalid_payments": invalid,
            "overdue_payments": overdue,
            "payment_rate": round(valid / total * 100, 2) if total else 0.0,
        }
