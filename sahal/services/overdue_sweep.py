"""
Overdue sweep
Suspends cards past their payment date and sends payment reminders
"""

from typing import Dict, Any, Optional
from datetime import datetime, timedelta
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func, and_
import logging

from sahal.core.config import settings
from sahal.models import Card, CardPaymentStatus, CardStatus
from sahal.models.card import OVERDUE_SUSPENSION_VALUES, PAYMENT_OVERDUE
from sahal.services.notification import NotificationService
from sahal.utils.dates import utcnow, days_until

logger = logging.getLogger(__name__)

class SweepSummary(BaseModel):
    """Counts from one sweep run"""
    suspended: int = 0
    reminders_sent: int = 0
    final_reminders_sent: int = 0
    failed: int = 0

class OverdueSweepService:
    """Periodic pass over all cards"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.notifications = NotificationService(db)

    async def run(self, now: Optional[datetime] = None) -> SweepSummary:
        """
        Run all passes

        A failure on one card is logged and counted, the sweep carries on
        with the next one.
        """
        now = now or utcnow()
        summary = SweepSummary()

        await self.suspend_overdue(now, summary)
        await self.send_reminders(now, summary, settings.REMINDER_DAYS, final=False)
        await self.send_reminders(now, summary, settings.FINAL_REMINDER_DAYS, final=True)

        logger.info(
            f"Overdue sweep finished: {summary.suspended} suspended, "
            f"{summary.reminders_sent} reminders, {summary.final_reminders_sent} final reminders, "
            f"{summary.failed} failed"
        )
        return summary

    async def suspend_overdue(self, now: datetime, summary: SweepSummary) -> None:
        """Suspend active cards whose payment date has passed"""
        result = await self.db.execute(
            select(Card.id, Card.card_number, Card.owner_id).where(
                and_(
                    Card.next_payment_due < now,
                    Card.status == CardStatus.ACTIVE
                )
            )
        )
        candidates = result.all()

        for card_id, card_number, owner_id in candidates:
            try:
                # Skips cards paid or changed since they were selected
                updated = await self.db.execute(
                    update(Card)
                    .where(
                        Card.id == card_id,
                        Card.status == CardStatus.ACTIVE,
                        Card.next_payment_due < now
                    )
                    .values(
                        version=Card.version + 1,
                        updated_at=now,
                        **OVERDUE_SUSPENSION_VALUES
                    )
                    .execution_options(synchronize_session=False)
                )
                if updated.rowcount == 1:
                    self.notifications.send_card_suspended(owner_id, card_number, PAYMENT_OVERDUE, now)
                    summary.suspended += 1
                    logger.info(f"Suspended overdue card {card_number}")
                await self.db.commit()
            except Exception as e:
                await self.db.rollback()
                summary.failed += 1
                logger.error(f"Failed to suspend card {card_number}: {e}")

    async def send_reminders(
        self,
        now: datetime,
        summary: SweepSummary,
        window_days: int,
        final: bool = False
    ) -> None:
        """Remind holders whose payment falls due within the window"""
        result = await self.db.execute(
            select(Card).where(
                and_(
                    Card.status == CardStatus.ACTIVE,
                    Card.payment_status == CardPaymentStatus.VALID,
                    Card.is_enabled.is_(True),
                    Card.next_payment_due > now,
                    Card.next_payment_due <= now + timedelta(days=window_days)
                )
            )
        )
        cards = list(result.scalars().all())

        for card in cards:
            try:
                self.notifications.send_payment_reminder(
                    card, days_until(card.next_payment_due, now), final=final
                )
                await self.db.commit()
                if final:
                    summary.final_reminders_sent += 1
                else:
                    summary.reminders_sent += 1
            except Exception as e:
                await self.db.rollback()
                summary.failed += 1
                logger.error(f"Failed to send reminder for card {card.card_number}: {e}")

    async def get_subscription_stats(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Card counts for the admin dashboard"""
        now = now or utcnow()

        async def count(*conditions) -> int:
            stmt = select(func.count(Card.id))
            if conditions:
                stmt = stmt.where(*conditions)
            return await self.db.scalar(stmt) or 0

        return {
            "total_cards": await count(),
            "active_cards": await count(Card.status == CardStatus.ACTIVE),
            "suspended_cards": await count(Card.status == CardStatus.SUSPENDED),
            "valid_payments": await count(Card.payment_status == CardPaymentStatus.VALID),
            "invalid_payments": await count(Card.payment_status == CardPaymentStatus.INVALID),
            "overdue_cards": await count(
                Card.status == CardStatus.ACTIVE, Card.next_payment_due < now
            ),
            "due_soon_cards": await count(
                Card.status == CardStatus.ACTIVE,
                Card.next_payment_due > now,
                Card.next_payment_due <= now + timedelta(days=settings.REMINDER_DAYS)
            ),
        }
