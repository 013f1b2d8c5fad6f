"""
Notification service
Writes in-app notifications; delivery channels are handled outside this service
"""

from typing import Optional, Dict, Any
from datetime import datetime
import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession
from sahal.models import Card, Notification, NotificationType

logger = logging.getLogger(__name__)

class NotificationService:
    """Service for managing notifications"""

    def __init__(self, db: AsyncSession):
        self.db = db

    def create_notification(
        self,
        customer_id: uuid.UUID,
        title: str,
        message: str,
        type: str,
        data: Optional[Dict[str, Any]] = None
    ) -> Notification:
        """
        Create in-app notification

        The row joins the caller's unit of work and is committed with it.
        """
        notification = Notification(
            customer_id=customer_id,
            title=title,
            message=message,
            type=type,
            data=data or {}
        )
        self.db.add(notification)
        return notification

    def send_welcome(self, customer_id: uuid.UUID, full_name: str, card: Card) -> Notification:
        """Customer was approved and received a card"""
        return self.create_notification(
            customer_id=customer_id,
            title="Welcome to Sahal Card",
            message=f"Hi {full_name}, your Sahal Card {card.card_number} is now active.",
            type=NotificationType.WELCOME,
            data={"card_number": card.card_number}
        )

    def send_payment_reminder(self, card: Card, days_remaining: int, final: bool = False) -> Notification:
        """Payment due within the reminder window"""
        if final:
            title = "Final Payment Reminder"
            message = (
                f"Your Sahal Card payment of ${card.monthly_fee} is due tomorrow. "
                "Pay now to avoid suspension."
            )
            type = NotificationType.FINAL_PAYMENT_REMINDER
        else:
            title = "Payment Reminder"
            message = (
                f"Your Sahal Card payment of ${card.monthly_fee} is due in {days_remaining} days."
            )
            type = NotificationType.PAYMENT_REMINDER

        return self.create_notification(
            customer_id=card.owner_id,
            title=title,
            message=message,
            type=type,
            data={
                "card_number": card.card_number,
                "days_remaining": days_remaining,
                "amount": str(card.monthly_fee),
            }
        )

    def send_card_suspended(
        self,
        customer_id: uuid.UUID,
        card_number: str,
        reason: str,
        suspended_at: Optional[datetime] = None
    ) -> Notification:
        """Card was suspended by an operator or the overdue sweep"""
        return self.create_notification(
            customer_id=customer_id,
            title="Card Suspended",
            message=f"Your Sahal Card has been suspended: {reason}",
            type=NotificationType.CARD_SUSPENDED,
            data={
                "card_number": card_number,
                "reason": reason,
                "suspended_at": suspended_at.isoformat() if suspended_at else None,
            }
        )

    def send_card_reactivated(self, card: Card) -> Notification:
        """Suspension lifted"""
        return self.create_notification(
            customer_id=card.owner_id,
            title="Card Reactivated",
            message="Your Sahal Card has been reactivated.",
            type=NotificationType.CARD_REACTIVATED,
            data={"card_number": card.card_number}
        )

    def send_payment_received(self, card: Card, amount, months_added: int) -> Notification:
        """Payment recorded against the card"""
        return self.create_notification(
            customer_id=card.owner_id,
            title="Payment Received",
            message=(
                f"We received ${amount} for your Sahal Card. "
                f"Valid until {card.valid_until.date().isoformat()}."
            ),
            type=NotificationType.PAYMENT_RECEIVED,
            data={
                "card_number": card.card_number,
                "amount": str(amount),
                "months_added": months_added,
                "valid_until": card.valid_until.isoformat(),
            }
        )
