"""
Notification model for customer communications
Rows are the event sink; delivery happens elsewhere
"""

from sqlalchemy import Column, String, Text, Boolean, ForeignKey, Index, DateTime, JSON, Uuid

from .base import Base, TimestampedModel, UUIDModel

class NotificationType:
    WELCOME = "welcome"
    PAYMENT_REMINDER = "payment_reminder"
    FINAL_PAYMENT_REMINDER = "final_payment_reminder"
    CARD_SUSPENDED = "card_suspended"
    CARD_REACTIVATED = "card_reactivated"
    PAYMENT_RECEIVED = "payment_received"

class Notification(Base, TimestampedModel, UUIDModel):
    """Customer notifications"""

    __tablename__ = "notifications"

    customer_id = Column(Uuid(as_uuid=True), ForeignKey("customers.id", ondelete="CASCADE"), nullable=False)

    # Notification content
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(50), nullable=False)

    # Status
    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime, nullable=True)

    # Metadata
    data = Column(JSON, default=dict)

    # Indexes
    __table_args__ = (
        Index("idx_notifications_customer_unread", "customer_id", "is_read"),
        Index("idx_notifications_type", "type"),
    )
