"""Card audit log model"""

from sqlalchemy import Column, String, Text, ForeignKey, JSON, Uuid, Index

from .base import Base, TimestampedModel, UUIDModel

class CardAuditLog(Base, TimestampedModel, UUIDModel):
    """Log every operator action on a card"""

    __tablename__ = "card_audit_logs"

    actor_id = Column(Uuid(as_uuid=True), nullable=True)  # None for the scheduler
    action = Column(String(100), nullable=False)  # mark_valid, suspend, manual_payment, etc.
    card_id = Column(Uuid(as_uuid=True), ForeignKey("cards.id", ondelete="CASCADE"), nullable=False)
    old_values = Column(JSON)  # Store previous state
    new_values = Column(JSON)  # Store new state
    notes = Column(Text)

    __table_args__ = (
        Index("idx_card_audit_logs_card", "card_id"),
    )
