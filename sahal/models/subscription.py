"""Billing records mirroring every card payment"""

from sqlalchemy import Column, String, Integer, Numeric, ForeignKey, Index, DateTime, Text, Uuid
import enum

from .base import Base, TimestampedModel, UUIDModel, SerializableModel, value_enum

class BillingStatus(str, enum.Enum):
    PAID = "paid"

class BillingSource(str, enum.Enum):
    SELF_SERVICE = "self_service"
    MANUAL = "manual"
    FLEXIBLE = "flexible"

class BillingRecord(Base, TimestampedModel, UUIDModel, SerializableModel):
    """One row per recorded payment"""

    __tablename__ = "billing_records"

    card_id = Column(Uuid(as_uuid=True), ForeignKey("cards.id", ondelete="CASCADE"), nullable=False)
    customer_id = Column(Uuid(as_uuid=True), ForeignKey("customers.id", ondelete="CASCADE"), nullable=False)

    amount = Column(Numeric(10, 2), nullable=False)
    months_added = Column(Integer, nullable=False)
    status = Column(value_enum(BillingStatus), default=BillingStatus.PAID, nullable=False)
    source = Column(value_enum(BillingSource), nullable=False)

    transaction_id = Column(String(100), nullable=False, index=True)
    payment_method = Column(String(30), nullable=False)
    billed_at = Column(DateTime, nullable=False)
    notes = Column(Text)

    # Recorded by, for operator entries
    recorded_by_id = Column(Uuid(as_uuid=True), nullable=True)

    __table_args__ = (
        Index("idx_billing_records_card", "card_id", "billed_at"),
    )
