"""
Customer account model
A customer always owns exactly one card, created in the same unit of work
"""

from sqlalchemy import Column, String, Boolean, Integer, ForeignKey, Index, DateTime, Uuid

from .base import Base, TimestampedModel, UUIDModel, SerializableModel

class Customer(Base, TimestampedModel, UUIDModel, SerializableModel):
    """Card holder account"""

    __tablename__ = "customers"

    # Externally visible identifier, the card number is derived from it
    member_code = Column(String(20), unique=True, nullable=False, index=True)

    full_name = Column(String(100), nullable=False)
    phone = Column(String(20), unique=True, nullable=False, index=True)
    id_number = Column(String(20), unique=True, nullable=True)
    location = Column(String(100))
    profile_pic_url = Column(String(500))

    # Status fields
    is_active = Column(Boolean, default=True, nullable=False)
    can_login = Column(Boolean, default=True, nullable=False)

    # Membership purchased at recruitment time
    membership_months = Column(Integer, nullable=True)
    valid_until = Column(DateTime, nullable=True)

    # Marketer that recruited this customer, kept when the marketer goes away
    registered_by_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("marketers.id", ondelete="SET NULL"),
        nullable=True
    )

    __table_args__ = (
        Index("idx_customers_registered_by", "registered_by_id"),
    )

    def __repr__(self):
        return f"<Customer {self.member_code} {self.phone}>"
