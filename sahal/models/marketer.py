"""Marketer model"""

from sqlalchemy import Column, String, Boolean, Integer, Numeric
from decimal import Decimal

from .base import Base, TimestampedModel, UUIDModel, SerializableModel

class Marketer(Base, TimestampedModel, UUIDModel, SerializableModel):
    """
    Field marketer recruiting customers

    Earnings and the approved count only grow, and only as a side effect
    of an approval.
    """

    __tablename__ = "marketers"

    full_name = Column(String(100), nullable=False)
    phone = Column(String(20), unique=True, nullable=False, index=True)
    profile_pic_url = Column(String(500))
    can_login = Column(Boolean, default=True, nullable=False)

    total_earnings = Column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)
    approved_customers_count = Column(Integer, default=0, nullable=False)

    def __repr__(self):
        return f"<Marketer {self.full_name}>"
