"""
Pending customer model
Submissions from marketers waiting for admin review
"""

from sqlalchemy import Column, String, Integer, ForeignKey, Index, DateTime, Text, Uuid, text
from sqlalchemy.orm import relationship
import enum

from .base import Base, TimestampedModel, UUIDModel, SerializableModel, value_enum

class PendingStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

class PendingCustomer(Base, TimestampedModel, UUIDModel, SerializableModel):
    """
    Customer registration awaiting approval

    Status only moves pending -> approved or pending -> rejected. Records are
    kept after review as the audit trail of who recruited whom.
    """

    __tablename__ = "pending_customers"

    # Customer details
    full_name = Column(String(100), nullable=False)
    phone = Column(String(20), nullable=False, index=True)
    id_number = Column(String(20))
    location = Column(String(100))
    profile_pic_url = Column(String(500))

    # Submission
    submitted_by_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("marketers.id", ondelete="SET NULL"),
        nullable=True
    )
    registration_date = Column(DateTime, nullable=False)
    months_purchased = Column(Integer, nullable=False)
    valid_until_at_approval = Column(DateTime, nullable=False)

    # Review
    status = Column(value_enum(PendingStatus), default=PendingStatus.PENDING, nullable=False, index=True)
    reviewed_by_id = Column(Uuid(as_uuid=True), nullable=True)
    reviewed_at = Column(DateTime)
    rejection_reason = Column(Text)
    resulting_customer_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("customers.id", ondelete="SET NULL"),
        nullable=True
    )

    submitted_by = relationship("Marketer", lazy="joined")

    __table_args__ = (
        # One open submission per phone
        Index(
            "uq_pending_customers_phone_pending",
            "phone",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
        Index("idx_pending_customers_submitted_by", "submitted_by_id", "status"),
    )

    def __repr__(self):
        return f"<PendingCustomer {self.phone} {self.status.value if self.status else None}>"
