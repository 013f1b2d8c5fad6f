"""
Recruitment schemas
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict
from datetime import datetime
from decimal import Decimal
import uuid

from sahal.models.pending_customer import PendingStatus
from sahal.api.v1.cards.schemas import CardResponse
from sahal.utils.pagination import PaginatedResponse

class SubmissionCreate(BaseModel):
    """Marketer registers a customer"""
    full_name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=7, max_length=20)
    months_purchased: int = Field(..., description="Paid months, 1 to 120")
    registration_date: Optional[datetime] = None
    id_number: Optional[str] = Field(None, max_length=20)
    location: Optional[str] = Field(None, max_length=100)
    profile_pic_url: Optional[str] = Field(None, max_length=500)

    class Config:
        json_schema_extra = {
            "example": {
                "full_name": "Amina Warsame",
                "phone": "612345678",
                "months_purchased": 3,
                "location": "Mogadishu"
            }
        }

class SubmissionResponse(BaseModel):
    id: uuid.UUID
    full_name: str
    phone: str
    id_number: Optional[str] = None
    location: Optional[str] = None
    profile_pic_url: Optional[str] = None
    submitted_by_id: Optional[uuid.UUID] = None
    registration_date: datetime
    months_purchased: int
    valid_until_at_approval: datetime
    status: PendingStatus
    reviewed_by_id: Optional[uuid.UUID] = None
    reviewed_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    resulting_customer_id: Optional[uuid.UUID] = None
    created_at: datetime

    class Config:
        from_attributes = True
        use_enum_values = True

class SubmissionListResponse(PaginatedResponse[SubmissionResponse]):
    counts: Optional[Dict[str, int]] = None

class RejectRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)

class CustomerSummary(BaseModel):
    id: uuid.UUID
    member_code: str
    full_name: str
    phone: str
    can_login: bool
    membership_months: Optional[int] = None
    valid_until: Optional[datetime] = None
    registered_by_id: Optional[uuid.UUID] = None

    class Config:
        from_attributes = True

class ApprovalResponse(BaseModel):
    submission: SubmissionResponse
    customer: CustomerSummary
    card: CardResponse
    commission: Optional[Decimal] = None
