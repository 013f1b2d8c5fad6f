"""
Marketer schemas
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal
import uuid

from sahal.api.v1.recruitment.schemas import CustomerSummary
from sahal.utils.pagination import PaginatedResponse

class MarketerCreate(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=7, max_length=20)
    profile_pic_url: Optional[str] = Field(None, max_length=500)

    class Config:
        json_schema_extra = {
            "example": {
                "full_name": "Hodan Ali",
                "phone": "611000001"
            }
        }

class MarketerUpdate(BaseModel):
    """Profile fields only; earnings follow approvals"""
    full_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, min_length=7, max_length=20)
    profile_pic_url: Optional[str] = Field(None, max_length=500)
    can_login: Optional[bool] = None

class MarketerResponse(BaseModel):
    id: uuid.UUID
    full_name: str
    phone: str
    profile_pic_url: Optional[str] = None
    can_login: bool
    total_earnings: Decimal
    approved_customers_count: int
    created_at: datetime

    class Config:
        from_attributes = True

class MarketerListResponse(PaginatedResponse[MarketerResponse]):
    """Marketers, newest first"""

class MarketerEarningsResponse(BaseModel):
    marketer_id: uuid.UUID
    full_name: str
    total_earnings: Decimal
    approved_customers_count: int
    commission_rate: Decimal

class RegisteredCustomersResponse(PaginatedResponse[CustomerSummary]):
    """Customers a marketer brought in"""
