"""Admin schemas"""

from pydantic import BaseModel, Field
from typing import Optional
from decimal import Decimal

from sahal.api.v1.cards.schemas import CardResponse
from sahal.api.v1.recruitment.schemas import CustomerSummary

class AdminCustomerCreate(BaseModel):
    """Create a customer with a card directly"""
    full_name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=7, max_length=20)
    id_number: Optional[str] = Field(None, max_length=20)
    location: Optional[str] = Field(None, max_length=100)
    monthly_fee: Optional[Decimal] = Field(None, gt=0)

class AdminCustomerResponse(BaseModel):
    customer: CustomerSummary
    card: CardResponse

class SubscriptionStats(BaseModel):
    total_cards: int
    active_cards: int
    suspended_cards: int
    valid_payments: int
    invalid_payments: int
    overdue_cards: int
    due_soon_cards: int
