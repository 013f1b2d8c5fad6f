"""
Card schemas for request/response validation
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal
import uuid

from sahal.models.card import CardStatus, CardPaymentStatus
from sahal.utils.pagination import PaginatedResponse

class CardResponse(BaseModel):
    """Card details"""
    id: uuid.UUID
    card_number: str
    owner_id: uuid.UUID
    valid_until: datetime
    next_payment_due: datetime
    monthly_fee: Decimal
    payment_status: CardPaymentStatus
    status: CardStatus
    is_enabled: bool
    suspension_reason: Optional[str] = None
    payment_notes: Optional[str] = None
    last_payment_date: Optional[datetime] = None
    total_savings: Decimal
    total_transactions: int
    last_used_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True
        use_enum_values = True

class MyCardResponse(BaseModel):
    """Holder's card with its current standing"""
    card: CardResponse
    is_usable: bool
    days_remaining: int
    status_text: str

class CardStatsResponse(BaseModel):
    card_number: str
    total_savings: Decimal
    total_transactions: int
    days_remaining: int
    is_usable: bool
    status_text: str
    valid_until: datetime
    next_payment_due: datetime
    last_used_at: Optional[datetime] = None
    renewal_count: int

class CardRegisterRequest(BaseModel):
    """Self-registration for a card"""
    full_name: Optional[str] = Field(None, max_length=100)
    id_number: Optional[str] = Field(None, max_length=20)
    location: Optional[str] = Field(None, max_length=100)

class CardUsabilityResponse(BaseModel):
    """Point of sale check"""
    card_number: str
    usable: bool
    reason: Optional[str] = None
    days_remaining: int
    status_text: str
    payment_status: str
    next_payment_due: datetime
    monthly_fee: Decimal

class PaymentOverrideRequest(BaseModel):
    """Manual mark valid / invalid"""
    notes: Optional[str] = Field(None, max_length=500)

class SuspendRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)

class CardListItem(BaseModel):
    card: CardResponse
    days_until_due: int
    is_overdue: bool

class CardListResponse(PaginatedResponse[CardListItem]):
    """Cards ordered by payment due date"""

class PaymentSummaryResponse(BaseModel):
    total_cards: int
    valid_payments: int
    invalid_payments: int
    overdue_payments: int
    payment_rate: float
