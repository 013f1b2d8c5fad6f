"""
Payment schemas for request/response validation
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
import uuid

from sahal.core.config import settings
from sahal.models.subscription import BillingSource
from sahal.api.v1.cards.schemas import CardResponse

# Amounts from this bound upwards would buy more than MAX_MONTHS_PER_PAYMENT months
MAX_PAYMENT_AMOUNT = settings.MAX_MONTHS_PER_PAYMENT + 1

class SelfRenewRequest(BaseModel):
    """Customer pays for their own card"""
    amount: Optional[Decimal] = Field(
        None, gt=0, lt=MAX_PAYMENT_AMOUNT, description="Defaults to the monthly fee"
    )
    payment_method: str = Field("cash", max_length=30)
    reference: Optional[str] = Field(None, max_length=100)

class OperatorPaymentRequest(BaseModel):
    """Payment entered by an operator"""
    card_number: str = Field(..., min_length=1, max_length=8)
    amount: Optional[Decimal] = Field(None, gt=0, lt=MAX_PAYMENT_AMOUNT)
    payment_method: str = Field("cash", max_length=30)
    reference: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=500)

class FlexiblePaymentRequest(OperatorPaymentRequest):
    """One month per currency unit"""
    amount: Decimal = Field(..., gt=0, lt=MAX_PAYMENT_AMOUNT)

class RenewalResponse(BaseModel):
    """Renewal history entry"""
    id: int
    renewed_at: datetime
    amount_paid: Decimal
    months_added: int
    valid_until_after: datetime
    method: str
    external_reference: Optional[str] = None

    class Config:
        from_attributes = True

class BillingRecordResponse(BaseModel):
    id: uuid.UUID
    amount: Decimal
    months_added: int
    source: BillingSource
    transaction_id: str
    payment_method: str
    billed_at: datetime

    class Config:
        from_attributes = True
        use_enum_values = True

class PaymentResultResponse(BaseModel):
    """Outcome of a recorded payment"""
    card: CardResponse
    renewal: RenewalResponse
    billing: BillingRecordResponse

class PaymentHistoryResponse(BaseModel):
    card_number: str
    renewals: List[RenewalResponse]
