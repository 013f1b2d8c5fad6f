"""
Payment API routes
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from sahal.core.database import get_db
from sahal.core.security import AdminPrincipal, require_admin
from sahal.models import Customer
from sahal.services.card_service import CardService
from sahal.services.payment_recorder import PaymentRecorder
from sahal.utils.dependencies import get_current_customer
from .schemas import (
    SelfRenewRequest,
    OperatorPaymentRequest,
    FlexiblePaymentRequest,
    PaymentResultResponse,
    PaymentHistoryResponse
)

router = APIRouter()

@router.post(
    "/renew",
    response_model=PaymentResultResponse,
    summary="Renew my card",
    description="Pay for the calling customer's card once it is due"
)
async def renew_my_card(
    data: SelfRenewRequest,
    customer: Customer = Depends(get_current_customer),
    db: AsyncSession = Depends(get_db)
):
    """Self-service renewal"""
    service = PaymentRecorder(db)
    return await service.renew_self_service(
        customer.id,
        amount_paid=data.amount,
        method=data.payment_method,
        reference=data.reference
    )

@router.get(
    "/history",
    response_model=PaymentHistoryResponse,
    summary="Get payment history",
    description="Renewal history of the calling customer's card"
)
async def get_payment_history(
    limit: int = Query(50, ge=1, le=200),
    customer: Customer = Depends(get_current_customer),
    db: AsyncSession = Depends(get_db)
):
    card = await CardService(db).get_by_owner(customer.id)
    renewals = await PaymentRecorder(db).get_payment_history(card.id, limit)
    return PaymentHistoryResponse(card_number=card.card_number, renewals=renewals)

@router.post(
    "/manual",
    response_model=PaymentResultResponse,
    summary="Record manual payment",
    description="Record a payment received outside the app, one month's fee by default"
)
async def record_manual_payment(
    data: OperatorPaymentRequest,
    admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    service = PaymentRecorder(db)
    return await service.record_manual_payment(
        data.card_number,
        amount=data.amount,
        method=data.payment_method,
        reference=data.reference,
        notes=data.notes,
        actor_id=admin.id
    )

@router.post(
    "/flexible",
    response_model=PaymentResultResponse,
    summary="Record flexible payment",
    description="Extend a card by one month per dollar paid"
)
async def record_flexible_payment(
    data: FlexiblePaymentRequest,
    admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    service = PaymentRecorder(db)
    return await service.record_flexible_payment(
        data.card_number,
        data.amount,
        method=data.payment_method,
        reference=data.reference,
        notes=data.notes,
        actor_id=admin.id
    )
