"""
Card API routes
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from sahal.core.database import get_db
from sahal.core.security import AdminPrincipal, Principal, get_current_principal, require_admin
from sahal.models import Customer
from sahal.models.card import CardPaymentStatus
from sahal.services.card_service import CardService
from sahal.services.customer_service import CustomerService
from sahal.utils.dates import utcnow
from sahal.utils.dependencies import get_current_customer, get_pagination_params
from sahal.utils.pagination import PaginationParams
from .schemas import (
    CardResponse,
    MyCardResponse,
    CardStatsResponse,
    CardRegisterRequest,
    CardUsabilityResponse,
    PaymentOverrideRequest,
    SuspendRequest,
    CardListResponse,
    PaymentSummaryResponse
)

router = APIRouter()

@router.get(
    "/me",
    response_model=MyCardResponse,
    summary="Get my card",
    description="Get the calling customer's card and its current standing"
)
async def get_my_card(
    customer: Customer = Depends(get_current_customer),
    db: AsyncSession = Depends(get_db)
):
    service = CardService(db)
    card = await service.get_by_owner(customer.id)
    now = utcnow()
    return MyCardResponse(
        card=CardResponse.model_validate(card),
        is_usable=card.is_usable(now),
        days_remaining=card.days_remaining(now),
        status_text=card.status_text(now)
    )

@router.get(
    "/me/stats",
    response_model=CardStatsResponse,
    summary="Get my card statistics"
)
async def get_my_card_stats(
    customer: Customer = Depends(get_current_customer),
    db: AsyncSession = Depends(get_db)
):
    service = CardService(db)
    return await service.get_card_stats(customer.id)

@router.post(
    "/register",
    response_model=CardResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register for a card",
    description="Issue a card to a customer that has none"
)
async def register_card(
    data: CardRegisterRequest,
    customer: Customer = Depends(get_current_customer),
    db: AsyncSession = Depends(get_db)
):
    service = CustomerService(db)
    card = await service.register_card(
        customer,
        full_name=data.full_name,
        id_number=data.id_number,
        location=data.location
    )
    return card

@router.get(
    "",
    response_model=CardListResponse,
    summary="List cards",
    description="List cards by payment status, soonest due first"
)
async def list_cards(
    payment_status: Optional[CardPaymentStatus] = Query(None),
    pagination: PaginationParams = Depends(get_pagination_params),
    admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    service = CardService(db)
    return await service.list_cards(payment_status, pagination.page, pagination.size)

@router.get(
    "/summary",
    response_model=PaymentSummaryResponse,
    summary="Payment summary"
)
async def get_payment_summary(
    admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    service = CardService(db)
    return await service.get_payment_summary()

@router.get(
    "/{card_number}/validate",
    response_model=CardUsabilityResponse,
    summary="Validate card",
    description="Check whether a card can be used for discounts right now"
)
async def validate_card(
    card_number: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    service = CardService(db)
    return await service.is_card_usable(card_number)

@router.post(
    "/{card_number}/mark-valid",
    response_model=CardResponse,
    summary="Mark payment valid"
)
async def mark_card_valid(
    card_number: str,
    data: PaymentOverrideRequest,
    admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    service = CardService(db)
    return await service.mark_valid(card_number, actor_id=admin.id, notes=data.notes)

@router.post(
    "/{card_number}/mark-invalid",
    response_model=CardResponse,
    summary="Mark payment invalid"
)
async def mark_card_invalid(
    card_number: str,
    data: PaymentOverrideRequest,
    admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    service = CardService(db)
    return await service.mark_invalid(card_number, actor_id=admin.id, notes=data.notes)

@router.post(
    "/{card_number}/suspend",
    response_model=CardResponse,
    summary="Suspend card"
)
async def suspend_card(
    card_number: str,
    data: SuspendRequest,
    admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    service = CardService(db)
    return await service.suspend(card_number, data.reason, actor_id=admin.id)

@router.post(
    "/{card_number}/reactivate",
    response_model=CardResponse,
    summary="Reactivate card"
)
async def reactivate_card(
    card_number: str,
    admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    service = CardService(db)
    return await service.reactivate(card_number, actor_id=admin.id)
