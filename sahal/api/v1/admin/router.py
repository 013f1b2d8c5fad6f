"""Admin management endpoints"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
import logging
import uuid

from sahal.core.database import get_db
from sahal.core.security import AdminPrincipal, require_admin
from sahal.services.customer_service import CustomerService
from sahal.services.overdue_sweep import OverdueSweepService, SweepSummary
from sahal.api.v1.cards.schemas import CardResponse
from sahal.api.v1.recruitment.schemas import CustomerSummary
from .schemas import (
    AdminCustomerCreate,
    AdminCustomerResponse,
    SubscriptionStats
)

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post(
    "/customers",
    response_model=AdminCustomerResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create customer",
    description="Create a customer together with their card"
)
async def create_customer(
    data: AdminCustomerCreate,
    admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    service = CustomerService(db)
    result = await service.create_customer_with_card(
        full_name=data.full_name,
        phone=data.phone,
        id_number=data.id_number,
        location=data.location,
        monthly_fee=data.monthly_fee
    )
    return AdminCustomerResponse(
        customer=CustomerSummary.model_validate(result["customer"]),
        card=CardResponse.model_validate(result["card"])
    )

@router.delete(
    "/customers/{customer_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete customer",
    description="Delete a customer with their card and its history"
)
async def delete_customer(
    customer_id: uuid.UUID,
    admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    service = CustomerService(db)
    await service.delete_customer(customer_id)
    logger.info(f"Admin {admin.id} deleted customer {customer_id}")

@router.post(
    "/sweep",
    response_model=SweepSummary,
    summary="Run overdue sweep",
    description="Suspend overdue cards and send reminders now"
)
async def run_sweep(
    admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    service = OverdueSweepService(db)
    return await service.run()

@router.get(
    "/subscription-stats",
    response_model=SubscriptionStats,
    summary="Subscription statistics"
)
async def get_subscription_stats(
    admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    service = OverdueSweepService(db)
    return await service.get_subscription_stats()
