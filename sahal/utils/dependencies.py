"""
Common dependencies for FastAPI
"""

from fastapi import Query, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sahal.core.config import settings
from sahal.core.database import get_db
from sahal.core.exceptions import ForbiddenException, NotFoundException
from sahal.core.security import CustomerPrincipal, require_customer
from sahal.models import Customer
from .pagination import PaginationParams

def get_pagination_params(
    page: int = Query(1, ge=1, description="Page number"),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE, description="Page size")
) -> PaginationParams:
    """Get pagination parameters from query"""
    return PaginationParams(page=page, size=size)

async def get_current_customer(
    principal: CustomerPrincipal = Depends(require_customer),
    db: AsyncSession = Depends(get_db)
) -> Customer:
    """
    Load the calling customer

    Raises:
        NotFoundException: If the account no longer exists
        ForbiddenException: If the account is deactivated
    """
    customer = await db.get(Customer, principal.id)
    if not customer:
        raise NotFoundException("Customer not found")
    if not customer.is_active:
        raise ForbiddenException("Customer account is inactive")
    return customer
