"""
Marketer API routes
Admins manage marketers; marketers may read their own earnings
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import uuid

from sahal.core.database import get_db
from sahal.core.exceptions import ForbiddenException
from sahal.core.security import (
    AdminPrincipal, MarketerPrincipal, Principal, require_admin, require_role
)
from sahal.services.marketer_service import MarketerService
from sahal.utils.dependencies import get_pagination_params
from sahal.utils.pagination import PaginationParams
from .schemas import (
    MarketerCreate,
    MarketerUpdate,
    MarketerResponse,
    MarketerListResponse,
    MarketerEarningsResponse,
    RegisteredCustomersResponse
)

router = APIRouter()

require_admin_or_marketer = require_role(AdminPrincipal, MarketerPrincipal)

@router.post(
    "",
    response_model=MarketerResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create marketer"
)
async def create_marketer(
    data: MarketerCreate,
    admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    service = MarketerService(db)
    return await service.create_marketer(
        full_name=data.full_name,
        phone=data.phone,
        profile_pic_url=data.profile_pic_url
    )

@router.get(
    "",
    response_model=MarketerListResponse,
    summary="List marketers"
)
async def list_marketers(
    search: Optional[str] = Query(None, max_length=100),
    pagination: PaginationParams = Depends(get_pagination_params),
    admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    service = MarketerService(db)
    return await service.list_marketers(search, pagination.page, pagination.size)

@router.get(
    "/{marketer_id}",
    response_model=MarketerResponse,
    summary="Get marketer"
)
async def get_marketer(
    marketer_id: uuid.UUID,
    admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    service = MarketerService(db)
    return await service.get_marketer(marketer_id)

@router.patch(
    "/{marketer_id}",
    response_model=MarketerResponse,
    summary="Update marketer"
)
async def update_marketer(
    marketer_id: uuid.UUID,
    data: MarketerUpdate,
    admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    service = MarketerService(db)
    return await service.update_marketer(marketer_id, **data.model_dump(exclude_unset=True))

@router.get(
    "/{marketer_id}/earnings",
    response_model=MarketerEarningsResponse,
    summary="Marketer earnings",
    description="Commission accrued through approved submissions"
)
async def get_marketer_earnings(
    marketer_id: uuid.UUID,
    principal: Principal = Depends(require_admin_or_marketer),
    db: AsyncSession = Depends(get_db)
):
    if isinstance(principal, MarketerPrincipal) and principal.id != marketer_id:
        raise ForbiddenException("You can only view your own earnings")

    service = MarketerService(db)
    return await service.get_earnings(marketer_id)

@router.get(
    "/{marketer_id}/registered-customers",
    response_model=RegisteredCustomersResponse,
    summary="Customers registered by a marketer"
)
async def list_registered_customers(
    marketer_id: uuid.UUID,
    pagination: PaginationParams = Depends(get_pagination_params),
    admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    service = MarketerService(db)
    return await service.list_registered_customers(marketer_id, pagination.page, pagination.size)
