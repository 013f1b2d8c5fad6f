"""
Recruitment API routes
Marketers submit customers, admins review them
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import uuid

from sahal.core.database import get_db
from sahal.core.security import AdminPrincipal, MarketerPrincipal, require_admin, require_marketer
from sahal.models.pending_customer import PendingStatus
from sahal.services.recruitment_service import RecruitmentService
from sahal.utils.dependencies import get_pagination_params
from sahal.utils.pagination import PaginationParams
from .schemas import (
    SubmissionCreate,
    SubmissionResponse,
    SubmissionListResponse,
    RejectRequest,
    ApprovalResponse,
    CustomerSummary
)
from sahal.api.v1.cards.schemas import CardResponse

router = APIRouter()

@router.post(
    "/submissions",
    response_model=SubmissionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit customer",
    description="Register a customer for admin approval"
)
async def submit_customer(
    data: SubmissionCreate,
    marketer: MarketerPrincipal = Depends(require_marketer),
    db: AsyncSession = Depends(get_db)
):
    service = RecruitmentService(db)
    return await service.submit(
        marketer.id,
        full_name=data.full_name,
        phone=data.phone,
        months_purchased=data.months_purchased,
        registration_date=data.registration_date,
        id_number=data.id_number,
        location=data.location,
        profile_pic_url=data.profile_pic_url
    )

@router.get(
    "/submissions/mine",
    response_model=SubmissionListResponse,
    summary="My submissions"
)
async def get_my_submissions(
    status: Optional[PendingStatus] = Query(None),
    pagination: PaginationParams = Depends(get_pagination_params),
    marketer: MarketerPrincipal = Depends(require_marketer),
    db: AsyncSession = Depends(get_db)
):
    service = RecruitmentService(db)
    return await service.list_marketer_submissions(
        marketer.id, status, pagination.page, pagination.size
    )

@router.get(
    "/submissions",
    response_model=SubmissionListResponse,
    summary="Review queue",
    description="List submissions, pending ones by default"
)
async def list_submissions(
    status: Optional[PendingStatus] = Query(PendingStatus.PENDING),
    search: Optional[str] = Query(None, max_length=100),
    pagination: PaginationParams = Depends(get_pagination_params),
    admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    service = RecruitmentService(db)
    return await service.list_pending(status, search, pagination.page, pagination.size)

@router.post(
    "/submissions/{pending_id}/approve",
    response_model=ApprovalResponse,
    summary="Approve submission",
    description="Create the customer and card and credit the marketer"
)
async def approve_submission(
    pending_id: uuid.UUID,
    admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    service = RecruitmentService(db)
    result = await service.approve(pending_id, reviewer_id=admin.id)
    return ApprovalResponse(
        submission=SubmissionResponse.model_validate(result["pending"]),
        customer=CustomerSummary.model_validate(result["customer"]),
        card=CardResponse.model_validate(result["card"]),
        commission=result["commission"]
    )

@router.post(
    "/submissions/{pending_id}/reject",
    response_model=SubmissionResponse,
    summary="Reject submission"
)
async def reject_submission(
    pending_id: uuid.UUID,
    data: RejectRequest,
    admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    service = RecruitmentService(db)
    return await service.reject(pending_id, reviewer_id=admin.id, reason=data.reason)
