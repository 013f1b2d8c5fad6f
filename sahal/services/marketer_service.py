"""
Marketer management
Admins create and maintain marketer accounts and read the commission that
approvals accrue to them
"""

from typing import Dict, Any, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from sqlalchemy import select, or_
import logging
import uuid

from sahal.core.config import settings
from sahal.core.database import persistence_retry
from sahal.core.exceptions import ValidationException, NotFoundException, DuplicatePhoneError
from sahal.models import Customer, Marketer
from sahal.utils.pagination import paginate
from sahal.utils.validators import normalize_phone, normalize_text

logger = logging.getLogger(__name__)

DUPLICATE_MARKETER_PHONE = "Marketer with this phone number already exists"

class MarketerService:
    """Service for marketer accounts"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_marketer(self, marketer_id: uuid.UUID) -> Marketer:
        marketer = await self.db.get(Marketer, marketer_id)
        if not marketer:
            raise NotFoundException("Marketer not found")
        return marketer

    async def _normalized_phone(self, phone: str, marketer_id: Optional[uuid.UUID] = None) -> str:
        """Canonical phone, refused when another marketer already has it"""
        try:
            phone = normalize_phone(phone)
        except ValueError as e:
            raise ValidationException(str(e))

        query = select(Marketer.id).where(Marketer.phone == phone)
        if marketer_id:
            query = query.where(Marketer.id != marketer_id)
        if await self.db.scalar(query):
            raise DuplicatePhoneError(DUPLICATE_MARKETER_PHONE)
        return phone

    @persistence_retry
    async def create_marketer(
        self,
        full_name: str,
        phone: str,
        profile_pic_url: Optional[str] = None
    ) -> Marketer:
        """
        Create a marketer account

        Raises:
            ValidationException: If the name or phone is invalid
            DuplicatePhoneError: If another marketer has the phone
        """
        full_name = normalize_text(full_name or "")
        if not full_name:
            raise ValidationException("Full name is required")

        marketer = Marketer(
            id=uuid.uuid4(),
            full_name=full_name,
            phone=await self._normalized_phone(phone),
            profile_pic_url=profile_pic_url,
        )
        self.db.add(marketer)

        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise DuplicatePhoneError(DUPLICATE_MARKETER_PHONE) from e

        logger.info(f"Created marketer {marketer.id} ({marketer.phone})")
        return marketer

    @persistence_retry
    async def update_marketer(
        self,
        marketer_id: uuid.UUID,
        full_name: Optional[str] = None,
        phone: Optional[str] = None,
        profile_pic_url: Optional[str] = None,
        can_login: Optional[bool] = None
    ) -> Marketer:
        """
        Update profile fields

        Earnings and the approved count are never written here; they only
        move when a submission is approved.
        """
        marketer = await self.get_marketer(marketer_id)

        if full_name is not None:
            full_name = normalize_text(full_name)
            if not full_name:
                raise ValidationException("Full name is required")
            marketer.full_name = full_name
        if phone is not None:
            marketer.phone = await self._normalized_phone(phone, marketer_id)
        if profile_pic_url is not None:
            marketer.profile_pic_url = profile_pic_url
        if can_login is not None:
            marketer.can_login = can_login

        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise DuplicatePhoneError(DUPLICATE_MARKETER_PHONE) from e

        logger.info(f"Updated marketer {marketer_id}")
        return marketer

    async def list_marketers(
        self,
        search: Optional[str] = None,
        page: int = 1,
        size: int = 50
    ) -> Dict[str, Any]:
        """Marketers, newest first, optionally filtered by name or phone"""
        query = select(Marketer).order_by(Marketer.created_at.desc())

        if search:
            pattern = f"%{search.strip()}%"
            query = query.where(
                or_(Marketer.full_name.ilike(pattern), Marketer.phone.ilike(pattern))
            )

        return await paginate(self.db, query, page, size)

    async def get_earnings(self, marketer_id: uuid.UUID) -> Dict[str, Any]:
        """Commission accrued through approvals"""
        marketer = await self.get_marketer(marketer_id)
        await self.db.refresh(marketer)

        return {
            "marketer_id": marketer.id,
            "full_name": marketer.full_name,
            "total_earnings": marketer.total_earnings,
            "approved_customers_count": marketer.approved_customers_count,
            "commission_rate": settings.COMMISSION_RATE,
        }

    async def list_registered_customers(
        self,
        marketer_id: uuid.UUID,
        page: int = 1,
        size: int = 50
    ) -> Dict[str, Any]:
        """Customers created from this marketer's approved submissions"""
        await self.get_marketer(marketer_id)

        query = (
            select(Customer)
            .where(Customer.registered_by_id == marketer_id)
            .order_by(Customer.created_at.desc())
        )
        return await paginate(self.db, query, page, size)
