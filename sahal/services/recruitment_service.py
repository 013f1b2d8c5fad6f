"""
Recruitment pipeline
Marketers submit customers, admins approve or reject them. Approval creates
the customer, issues the card and pays the marketer's commission.
"""

from typing import Dict, Any, Optional
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from sqlalchemy import select, update, func, or_
import logging
import uuid

from sahal.core.config import settings
from sahal.core.database import persistence_retry
from sahal.core.exceptions import (
    ValidationException, NotFoundException, ConflictException, DuplicatePhoneError,
    DuplicateIdNumberError, AlreadyReviewedError
)
from sahal.models import Customer, Marketer, PendingCustomer, PendingStatus
from sahal.services.card_service import CardService
from sahal.services.notification import NotificationService
from sahal.services.sequence_service import SequenceService
from sahal.utils.dates import utcnow, add_months_clamped
from sahal.utils.pagination import paginate
from sahal.utils.validators import normalize_phone, normalize_text, validate_months_purchased

logger = logging.getLogger(__name__)

DEFAULT_REJECTION_REASON = "No reason provided"

def _conflict_from_integrity_error(error: IntegrityError) -> ConflictException:
    """Name the unique customer field a failed insert collided on"""
    message = str(error.orig)
    if "id_number" in message:
        return DuplicateIdNumberError()
    if "phone" in message:
        return DuplicatePhoneError()
    return ConflictException("Customer could not be created", error_code="APPROVAL_CONFLICT")

class RecruitmentService:
    """Service for the pending customer workflow"""

    def __init__(self, db: AsyncSession, sequences: Optional[SequenceService] = None):
        self.db = db
        self.cards = CardService(db)
        self.notifications = NotificationService(db)
        self.sequences = sequences or SequenceService(db)

    async def ensure_phone_available(self, phone: str) -> None:
        """
        Raises:
            DuplicatePhoneError: If a customer or an open submission has the phone
        """
        customer = await self.db.scalar(select(Customer.id).where(Customer.phone == phone))
        if customer:
            raise DuplicatePhoneError()

        pending = await self.db.scalar(
            select(PendingCustomer.id).where(
                PendingCustomer.phone == phone,
                PendingCustomer.status == PendingStatus.PENDING
            )
        )
        if pending:
            raise DuplicatePhoneError("Customer with this phone number is already pending approval")

    async def ensure_id_number_available(self, id_number: Optional[str]) -> None:
        """
        Raises:
            DuplicateIdNumberError: If a customer or an open submission has the ID number
        """
        if not id_number:
            return

        if await self.db.scalar(select(Customer.id).where(Customer.id_number == id_number)):
            raise DuplicateIdNumberError()

        pending = await self.db.scalar(
            select(PendingCustomer.id).where(
                PendingCustomer.id_number == id_number,
                PendingCustomer.status == PendingStatus.PENDING
            )
        )
        if pending:
            raise DuplicateIdNumberError("Customer with this ID number is already pending approval")

    @persistence_retry
    async def submit(
        self,
        marketer_id: uuid.UUID,
        full_name: str,
        phone: str,
        months_purchased: int,
        registration_date: Optional[datetime] = None,
        id_number: Optional[str] = None,
        location: Optional[str] = None,
        profile_pic_url: Optional[str] = None
    ) -> PendingCustomer:
        """
        Register a customer for admin approval

        Args:
            marketer_id: Submitting marketer
            full_name: Customer name
            phone: Phone number in any accepted format
            months_purchased: Paid duration, 1 to 120 months
            registration_date: Start of the paid period, defaults to now

        Returns:
            The pending submission

        Raises:
            ValidationException: If months or phone are invalid
            DuplicatePhoneError: If the phone is already taken
            DuplicateIdNumberError: If the ID number is already taken
        """
        try:
            months_purchased = validate_months_purchased(months_purchased)
            phone = normalize_phone(phone)
        except ValueError as e:
            raise ValidationException(str(e))

        full_name = normalize_text(full_name or "")
        if not full_name:
            raise ValidationException("Full name is required")

        marketer = await self.db.get(Marketer, marketer_id)
        if not marketer:
            raise NotFoundException("Marketer not found")

        id_number = normalize_text(id_number or "") or None

        await self.ensure_phone_available(phone)
        await self.ensure_id_number_available(id_number)

        registration_date = registration_date or utcnow()
        pending = PendingCustomer(
            full_name=full_name,
            phone=phone,
            id_number=id_number,
            location=location,
            profile_pic_url=profile_pic_url,
            submitted_by=marketer,
            submitted_by_id=marketer.id,
            registration_date=registration_date,
            months_purchased=months_purchased,
            valid_until_at_approval=add_months_clamped(registration_date, months_purchased),
            status=PendingStatus.PENDING,
        )
        self.db.add(pending)

        try:
            await self.db.commit()
        except IntegrityError as e:
            # Concurrent submission for the same phone
            await self.db.rollback()
            raise DuplicatePhoneError("Customer with this phone number is already pending approval") from e

        logger.info(f"Marketer {marketer_id} submitted customer {phone} for {months_purchased} months")
        return pending

    async def _claim(
        self,
        pending_id: uuid.UUID,
        new_status: PendingStatus,
        reviewer_id: Optional[uuid.UUID],
        now: datetime,
        **values
    ) -> None:
        """Move a pending record out of pending, exactly once"""
        result = await self.db.execute(
            update(PendingCustomer)
            .where(
                PendingCustomer.id == pending_id,
                PendingCustomer.status == PendingStatus.PENDING
            )
            .values(
                status=new_status,
                reviewed_by_id=reviewer_id,
                reviewed_at=now,
                updated_at=now,
                **values
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            return

        current = await self.db.scalar(
            select(PendingCustomer.status).where(PendingCustomer.id == pending_id)
        )
        if current is None:
            raise NotFoundException("Pending customer not found")
        raise AlreadyReviewedError(current.value)

    @persistence_retry
    async def approve(
        self,
        pending_id: uuid.UUID,
        reviewer_id: Optional[uuid.UUID] = None,
        now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Approve a submission

        Everything happens in one transaction: claiming the record, creating
        the customer and card, crediting the marketer and the welcome
        notification. On any failure nothing is kept and the record stays
        pending.

        Returns:
            Dictionary with the pending record, customer, card and commission

        Raises:
            NotFoundException: If the submission does not exist
            AlreadyReviewedError: If it was already approved or rejected
            DuplicatePhoneError, DuplicateIdNumberError: If the customer clashes
                with one created since submission
        """
        now = now or utcnow()

        try:
            await self._claim(pending_id, PendingStatus.APPROVED, reviewer_id, now)

            pending = await self.db.scalar(
                select(PendingCustomer).where(PendingCustomer.id == pending_id)
            )
            await self.db.refresh(pending)

            # Phone may have been taken since submission
            existing = await self.db.scalar(select(Customer.id).where(Customer.phone == pending.phone))
            if existing:
                raise DuplicatePhoneError()

            if pending.id_number and await self.db.scalar(
                select(Customer.id).where(Customer.id_number == pending.id_number)
            ):
                raise DuplicateIdNumberError()

            customer = Customer(
                id=uuid.uuid4(),
                member_code=await self.sequences.next_member_code(),
                full_name=pending.full_name,
                phone=pending.phone,
                id_number=pending.id_number,
                location=pending.location,
                profile_pic_url=pending.profile_pic_url,
                is_active=True,
                can_login=False,
                membership_months=pending.months_purchased,
                valid_until=pending.valid_until_at_approval,
                registered_by_id=pending.submitted_by_id,
            )
            self.db.add(customer)
            await self.db.flush()

            card = await self.cards.create_card(customer, now=now)

            pending.resulting_customer_id = customer.id

            commission = settings.COMMISSION_RATE
            if pending.submitted_by_id:
                await self.db.execute(
                    update(Marketer)
                    .where(Marketer.id == pending.submitted_by_id)
                    .values(
                        total_earnings=Marketer.total_earnings + commission,
                        approved_customers_count=Marketer.approved_customers_count + 1,
                        updated_at=now,
                    )
                    .execution_options(synchronize_session=False)
                )
            else:
                commission = None

            self.notifications.send_welcome(customer.id, customer.full_name, card)

            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(f"Approval of pending customer {pending_id} conflicted: {e.orig}")
            raise _conflict_from_integrity_error(e) from e
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            f"Approved pending customer {pending_id}: customer {customer.member_code}, "
            f"card {card.card_number}, commission {commission}"
        )
        return {
            "pending": pending,
            "customer": customer,
            "card": card,
            "commission": commission,
        }

    @persistence_retry
    async def reject(
        self,
        pending_id: uuid.UUID,
        reviewer_id: Optional[uuid.UUID] = None,
        reason: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> PendingCustomer:
        """Reject a submission"""
        now = now or utcnow()

        try:
            await self._claim(
                pending_id, PendingStatus.REJECTED, reviewer_id, now,
                rejection_reason=reason or DEFAULT_REJECTION_REASON
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        pending = await self.db.scalar(select(PendingCustomer).where(PendingCustomer.id == pending_id))
        await self.db.refresh(pending)

        logger.info(f"Rejected pending customer {pending_id}: {pending.rejection_reason}")
        return pending

    async def get_pending(self, pending_id: uuid.UUID) -> PendingCustomer:
        pending = await self.db.get(PendingCustomer, pending_id)
        if not pending:
            raise NotFoundException("Pending customer not found")
        return pending

    async def list_pending(
        self,
        status: Optional[PendingStatus] = PendingStatus.PENDING,
        search: Optional[str] = None,
        page: int = 1,
        size: int = 50
    ) -> Dict[str, Any]:
        """Admin review queue, newest first"""
        query = select(PendingCustomer).order_by(PendingCustomer.created_at.desc())

        if status:
            query = query.where(PendingCustomer.status == status)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.where(
                or_(
                    PendingCustomer.full_name.ilike(pattern),
                    PendingCustomer.phone.ilike(pattern),
                    PendingCustomer.id_number.ilike(pattern)
                )
            )

        return await paginate(self.db, query, page, size)

    async def list_marketer_submissions(
        self,
        marketer_id: uuid.UUID,
        status: Optional[PendingStatus] = None,
        page: int = 1,
        size: int = 50
    ) -> Dict[str, Any]:
        """A marketer's own submissions with per-status counts"""
        query = (
            select(PendingCustomer)
            .where(PendingCustomer.submitted_by_id == marketer_id)
            .order_by(PendingCustomer.created_at.desc())
        )
        if status:
            query = query.where(PendingCustomer.status == status)

        page_data = await paginate(self.db, query, page, size)

        result = await self.db.execute(
            select(PendingCustomer.status, func.count(PendingCustomer.id))
            .where(PendingCustomer.submitted_by_id == marketer_id)
            .group_by(PendingCustomer.status)
        )
        counts = {s.value: 0 for s in PendingStatus}
        for row_status, count in result.all():
            counts[row_status.value] = count

        page_data["counts"] = counts
        return page_data
