"""Tests for the recruitment pipeline"""

from datetime import datetime
from decimal import Decimal
from unittest.mock import patch
import uuid

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError

from sahal.core.exceptions import (
    AlreadyReviewedError, ConflictException, DuplicateIdNumberError, DuplicatePhoneError,
    NotFoundException, ValidationException
)
from sahal.models import Card, Customer, Marketer, Notification, NotificationType, PendingCustomer, PendingStatus
from sahal.services.card_service import CardService
from sahal.services.recruitment_service import RecruitmentService
from sahal.services.sequence_service import SequenceService
from sahal.utils.dates import add_months_clamped
from tests.base import DatabaseTestCase

REGISTERED = datetime(2024, 1, 31, 10, 0, 0)
APPROVED = datetime(2024, 2, 1, 9, 0, 0)

class RecruitmentServiceTest(DatabaseTestCase):

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.marketer = await self.make_marketer()
        self.marketer_id = self.marketer.id
        self.service = RecruitmentService(self.db)

    async def submit(self, phone="612345678", months=3, registration_date=REGISTERED, id_number=None):
        return await self.service.submit(
            self.marketer_id,
            full_name="Faadumo  Hassan",
            phone=phone,
            months_purchased=months,
            registration_date=registration_date,
            id_number=id_number
        )

    async def marketer_totals(self):
        marketer = await self.db.get(Marketer, self.marketer_id)
        await self.db.refresh(marketer)
        return marketer.total_earnings, marketer.approved_customers_count

    async def test_submit_normalizes_and_computes_validity(self):
        pending = await self.submit()

        self.assertEqual(pending.phone, "+252612345678")
        self.assertEqual(pending.full_name, "Faadumo Hassan")
        self.assertEqual(pending.status, PendingStatus.PENDING)
        self.assertEqual(pending.valid_until_at_approval, datetime(2024, 4, 30, 10, 0, 0))

    async def test_submit_rejects_months_out_of_range(self):
        with self.assertRaises(ValidationException):
            await self.submit(months=0)
        with self.assertRaises(ValidationException):
            await self.submit(months=121)

    async def test_submit_rejects_bad_phone(self):
        with self.assertRaises(ValidationException):
            await self.submit(phone="12")

    async def test_submit_rejects_phone_already_pending(self):
        await self.submit(phone="612345678")

        with self.assertRaises(DuplicatePhoneError):
            await self.submit(phone="+252612345678")

    async def test_submit_rejects_phone_of_existing_customer(self):
        await self.make_customer(phone="+252612345678")
        await self.db.commit()

        with self.assertRaises(DuplicatePhoneError):
            await self.submit(phone="0612345678")

    async def test_phone_can_be_resubmitted_after_rejection(self):
        first = await self.submit()
        await self.service.reject(first.id)

        second = await self.submit()
        self.assertEqual(second.status, PendingStatus.PENDING)

    async def test_approve_creates_customer_card_and_commission(self):
        pending = await self.submit()

        result = await self.service.approve(pending.id, reviewer_id=uuid.uuid4(), now=APPROVED)

        customer = result["customer"]
        card = result["card"]
        self.assertEqual(result["pending"].status, PendingStatus.APPROVED)
        self.assertEqual(result["pending"].resulting_customer_id, customer.id)
        self.assertFalse(customer.can_login)
        self.assertEqual(customer.membership_months, 3)
        self.assertEqual(customer.valid_until, datetime(2024, 4, 30, 10, 0, 0))
        self.assertEqual(customer.registered_by_id, self.marketer_id)
        self.assertEqual(customer.member_code, "001")
        self.assertEqual(card.owner_id, customer.id)
        self.assertEqual(card.card_number, "00000001")
        self.assertEqual(card.valid_until, add_months_clamped(APPROVED, 1))
        self.assertEqual(result["commission"], Decimal("0.40"))

        self.assertEqual(await self.marketer_totals(), (Decimal("0.40"), 1))

        welcome = await self.db.scalar(
            select(Notification).where(Notification.customer_id == customer.id)
        )
        self.assertEqual(welcome.type, NotificationType.WELCOME)

    async def test_approve_only_once(self):
        pending = await self.submit()
        await self.service.approve(pending.id, now=APPROVED)

        with self.assertRaises(AlreadyReviewedError):
            await self.service.approve(pending.id, now=APPROVED)
        with self.assertRaises(AlreadyReviewedError):
            await self.service.reject(pending.id)

        self.assertEqual(await self.marketer_totals(), (Decimal("0.40"), 1))
        customers = await self.db.scalar(select(func.count(Customer.id)))
        self.assertEqual(customers, 1)

    async def test_reject_then_approve_is_refused(self):
        pending = await self.submit()

        rejected = await self.service.reject(pending.id, reviewer_id=uuid.uuid4())
        self.assertEqual(rejected.status, PendingStatus.REJECTED)
        self.assertEqual(rejected.rejection_reason, "No reason provided")

        with self.assertRaises(AlreadyReviewedError):
            await self.service.approve(pending.id)
        self.assertEqual(await self.marketer_totals(), (Decimal("0.00"), 0))

    async def test_unknown_submission(self):
        with self.assertRaises(NotFoundException):
            await self.service.approve(uuid.uuid4())

    async def test_failed_approval_leaves_nothing_behind(self):
        pending = await self.submit()
        pending_id = pending.id

        with patch.object(CardService, "create_card", side_effect=RuntimeError("storage failure")):
            with self.assertRaises(RuntimeError):
                await self.service.approve(pending_id, now=APPROVED)

        pending = await self.db.get(PendingCustomer, pending_id)
        await self.db.refresh(pending)
        self.assertEqual(pending.status, PendingStatus.PENDING)
        self.assertEqual(await self.db.scalar(select(func.count(Customer.id))), 0)
        self.assertEqual(await self.db.scalar(select(func.count(Card.id))), 0)
        self.assertEqual(await self.marketer_totals(), (Decimal("0.00"), 0))

        # The claim was released, so a retry succeeds
        result = await self.service.approve(pending_id, now=APPROVED)
        self.assertEqual(result["pending"].status, PendingStatus.APPROVED)

    async def test_second_session_cannot_approve_claimed_submission(self):
        pending = await self.submit()

        async with self.session_factory() as other_db:
            # Loaded by a second admin while still pending
            stale = await other_db.get(PendingCustomer, pending.id)
            self.assertEqual(stale.status, PendingStatus.PENDING)

            await self.service.approve(pending.id, now=APPROVED)

            with self.assertRaises(AlreadyReviewedError):
                await RecruitmentService(other_db).approve(pending.id, now=APPROVED)
            with self.assertRaises(AlreadyReviewedError):
                await RecruitmentService(other_db).reject(pending.id)

        self.assertEqual(await self.marketer_totals(), (Decimal("0.40"), 1))
        self.assertEqual(await self.db.scalar(select(func.count(Customer.id))), 1)
        self.assertEqual(await self.db.scalar(select(func.count(Card.id))), 1)

    async def test_submit_rejects_id_number_already_pending(self):
        await self.submit(phone="612345671", id_number="SO-1001")

        with self.assertRaises(DuplicateIdNumberError):
            await self.submit(phone="612345672", id_number=" SO-1001 ")

    async def test_submit_rejects_id_number_of_existing_customer(self):
        customer = await self.make_customer(phone="+252619000000")
        customer.id_number = "SO-1001"
        await self.db.commit()

        with self.assertRaises(DuplicateIdNumberError):
            await self.submit(id_number="SO-1001")

    async def test_approve_refuses_id_number_taken_since_submission(self):
        pending = await self.submit(id_number="SO-1001")
        pending_id = pending.id

        customer = await self.make_customer(member_code="900", phone="+252619000000")
        customer.id_number = "SO-1001"
        await self.db.commit()

        with self.assertRaises(DuplicateIdNumberError) as ctx:
            await self.service.approve(pending_id, now=APPROVED)
        self.assertEqual(ctx.exception.status_code, 409)

        pending = await self.db.get(PendingCustomer, pending_id)
        await self.db.refresh(pending)
        self.assertEqual(pending.status, PendingStatus.PENDING)
        self.assertEqual(await self.db.scalar(select(func.count(Customer.id))), 1)
        self.assertEqual(await self.marketer_totals(), (Decimal("0.00"), 0))

    async def test_unique_violation_during_approval_is_a_conflict(self):
        pending = await self.submit(id_number="SO-1001")
        pending_id = pending.id
        violation = IntegrityError(
            "INSERT INTO customers", {}, Exception("UNIQUE constraint failed: customers.id_number")
        )

        with patch.object(CardService, "create_card", side_effect=violation):
            with self.assertRaises(DuplicateIdNumberError):
                await self.service.approve(pending_id, now=APPROVED)

        pending = await self.db.get(PendingCustomer, pending_id)
        await self.db.refresh(pending)
        self.assertEqual(pending.status, PendingStatus.PENDING)
        self.assertEqual(await self.db.scalar(select(func.count(Customer.id))), 0)

        other = IntegrityError("INSERT INTO customers", {}, Exception("UNIQUE constraint failed: other"))
        with patch.object(CardService, "create_card", side_effect=other):
            with self.assertRaises(ConflictException) as ctx:
                await self.service.approve(pending_id, now=APPROVED)
        self.assertEqual(ctx.exception.error_code, "APPROVAL_CONFLICT")

    async def test_member_codes_follow_the_sequence(self):
        first = await self.submit(phone="612345671")
        second = await self.submit(phone="612345672")

        a = await self.service.approve(first.id, now=APPROVED)
        b = await self.service.approve(second.id, now=APPROVED)

        self.assertEqual(a["customer"].member_code, "001")
        self.assertEqual(b["customer"].member_code, "002")
        self.assertEqual(b["card"].card_number, "00000002")
        self.assertEqual(await self.marketer_totals(), (Decimal("0.80"), 2))

    async def test_marketer_submissions_with_counts(self):
        first = await self.submit(phone="612345671")
        await self.submit(phone="612345672")
        await self.service.reject(first.id, reason="Duplicate ID card")

        page = await self.service.list_marketer_submissions(self.marketer_id)
        self.assertEqual(page["total"], 2)
        self.assertEqual(page["counts"], {"pending": 1, "approved": 0, "rejected": 1})

        pending_only = await self.service.list_pending(PendingStatus.PENDING, search="612345672")
        self.assertEqual(pending_only["total"], 1)

class SequenceServiceTest(DatabaseTestCase):

    async def test_respects_minimum_start(self):
        sequences = SequenceService(self.db, start_from=7)

        self.assertEqual(await sequences.peek_next_value("test_counter"), 7)
        self.assertEqual(await sequences.next_value("test_counter"), 7)
        self.assertEqual(await sequences.next_value("test_counter"), 8)
        self.assertEqual(await sequences.peek_next_value("test_counter"), 9)
