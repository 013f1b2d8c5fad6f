"""Tests for card transitions and the card service"""

from datetime import datetime, timedelta
from decimal import Decimal
from unittest import TestCase
import uuid

from sqlalchemy import select, update, func

from sahal.core.exceptions import (
    CardCancelledError, ConcurrentModificationException, DuplicateCardError,
    DuplicateCardNumberError, NotFoundException
)
from sahal.models import (
    Card, CardAuditLog, CardPaymentStatus, CardRenewal, CardStatus, Customer, Notification,
    NotificationType
)
from sahal.services.card_service import CardService
from sahal.utils.dates import add_months_clamped
from tests.base import DatabaseTestCase

NOW = datetime(2024, 6, 15, 12, 0, 0)

def build_card(now=NOW, member_code="0000123"):
    owner = Customer(id=uuid.uuid4(), member_code=member_code, full_name="Ahmed Yusuf", phone="+252615000001")
    card, _ = Card.issue(owner, now)
    return card

class CardNumberTest(TestCase):

    def test_short_member_code_is_zero_padded(self):
        self.assertEqual(Card.derive_card_number("042"), "00000042")

    def test_long_member_code_keeps_last_eight_digits(self):
        self.assertEqual(Card.derive_card_number("SC-1234567890"), "34567890")

class CardTransitionTest(TestCase):

    def test_issue_is_valid_for_one_month(self):
        owner = Customer(id=uuid.uuid4(), member_code="7", full_name="Ahmed", phone="+252615000001")
        card, renewal = Card.issue(owner, NOW)

        self.assertEqual(card.card_number, "00000007")
        self.assertEqual(card.valid_until, datetime(2024, 7, 15, 12, 0, 0))
        self.assertEqual(card.next_payment_due, card.valid_until)
        self.assertEqual(card.monthly_fee, Decimal("1.00"))
        self.assertTrue(card.is_usable(NOW))
        self.assertEqual(renewal.months_added, 1)
        self.assertEqual(renewal.method, "initial")
        self.assertEqual(renewal.card_id, card.id)

    def test_renew_extends_from_current_expiry_while_valid(self):
        card = build_card()
        old_valid_until = NOW + timedelta(days=10)
        card.valid_until = old_valid_until

        renewal = card.renew_for_duration(Decimal("6"), NOW)

        self.assertEqual(card.valid_until, add_months_clamped(old_valid_until, 6))
        self.assertEqual(card.next_payment_due, add_months_clamped(card.valid_until, -1))
        self.assertEqual(renewal.months_added, 6)
        self.assertEqual(renewal.valid_until_after, card.valid_until)

    def test_renew_floors_fractional_amounts(self):
        card = build_card()
        start = card.valid_until

        renewal = card.renew_for_duration(Decimal("2.75"), NOW)

        self.assertEqual(renewal.months_added, 2)
        self.assertEqual(card.valid_until, add_months_clamped(start, 2))

    def test_renew_below_one_unit_only_records_history(self):
        card = build_card()
        valid_until = card.valid_until
        due = card.next_payment_due

        renewal = card.renew_for_duration(Decimal("0.5"), NOW)

        self.assertEqual(renewal.months_added, 0)
        self.assertEqual(renewal.amount_paid, Decimal("0.5"))
        self.assertEqual(card.valid_until, valid_until)
        self.assertEqual(card.next_payment_due, due)

    def test_renew_lapsed_card_starts_from_now(self):
        card = build_card(now=NOW - timedelta(days=60))
        self.assertLess(card.valid_until, NOW)

        card.renew_for_duration(Decimal("1"), NOW)

        self.assertEqual(card.valid_until, add_months_clamped(NOW, 1))
        self.assertEqual(card.next_payment_due, NOW)
        self.assertEqual(card.last_payment_date, NOW)

    def test_renew_lifts_payment_suspension(self):
        card = build_card()
        card.mark_invalid()
        self.assertFalse(card.is_usable(NOW))

        card.renew_for_duration(Decimal("3"), NOW)

        self.assertTrue(card.is_usable(NOW))
        self.assertEqual(card.status, CardStatus.ACTIVE)
        self.assertEqual(card.payment_status, CardPaymentStatus.VALID)
        self.assertIsNone(card.suspension_reason)

    def test_cancelled_card_rejects_transitions(self):
        card = build_card()
        card.cancel("Closed by holder")

        with self.assertRaises(CardCancelledError):
            card.renew_for_duration(Decimal("1"), NOW)
        with self.assertRaises(CardCancelledError):
            card.mark_valid(NOW)
        with self.assertRaises(CardCancelledError):
            card.reactivate()
        self.assertEqual(card.unusable_reason(NOW), "Card cancelled")

    def test_mark_invalid_uses_default_reason(self):
        card = build_card()
        card.mark_invalid()

        self.assertEqual(card.status, CardStatus.SUSPENDED)
        self.assertFalse(card.is_enabled)
        self.assertEqual(card.suspension_reason, "Payment not received")
        self.assertEqual(
            card.unusable_reason(NOW),
            "Card suspended - payment not received. Please contact admin to reactivate."
        )

    def test_reactivate_leaves_unpaid_card_unusable(self):
        card = build_card()
        card.mark_invalid("No cash received")
        card.reactivate()

        self.assertEqual(card.status, CardStatus.ACTIVE)
        self.assertTrue(card.is_enabled)
        self.assertEqual(card.payment_status, CardPaymentStatus.INVALID)
        self.assertFalse(card.is_usable(NOW))

    def test_disciplinary_suspension_reason(self):
        card = build_card()
        card.suspend("Card shared with another person")

        self.assertEqual(card.payment_status, CardPaymentStatus.VALID)
        self.assertEqual(card.unusable_reason(NOW), "Card suspended: Card shared with another person")
        self.assertEqual(card.status_text(NOW), "Suspended")

    def test_mark_valid_resets_window_to_one_month(self):
        card = build_card(now=NOW - timedelta(days=90))
        card.mark_invalid()

        card.mark_valid(NOW, "Paid at the office")

        self.assertEqual(card.valid_until, add_months_clamped(NOW, 1))
        self.assertEqual(card.next_payment_due, card.valid_until)
        self.assertEqual(card.payment_notes, "Paid at the office")
        self.assertTrue(card.is_usable(NOW))

    def test_status_text_and_days_remaining(self):
        card = build_card()

        card.valid_until = NOW + timedelta(days=40)
        self.assertEqual(card.status_text(NOW), "Active")
        self.assertEqual(card.days_remaining(NOW), 40)

        card.valid_until = NOW + timedelta(days=10, hours=2)
        self.assertEqual(card.status_text(NOW), "Expiring Soon")
        self.assertEqual(card.days_remaining(NOW), 11)

        card.valid_until = NOW - timedelta(days=1)
        self.assertEqual(card.status_text(NOW), "Expired")
        self.assertEqual(card.days_remaining(NOW), 0)
        self.assertEqual(card.unusable_reason(NOW), "Card expired")

    def test_add_savings(self):
        card = build_card()
        card.add_savings(Decimal("2.50"), NOW)
        card.add_savings(Decimal("1.25"), NOW)

        self.assertEqual(card.total_savings, Decimal("3.75"))
        self.assertEqual(card.total_transactions, 2)
        self.assertEqual(card.last_used_at, NOW)

class CardServiceTest(DatabaseTestCase):

    async def test_create_card_writes_initial_renewal(self):
        card = await self.make_card(NOW, member_code="042")

        renewals = await self.db.scalar(
            select(func.count(CardRenewal.id)).where(CardRenewal.card_id == card.id)
        )
        self.assertEqual(card.card_number, "00000042")
        self.assertEqual(renewals, 1)
        self.assertEqual(card.version, 1)

    async def test_second_card_for_owner_is_rejected(self):
        card = await self.make_card(NOW)
        owner = await self.db.get(Customer, card.owner_id)

        with self.assertRaises(DuplicateCardError):
            await CardService(self.db).create_card(owner, now=NOW)

    async def test_card_number_collision_is_rejected(self):
        await self.make_card(NOW, member_code="1", phone="+252615000001")
        other = await self.make_customer(member_code="001", phone="+252615000002")

        with self.assertRaises(DuplicateCardNumberError):
            await CardService(self.db).create_card(other, now=NOW)

    async def test_usability_of_inactive_holder(self):
        card = await self.make_card(NOW)
        owner = await self.db.get(Customer, card.owner_id)
        owner.is_active = False
        await self.db.commit()

        result = await CardService(self.db).is_card_usable(card.card_number, now=NOW)

        self.assertFalse(result["usable"])
        self.assertEqual(result["reason"], "Customer account is inactive")
        self.assertEqual(result["days_remaining"], 0)

    async def test_usability_of_unknown_card(self):
        with self.assertRaises(NotFoundException):
            await CardService(self.db).is_card_usable("99999999")

    async def test_mark_invalid_is_audited(self):
        card = await self.make_card(NOW)
        admin_id = uuid.uuid4()

        await CardService(self.db).mark_invalid(card.card_number, actor_id=admin_id, notes="Cheque bounced")

        log = await self.db.scalar(select(CardAuditLog).where(CardAuditLog.card_id == card.id))
        self.assertEqual(log.action, "mark_invalid")
        self.assertEqual(log.actor_id, admin_id)
        self.assertEqual(log.old_values["payment_status"], "valid")
        self.assertEqual(log.new_values["payment_status"], "invalid")
        self.assertEqual(log.new_values["suspension_reason"], "Cheque bounced")

    async def test_suspend_notifies_holder(self):
        card = await self.make_card(NOW)

        await CardService(self.db).suspend(card.card_number, "Misuse")

        notification = await self.db.scalar(
            select(Notification).where(Notification.customer_id == card.owner_id)
        )
        self.assertEqual(notification.type, NotificationType.CARD_SUSPENDED)
        self.assertEqual(notification.data["reason"], "Misuse")

    async def test_renewal_history_is_immutable(self):
        card = await self.make_card(NOW)
        renewal = await self.db.scalar(select(CardRenewal).where(CardRenewal.card_id == card.id))

        renewal.amount_paid = Decimal("99.00")
        with self.assertRaises(ValueError):
            await self.db.flush()
        await self.db.rollback()

    async def test_stale_card_write_is_a_conflict(self):
        card = await self.make_card(NOW)
        service = CardService(self.db)
        await service.get_by_number(card.card_number)

        # Another writer bumps the version behind this session's back
        await self.db.execute(
            update(Card)
            .where(Card.id == card.id)
            .values(version=Card.version + 1)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

        with self.assertRaises(ConcurrentModificationException):
            await service.mark_invalid(card.card_number)

    async def test_payment_summary(self):
        await self.make_card(NOW, member_code="001", phone="+252615000001")
        second = await self.make_card(NOW, member_code="002", phone="+252615000002")
        await CardService(self.db).mark_invalid(second.card_number)

        summary = await CardService(self.db).get_payment_summary(now=NOW)

        self.assertEqual(summary["total_cards"], 2)
        self.assertEqual(summary["valid_payments"], 1)
        self.assertEqual(summary["invalid_payments"], 1)
        self.assertEqual(summary["payment_rate"], 50.0)
