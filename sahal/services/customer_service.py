"""Customer account management"""

from typing import Dict, Any, Optional
from datetime import datetime
from decimal import Decimal
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from sqlalchemy import select, update, delete
import logging
import uuid

from sahal.core.database import persistence_retry
from sahal.core.exceptions import (
    NotFoundException, ValidationException, DuplicatePhoneError, DuplicateIdNumberError
)
from sahal.models import (
    Customer, Card, CardRenewal, CardAuditLog, BillingRecord, Notification, PendingCustomer
)
from sahal.services.card_service import CardService
from sahal.services.sequence_service import SequenceService
from sahal.utils.dates import utcnow
from sahal.utils.validators import normalize_phone, normalize_text

logger = logging.getLogger(__name__)

class CustomerService:
    """Service for customer accounts and their cards"""

    def __init__(self, db: AsyncSession, sequences: Optional[SequenceService] = None):
        self.db = db
        self.cards = CardService(db)
        self.sequences = sequences or SequenceService(db)

    async def get_customer(self, customer_id: uuid.UUID) -> Customer:
        customer = await self.db.get(Customer, customer_id)
        if not customer:
            raise NotFoundException("Customer not found")
        return customer

    @persistence_retry
    async def create_customer_with_card(
        self,
        full_name: str,
        phone: str,
        id_number: Optional[str] = None,
        location: Optional[str] = None,
        monthly_fee: Optional[Decimal] = None,
        can_login: bool = True,
        now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Admin creates a customer directly, bypassing recruitment

        The customer and the card are committed together.
        """
        now = now or utcnow()

        try:
            phone = normalize_phone(phone)
        except ValueError as e:
            raise ValidationException(str(e))

        full_name = normalize_text(full_name or "")
        if not full_name:
            raise ValidationException("Full name is required")

        if await self.db.scalar(select(Customer.id).where(Customer.phone == phone)):
            raise DuplicatePhoneError()

        if id_number and await self.db.scalar(select(Customer.id).where(Customer.id_number == id_number)):
            raise DuplicateIdNumberError()

        try:
            customer = Customer(
                id=uuid.uuid4(),
                member_code=await self.sequences.next_member_code(),
                full_name=full_name,
                phone=phone,
                id_number=id_number,
                location=location,
                is_active=True,
                can_login=can_login,
            )
            self.db.add(customer)
            await self.db.flush()

            card = await self.cards.create_card(customer, monthly_fee, now)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if "id_number" in str(e.orig):
                raise DuplicateIdNumberError() from e
            raise DuplicatePhoneError() from e
        except Exception:
            await self.db.rollback()
            raise

        logger.info(f"Admin created customer {customer.member_code} with card {card.card_number}")
        return {"customer": customer, "card": card}

    @persistence_retry
    async def register_card(
        self,
        customer: Customer,
        full_name: Optional[str] = None,
        id_number: Optional[str] = None,
        location: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Card:
        """
        Customer without a card signs up for one

        Raises:
            DuplicateCardError: If the customer already has a card
            DuplicateIdNumberError: If the ID number belongs to another customer
        """
        now = now or utcnow()

        if id_number and await self.db.scalar(
            select(Customer.id).where(Customer.id_number == id_number, Customer.id != customer.id)
        ):
            raise DuplicateIdNumberError()

        try:
            if full_name:
                customer.full_name = normalize_text(full_name)
            if id_number:
                customer.id_number = id_number
            if location:
                customer.location = location

            card = await self.cards.create_card(customer, now=now)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(f"Customer {customer.id} registered card {card.card_number}")
        return card

    @persistence_retry
    async def delete_customer(self, customer_id: uuid.UUID) -> None:
        """
        Delete a customer and everything hanging off their card

        Notifications, billing records, renewal history, audit entries, the
        card and the customer go in one transaction. Recruitment records are
        kept with their link to the customer cleared.
        """
        customer = await self.get_customer(customer_id)

        try:
            card_ids = select(Card.id).where(Card.owner_id == customer_id)

            await self.db.execute(delete(Notification).where(Notification.customer_id == customer_id))
            await self.db.execute(delete(BillingRecord).where(BillingRecord.customer_id == customer_id))
            await self.db.execute(delete(CardRenewal).where(CardRenewal.card_id.in_(card_ids)))
            await self.db.execute(delete(CardAuditLog).where(CardAuditLog.card_id.in_(card_ids)))
            await self.db.execute(
                delete(Card)
                .where(Card.owner_id == customer_id)
                .execution_options(synchronize_session=False)
            )
            await self.db.execute(
                update(PendingCustomer)
                .where(PendingCustomer.resulting_customer_id == customer_id)
                .values(resulting_customer_id=None)
                .execution_options(synchronize_session=False)
            )
            await self.db.delete(customer)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(f"Deleted customer {customer_id} and their card data")
