"""Sequential identifier generation"""

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update

from sahal.core.config import settings
from sahal.models.sequence import Sequence

CUSTOMER_SEQUENCE = "customer_id"
MEMBER_CODE_WIDTH = 3

class SequenceService:
    """Hands out increasing integers per named counter"""

    def __init__(self, db: AsyncSession, start_from: Optional[int] = None):
        self.db = db
        self.start_from = start_from if start_from is not None else settings.CUSTOMER_ID_START

    async def next_value(self, name: str = CUSTOMER_SEQUENCE) -> int:
        """
        Increment and return the counter

        The first value handed out is never below ``start_from``. Runs inside
        the caller's transaction, so a rolled back unit of work gives the
        number back.
        """
        result = await self.db.execute(
            update(Sequence)
            .where(Sequence.name == name)
            .values(value=Sequence.value + 1)
        )

        if result.rowcount == 0:
            self.db.add(Sequence(name=name, value=self.start_from))
            await self.db.flush()
            return self.start_from

        value = await self.db.scalar(select(Sequence.value).where(Sequence.name == name))
        if value < self.start_from:
            await self.db.execute(
                update(Sequence).where(Sequence.name == name).values(value=self.start_from)
            )
            value = self.start_from
        return value

    async def peek_next_value(self, name: str = CUSTOMER_SEQUENCE) -> int:
        """Predict the next value without consuming it"""
        current = await self.db.scalar(select(Sequence.value).where(Sequence.name == name))
        if current is None or current < self.start_from - 1:
            return self.start_from
        return current + 1

    async def next_member_code(self) -> str:
        """Next customer identifier, zero padded"""
        value = await self.next_value(CUSTOMER_SEQUENCE)
        return str(value).zfill(MEMBER_CODE_WIDTH)
