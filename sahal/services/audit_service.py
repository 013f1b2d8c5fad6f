"""Audit logging service"""

from typing import Dict, Any, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
import uuid

from sahal.models.admin_log import CardAuditLog

class AuditService:
    """Service for logging operator actions on cards"""

    def __init__(self, db: AsyncSession):
        self.db = db

    def log_card_action(
        self,
        actor_id: Optional[uuid.UUID],
        action: str,
        card_id: uuid.UUID,
        notes: Optional[str] = None,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None
    ) -> CardAuditLog:
        """Add an audit entry to the current unit of work"""
        log = CardAuditLog(
            actor_id=actor_id,
            action=action,
            card_id=card_id,
            notes=notes,
            old_values=old_values,
            new_values=new_values
        )
        self.db.add(log)
        return log

    async def get_card_logs(
        self,
        card_id: uuid.UUID,
        action: Optional[str] = None,
        limit: int = 100,
        offset: int = 0
    ) -> List[CardAuditLog]:
        """Get audit entries for a card, newest first"""
        stmt = select(CardAuditLog).where(CardAuditLog.card_id == card_id)

        if action:
            stmt = stmt.where(CardAuditLog.action == action)

        stmt = stmt.order_by(CardAuditLog.created_at.desc()).limit(limit).offset(offset)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())
