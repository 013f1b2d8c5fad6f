"""Base models and mixins for database models"""

from sqlalchemy import Column, DateTime, Uuid, Enum as SAEnum
from sqlalchemy.orm import DeclarativeBase, declared_attr
from sqlalchemy.sql import func
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, Optional
import uuid

from sahal.utils.dates import utcnow

# Create declarative base
class Base(DeclarativeBase):
    pass

class TimestampedModel:
    """Mixin for adding created_at and updated_at timestamps"""

    @declared_attr
    def created_at(cls):
        return Column(
            DateTime,
            nullable=False,
            default=utcnow,
            server_default=func.now(),
            index=True
        )

    @declared_attr
    def updated_at(cls):
        return Column(
            DateTime,
            nullable=False,
            default=utcnow,
            server_default=func.now(),
            onupdate=utcnow
        )

def value_enum(enum_cls, **kwargs) -> SAEnum:
    """Enum column type persisting member values rather than names"""
    return SAEnum(
        enum_cls,
        values_callable=lambda members: [member.value for member in members],
        **kwargs
    )

class UUIDModel:
    """Mixin for adding UUID primary key"""

    @declared_attr
    def id(cls):
        return Column(
            Uuid(as_uuid=True),
            primary_key=True,
            default=uuid.uuid4,
            nullable=False
        )

class SerializableModel:
    """Mixin exposing a JSON-friendly snapshot of selected columns"""

    def snapshot(self, fields: Optional[Iterable[str]] = None) -> Dict[str, Any]:
        """Convert model instance to dictionary"""
        names = list(fields) if fields else [c.name for c in self.__table__.columns]
        result = {}

        for name in names:
            value = getattr(self, name)

            # Handle special types
            if isinstance(value, datetime):
                value = value.isoformat()
            elif isinstance(value, uuid.UUID):
                value = str(value)
            elif isinstance(value, Decimal):
                value = str(value)
            elif isinstance(value, Enum):
                value = value.value

            result[name] = value

        return result

# Export all
__all__ = [
    'Base',
    'TimestampedModel',
    'UUIDModel',
    'SerializableModel',
    'value_enum',
]
