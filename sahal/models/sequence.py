"""Named counters for externally visible identifiers"""

from sqlalchemy import Column, String, Integer

from .base import Base

class Sequence(Base):
    __tablename__ = "sequences"

    name = Column(String(50), primary_key=True)
    value = Column(Integer, nullable=False, default=0)
