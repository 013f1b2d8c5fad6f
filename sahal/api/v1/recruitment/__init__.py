"""Recruitment module exports"""

from . import router, schemas

__all__ = ["router", "schemas"]
