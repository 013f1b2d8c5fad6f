"""
Security utilities for authentication and authorization
Handles JWT tokens and resolves the caller into a Principal
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, Union
from jose import JWTError, jwt
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import uuid

from .config import settings
from .exceptions import UnauthorizedException, ForbiddenException

# Security scheme
security = HTTPBearer(auto_error=False)

ROLE_CUSTOMER = "customer"
ROLE_MARKETER = "marketer"
ROLE_ADMIN = "admin"

@dataclass(frozen=True)
class CustomerPrincipal:
    id: uuid.UUID
    phone: Optional[str] = None
    role: str = ROLE_CUSTOMER

@dataclass(frozen=True)
class MarketerPrincipal:
    id: uuid.UUID
    phone: Optional[str] = None
    role: str = ROLE_MARKETER

@dataclass(frozen=True)
class AdminPrincipal:
    id: uuid.UUID
    phone: Optional[str] = None
    role: str = ROLE_ADMIN

Principal = Union[CustomerPrincipal, MarketerPrincipal, AdminPrincipal]

_PRINCIPAL_TYPES = {
    ROLE_CUSTOMER: CustomerPrincipal,
    ROLE_MARKETER: MarketerPrincipal,
    ROLE_ADMIN: AdminPrincipal,
}

class SecurityUtils:
    """Security utility functions"""

    @staticmethod
    def create_access_token(data: Dict[str, Any], expires_minutes: Optional[int] = None) -> str:
        """Create JWT access token"""
        to_encode = data.copy()
        minutes = expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES
        expire = datetime.now(timezone.utc) + timedelta(minutes=minutes)
        to_encode.update({"exp": expire, "type": "access"})
        return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    @staticmethod
    def decode_token(token: str) -> Dict[str, Any]:
        """Decode and validate JWT token"""
        try:
            return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        except JWTError:
            raise UnauthorizedException("Invalid authentication credentials")

def principal_from_payload(payload: Dict[str, Any]) -> Principal:
    """Build the tagged principal from decoded token claims"""
    if payload.get("type") != "access":
        raise UnauthorizedException("Invalid token type")

    principal_type = _PRINCIPAL_TYPES.get(payload.get("role"))
    if principal_type is None:
        raise UnauthorizedException("Unknown role")

    try:
        principal_id = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        raise UnauthorizedException("Invalid subject")

    return principal_type(id=principal_id, phone=payload.get("phone"))

# Dependency to get current principal from token
async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Principal:
    """Extract and validate the caller from the bearer token"""
    if credentials is None:
        raise UnauthorizedException()
    payload = SecurityUtils.decode_token(credentials.credentials)
    return principal_from_payload(payload)

# Role-based access control
def require_role(*principal_types):
    """Dependency factory restricting access to the given principal types"""
    async def role_checker(principal: Principal = Depends(get_current_principal)) -> Principal:
        if not isinstance(principal, principal_types):
            raise ForbiddenException("Insufficient permissions")
        return principal
    return role_checker

# Specific role dependencies
require_admin = require_role(AdminPrincipal)
require_marketer = require_role(MarketerPrincipal)
require_customer = require_role(CustomerPrincipal)
