"""
Custom exception classes and error handlers
Provides consistent error responses across the application
"""

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)

class SahalException(HTTPException):
    """Base exception class for the Sahal Card application"""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code

class BadRequestException(SahalException):
    """400 Bad Request"""

    def __init__(self, detail: str, error_code: str = "BAD_REQUEST"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code=error_code
        )

class UnauthorizedException(SahalException):
    """401 Unauthorized"""

    def __init__(self, detail: str = "Unauthorized", error_code: str = "UNAUTHORIZED"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code=error_code,
            headers={"WWW-Authenticate": "Bearer"}
        )

class ForbiddenException(SahalException):
    """403 Forbidden"""

    def __init__(self, detail: str = "Forbidden", error_code: str = "FORBIDDEN"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            error_code=error_code
        )

class NotFoundException(SahalException):
    """404 Not Found"""

    def __init__(self, detail: str = "Not found", error_code: str = "NOT_FOUND"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            error_code=error_code
        )

class ConflictException(SahalException):
    """409 Conflict"""

    def __init__(self, detail: str, error_code: str = "CONFLICT"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            error_code=error_code
        )

class ValidationException(SahalException):
    """422 Unprocessable Entity"""

    def __init__(self, detail: str, error_code: str = "VALIDATION_ERROR"):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
            error_code=error_code
        )

class InternalPersistenceError(SahalException):
    """500 raised once the persistence layer has exhausted its retry"""

    def __init__(
        self,
        detail: str = "Storage temporarily unavailable",
        error_code: str = "PERSISTENCE_ERROR"
    ):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            error_code=error_code
        )

# Business logic exceptions
class DuplicatePhoneError(ConflictException):
    """Phone number already belongs to a customer or a pending submission"""

    def __init__(self, detail: str = "Customer with this phone number already exists"):
        super().__init__(detail=detail, error_code="DUPLICATE_PHONE")

class DuplicateIdNumberError(ConflictException):
    """National ID number already belongs to a customer or a pending submission"""

    def __init__(self, detail: str = "Customer with this ID number already exists"):
        super().__init__(detail=detail, error_code="DUPLICATE_ID_NUMBER")

class DuplicateCardError(ConflictException):
    """Owner already has a card"""

    def __init__(self, detail: str = "Customer already has a Sahal Card"):
        super().__init__(detail=detail, error_code="DUPLICATE_CARD")

class DuplicateCardNumberError(ConflictException):
    """Derived card number collides with an existing card"""

    def __init__(self, card_number: str):
        super().__init__(
            detail=f"Card number {card_number} is already in use",
            error_code="DUPLICATE_CARD_NUMBER"
        )

class AlreadyReviewedError(ConflictException):
    """Pending customer is no longer pending"""

    def __init__(self, current_status: str):
        super().__init__(
            detail=f"Customer has already been {current_status}",
            error_code="ALREADY_REVIEWED"
        )

class CardCancelledError(ConflictException):
    """Cancelled cards accept no further transitions"""

    def __init__(self, card_number: str):
        super().__init__(
            detail=f"Card {card_number} is cancelled",
            error_code="CARD_CANCELLED"
        )

class ConcurrentModificationException(ConflictException):
    """Record changed between read and write"""

    def __init__(self, resource: str = "Record"):
        super().__init__(
            detail=f"{resource} was modified concurrently, please retry",
            error_code="CONCURRENT_MODIFICATION"
        )

class BelowMinimumPaymentError(BadRequestException):
    """Flexible payment below one month's worth"""

    def __init__(self, detail: str = "Amount must be at least $1 (1 month)"):
        super().__init__(detail=detail, error_code="BELOW_MINIMUM_PAYMENT")

class PaymentNotDueException(BadRequestException):
    """Self-service renewal attempted before the due date"""

    def __init__(self, days_remaining: int):
        super().__init__(
            detail=f"Payment not due yet ({days_remaining} days remaining)",
            error_code="PAYMENT_NOT_DUE"
        )
        self.days_remaining = days_remaining

async def sahal_exception_handler(request: Request, exc: SahalException) -> JSONResponse:
    """Render application errors in a consistent envelope"""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": {
                "code": exc.error_code,
                "message": exc.detail
            }
        },
        headers=exc.headers
    )

def register_exception_handlers(app: FastAPI) -> None:
    """Attach handlers to the application"""
    app.add_exception_handler(SahalException, sahal_exception_handler)
