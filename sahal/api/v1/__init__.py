"""API v1 routes aggregation"""

from fastapi import APIRouter

from .cards.router import router as cards_router
from .payments.router import router as payments_router
from .recruitment.router import router as recruitment_router
from .admin.router import router as admin_router
from .marketers.router import router as marketers_router

# Create v1 router
api_router = APIRouter()

# Include all routers
api_router.include_router(cards_router, prefix="/cards", tags=["Cards"])
api_router.include_router(payments_router, prefix="/payments", tags=["Payments"])
api_router.include_router(recruitment_router, prefix="/recruitment", tags=["Recruitment"])
api_router.include_router(admin_router, prefix="/admin", tags=["Admin"])
api_router.include_router(marketers_router, prefix="/marketers", tags=["Marketers"])

# Export router
router = api_router
