"""API v1 router aggregator.

URL structure with /api/v1 prefix. All v1 endpoint routers are included here.
"""

from fastapi import APIRouter

from app.api.v1 import account_creation

router = APIRouter()

# =============================================================================
# Investor onboarding
# =============================================================================

router.include_router(
    account_creation.router,
    prefix="/account-creation",
    tags=["account-creation"],
)
