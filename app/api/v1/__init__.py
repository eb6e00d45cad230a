"""API v1 router."""
from fastapi import APIRouter

from app.api.v1.plans import router as plans_router
from app.api.v1.subscription import router as subscription_router
from app.api.v1.payments import router as payments_router
from app.api.v1.admin import router as admin_router


router = APIRouter(prefix="/v1")

router.include_router(plans_router, prefix="/plans", tags=["Plans"])
router.include_router(subscription_router, prefix="/subscription", tags=["Subscription"])
router.include_router(payments_router, prefix="/payments", tags=["Payments"])
router.include_router(admin_router, prefix="/admin", tags=["Admin"])
