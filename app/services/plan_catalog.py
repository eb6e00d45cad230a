"""Plan catalog loading."""
from typing import Dict

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.models.plan import Plan
from app.subscription.catalog import FALLBACK_PLANS
from app.subscription.models import PlanSnapshot


logger = get_logger(__name__)


def plan_to_snapshot(plan: Plan) -> PlanSnapshot:
    return PlanSnapshot.model_validate(
        {
            "id": plan.id,
            "name": plan.name,
            "description": plan.description or "",
            "plan_type": plan.plan_type,
            "price_monthly": plan.price_monthly,
            "price_semiannual": plan.price_semiannual,
            "max_users": plan.max_users,
            "max_monthly_services": plan.max_monthly_services,
            "service_price": plan.service_price,
            "total_services": plan.total_services,
            "validity_months": plan.validity_months,
            "is_active": plan.is_active,
            "publish_on_homepage": plan.publish_on_homepage,
            "display_order": plan.display_order,
            "recommended": plan.recommended,
            "features": plan.features or [],
        }
    )


async def load_plan_catalog(db: AsyncSession) -> Dict[str, PlanSnapshot]:
    """Read every plan; fall back to the built-in catalog when none are stored."""
    result = await db.execute(select(Plan).order_by(Plan.display_order, Plan.id))
    plans = result.scalars().all()

    if not plans:
        logger.warning("No plans stored; using built-in fallback catalog")
        return dict(FALLBACK_PLANS)

    return {plan.id: plan_to_snapshot(plan) for plan in plans}
