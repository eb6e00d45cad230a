"""Plan catalog lookup helpers and the built-in fallback catalog."""
from typing import Dict, Mapping, Optional, Union

from app.core.enums import BillingType, PlanType, RenewalType
from app.subscription.errors import UnknownPlan
from app.subscription.models import PlanSnapshot


PlanCatalog = Mapping[str, PlanSnapshot]


# Used only when the plans table is empty or unreachable.
FALLBACK_PLANS: Dict[str, PlanSnapshot] = {
    plan.id: plan
    for plan in (
        PlanSnapshot(
            id="starter",
            name="Plan Iniciante",
            description="Ideal para lubricentros que están comenzando",
            price_monthly=1500,
            price_semiannual=8000,
            max_users=1,
            max_monthly_services=25,
            display_order=1,
        ),
        PlanSnapshot(
            id="basic",
            name="Plan Básico",
            description="Ideal para lubricentros pequeños",
            price_monthly=2500,
            price_semiannual=12000,
            max_users=2,
            max_monthly_services=50,
            display_order=2,
        ),
        PlanSnapshot(
            id="premium",
            name="Plan Premium",
            description="Perfecto para lubricentros en crecimiento",
            price_monthly=4500,
            price_semiannual=22500,
            max_users=5,
            max_monthly_services=150,
            display_order=3,
            recommended=True,
        ),
        PlanSnapshot(
            id="enterprise",
            name="Plan Empresarial",
            description="Para lubricentros grandes y cadenas",
            price_monthly=7500,
            price_semiannual=37500,
            max_users=999,
            max_monthly_services=None,
            display_order=4,
        ),
    )
}


def find_plan(catalog: PlanCatalog, plan_id: Optional[str]) -> Optional[PlanSnapshot]:
    if not plan_id:
        return None
    return catalog.get(plan_id)


def require_plan(catalog: PlanCatalog, plan_id: Optional[str]) -> PlanSnapshot:
    plan = find_plan(catalog, plan_id)
    if plan is None:
        raise UnknownPlan(plan_id)
    return plan


def coerce_billing_type(value: Union[BillingType, str, None]) -> BillingType:
    """Anything other than an explicit semiannual request bills monthly."""
    if isinstance(value, BillingType):
        return value
    if isinstance(value, str) and value.strip().lower() == BillingType.SEMIANNUAL.value:
        return BillingType.SEMIANNUAL
    return BillingType.MONTHLY


def effective_price(plan: PlanSnapshot, billing_type: Union[BillingType, str, None] = None) -> float:
    """Amount charged for ``plan``; service plans ignore the billing type."""
    if plan.plan_type == PlanType.SERVICE:
        return plan.service_price or 0.0
    if coerce_billing_type(billing_type) == BillingType.SEMIANNUAL:
        return plan.price_semiannual
    return plan.price_monthly


def period_months(plan: PlanSnapshot, billing_type: Union[BillingType, str, None] = None) -> int:
    if plan.plan_type == PlanType.SERVICE:
        return plan.validity_months or 6
    if coerce_billing_type(billing_type) == BillingType.SEMIANNUAL:
        return 6
    return 1


def renewal_type_for(plan: PlanSnapshot, billing_type: Union[BillingType, str, None] = None) -> RenewalType:
    if plan.plan_type == PlanType.SERVICE:
        return RenewalType.SERVICE_COUNT
    if coerce_billing_type(billing_type) == BillingType.SEMIANNUAL:
        return RenewalType.SEMIANNUAL
    return RenewalType.MONTHLY


def published_plans(catalog: PlanCatalog) -> list:
    """Active plans in display order."""
    return sorted(
        (p for p in catalog.values() if p.is_active),
        key=lambda p: (p.display_order, p.id),
    )


def format_plan_name(plan_id: Optional[str], catalog: Optional[PlanCatalog] = None) -> str:
    if not plan_id:
        return "Sin plan"
    plan = find_plan(catalog or {}, plan_id)
    if plan is not None:
        return plan.name
    return " ".join(word.capitalize() for word in plan_id.replace("_", " ").split())
