"""Entitlement resolution: what a tenant may still use right now."""
from datetime import datetime, timedelta
from typing import Optional

from app.core.enums import RenewalType, TenantStatus
from app.core.logging import get_logger
from app.subscription.catalog import PlanCatalog, find_plan
from app.subscription.models import EntitlementView, PlanSnapshot, TenantSnapshot
from app.subscription.trial import DEFAULT_TRIAL_POLICY, TrialPolicy, trial_state


logger = get_logger(__name__)

EXPIRY_WARNING_WINDOW = timedelta(days=7)


def _period_end_is_near(tenant: TenantSnapshot, now: datetime) -> bool:
    horizon = now + EXPIRY_WARNING_WINDOW
    return any(
        end is not None and end <= horizon
        for end in (tenant.subscription_end, tenant.billing_cycle_end)
    )


def _trial_entitlement(tenant: TenantSnapshot, now: datetime, policy: TrialPolicy) -> EntitlementView:
    trial = trial_state(tenant, now, policy)
    return EntitlementView(
        status=tenant.status,
        renewal_type=tenant.renewal_type,
        used=tenant.services_used_this_month,
        total=policy.max_services,
        remaining=trial.services_remaining,
        limit_reached=trial.must_upgrade,
        user_limit_reached=tenant.active_user_count >= policy.max_users,
        is_expiring=trial.days_remaining <= policy.expiring_threshold_days,
        days_remaining=trial.days_remaining,
        plan_name="Período de Prueba",
    )


def _service_count_entitlement(
    tenant: TenantSnapshot, plan: Optional[PlanSnapshot], now: datetime,
) -> EntitlementView:
    # Purchased credits live on the tenant; the catalog entry is optional.
    return EntitlementView(
        status=tenant.status,
        renewal_type=tenant.renewal_type,
        used=tenant.services_used,
        total=tenant.total_services_contracted,
        remaining=tenant.services_remaining,
        limit_reached=tenant.services_remaining == 0,
        user_limit_reached=plan is not None and tenant.active_user_count >= plan.max_users,
        is_expiring=_period_end_is_near(tenant, now),
        plan_name=plan.name if plan else None,
    )


def _recurring_entitlement(
    tenant: TenantSnapshot, plan: Optional[PlanSnapshot], now: datetime,
) -> EntitlementView:
    used = tenant.services_used_this_month
    if plan is None:
        logger.warning(
            f"Plan '{tenant.plan_id}' missing from catalog; allowing usage for tenant {tenant.id}",
            extra={"tenant_id": tenant.id, "plan_id": tenant.plan_id},
        )
        return EntitlementView(
            status=tenant.status,
            renewal_type=tenant.renewal_type,
            used=used,
            total=None,
            remaining=None,
            limit_reached=False,
            is_expiring=_period_end_is_near(tenant, now),
            catalog_missing=True,
        )

    limit = plan.max_monthly_services
    return EntitlementView(
        status=tenant.status,
        renewal_type=tenant.renewal_type,
        used=used,
        total=limit,
        remaining=None if limit is None else max(0, limit - used),
        limit_reached=limit is not None and used >= limit,
        user_limit_reached=tenant.active_user_count >= plan.max_users,
        is_expiring=_period_end_is_near(tenant, now),
        plan_name=plan.name,
    )


def resolve_entitlement(
    tenant: TenantSnapshot,
    catalog: PlanCatalog,
    now: datetime,
    policy: TrialPolicy = DEFAULT_TRIAL_POLICY,
) -> EntitlementView:
    """Dispatch on (status, renewal type) to the matching entitlement rule.

    A recurring plan missing from the catalog fails open: usage is never
    blocked for a catalog gap, the view is flagged ``catalog_missing`` instead.
    """
    if tenant.status == TenantStatus.INACTIVE:
        return EntitlementView(
            status=tenant.status,
            renewal_type=tenant.renewal_type,
            used=tenant.services_used if tenant.is_service_count else tenant.services_used_this_month,
            total=0,
            remaining=0,
            limit_reached=True,
            user_limit_reached=True,
        )

    if tenant.status == TenantStatus.TRIAL:
        return _trial_entitlement(tenant, now, policy)

    plan = find_plan(catalog, tenant.plan_id)
    if tenant.renewal_type == RenewalType.SERVICE_COUNT:
        return _service_count_entitlement(tenant, plan, now)
    if tenant.renewal_type in (RenewalType.MONTHLY, RenewalType.SEMIANNUAL, RenewalType.ANNUAL):
        return _recurring_entitlement(tenant, plan, now)

    raise ValueError(f"Unhandled renewal type: {tenant.renewal_type}")


def can_add_user(
    tenant: TenantSnapshot,
    catalog: PlanCatalog,
    policy: TrialPolicy = DEFAULT_TRIAL_POLICY,
) -> bool:
    """Whether one more seat fits the tenant's plan."""
    if tenant.status == TenantStatus.TRIAL:
        return tenant.active_user_count < policy.max_users
    if tenant.status != TenantStatus.ACTIVE:
        return False

    plan = find_plan(catalog, tenant.plan_id)
    if plan is None:
        return True
    return tenant.active_user_count < plan.max_users
