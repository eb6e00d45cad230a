"""Payment-driven and administrative state transitions of a tenant."""
from datetime import datetime
from typing import Optional, Union

from app.core.dates import add_months
from app.core.enums import BillingType, PaymentStatus, TenantStatus
from app.core.logging import get_logger
from app.subscription.catalog import (
    PlanCatalog, coerce_billing_type, effective_price, period_months,
    renewal_type_for, require_plan,
)
from app.subscription.entitlement import resolve_entitlement
from app.subscription.errors import (
    InvalidQuantity, InvalidTenantState, PaymentNotApproved, ServiceLimitExceeded,
    ServiceLimitReached, UserLimitExceeded,
)
from app.subscription.models import PaymentEvent, PaymentRecord, PlanSnapshot, TenantSnapshot
from app.subscription.trial import DEFAULT_TRIAL_POLICY, TrialPolicy, trial_state


logger = get_logger(__name__)

GATEWAY_PAYMENT_METHOD = "gateway"


def _activate_plan(
    tenant: TenantSnapshot,
    plan: PlanSnapshot,
    billing_type: BillingType,
    record: PaymentRecord,
    now: datetime,
    auto_renewal: bool,
) -> TenantSnapshot:
    period_end = add_months(now, period_months(plan, billing_type))

    changes = {
        "status": TenantStatus.ACTIVE,
        "plan_id": plan.id,
        "renewal_type": renewal_type_for(plan, billing_type),
        "payment_status": PaymentStatus.PAID,
        "auto_renewal": auto_renewal,
        "subscription_start": now,
        "subscription_end": period_end,
        "billing_cycle_end": period_end,
        "services_used_this_month": 0,
        "pending_plan_id": None,
        "pending_billing_type": None,
        "inactive_reason": None,
        "inactive_since": None,
        "renewal_count": tenant.renewal_count + 1,
        "payment_history": tenant.payment_history + (record,),
    }

    if plan.is_service_plan:
        # A paid service plan loads a brand-new bucket.
        total = plan.total_services or 0
        changes.update(
            total_services_contracted=total,
            services_used=0,
            services_remaining=total,
            service_subscription_expiry=period_end,
        )

    logger.info(
        f"Activated plan '{plan.id}' ({billing_type.value}) for tenant {tenant.id}, "
        f"amount {record.amount} via {record.method}",
        extra={"tenant_id": tenant.id, "payment_id": record.reference, "plan_id": plan.id},
    )
    return tenant.evolve(**changes)


def apply_approved_payment(
    tenant: TenantSnapshot,
    catalog: PlanCatalog,
    payment: PaymentEvent,
    now: datetime,
) -> TenantSnapshot:
    """Activate the plan a tenant just paid for.

    Every paid activation opens a fresh billing period, so the monthly counter
    restarts at zero even on a mid-cycle plan switch. Not idempotent: callers
    deduplicate on ``payment.payment_id``.
    """
    if not payment.approved:
        raise PaymentNotApproved(payment.payment_id, payment.status.value)

    plan = require_plan(catalog, payment.plan_id or tenant.pending_plan_id)
    billing_type = coerce_billing_type(payment.billing_type or tenant.pending_billing_type)

    record = PaymentRecord(
        amount=effective_price(plan, billing_type),
        paid_at=now,
        method=GATEWAY_PAYMENT_METHOD,
        reference=payment.payment_id,
        plan_id=plan.id,
        billing_type=billing_type.value,
    )
    return _activate_plan(tenant, plan, billing_type, record, now, auto_renewal=True)


def record_manual_payment(
    tenant: TenantSnapshot,
    catalog: PlanCatalog,
    plan_id: Optional[str],
    billing_type: Union[BillingType, str, None],
    amount: Optional[float],
    method: str,
    reference: str,
    now: datetime,
) -> TenantSnapshot:
    """Activate a plan paid outside the gateway (bank transfer, cash).

    The plan defaults to the pending one, then the current one, and the amount
    to the catalog price. Offline payments do not renew by themselves.
    """
    plan = require_plan(catalog, plan_id or tenant.pending_plan_id or tenant.plan_id)
    billing = coerce_billing_type(billing_type or tenant.pending_billing_type)
    if amount is not None and amount < 0:
        raise InvalidQuantity(f"Payment amount cannot be negative (got {amount}).", limit=0)

    record = PaymentRecord(
        amount=effective_price(plan, billing) if amount is None else amount,
        paid_at=now,
        method=method,
        reference=reference,
        plan_id=plan.id,
        billing_type=billing.value,
    )
    return _activate_plan(tenant, plan, billing, record, now, auto_renewal=False)


def request_plan_change(
    tenant: TenantSnapshot,
    catalog: PlanCatalog,
    new_plan_id: str,
    billing_type: Union[BillingType, str, None] = None,
) -> TenantSnapshot:
    """Record the plan an active tenant intends to pay for.

    The pending markers are advisory: entitlement does not change until an
    approved payment is applied.
    """
    if tenant.status != TenantStatus.ACTIVE:
        raise InvalidTenantState(
            f"Only active tenants can change plan (current status: {tenant.status.value}). "
            "Complete a payment to activate instead."
        )

    plan = require_plan(catalog, new_plan_id)

    limit = plan.max_monthly_services
    if limit is not None and tenant.services_used_this_month > limit:
        raise ServiceLimitExceeded(
            f"Plan '{plan.name}' allows at most {limit} services per month, "
            f"but {tenant.services_used_this_month} were already used this month.",
            limit=limit,
        )

    if tenant.active_user_count > plan.max_users:
        raise UserLimitExceeded(
            f"Plan '{plan.name}' allows at most {plan.max_users} users, "
            f"but the tenant has {tenant.active_user_count} active users.",
            limit=plan.max_users,
        )

    return tenant.evolve(
        pending_plan_id=plan.id,
        pending_billing_type=coerce_billing_type(billing_type),
    )


def record_service_usage(
    tenant: TenantSnapshot,
    catalog: PlanCatalog,
    now: datetime,
    policy: TrialPolicy = DEFAULT_TRIAL_POLICY,
) -> TenantSnapshot:
    """Count one performed service against the tenant's entitlement."""
    entitlement = resolve_entitlement(tenant, catalog, now, policy)
    if entitlement.limit_reached:
        raise ServiceLimitReached(_blocked_reason(tenant, now, policy), limit=entitlement.total)

    changes = {"services_used_this_month": tenant.services_used_this_month + 1}
    if tenant.status == TenantStatus.ACTIVE and tenant.is_service_count:
        used = tenant.services_used + 1
        changes["services_used"] = used
        changes["services_remaining"] = max(0, tenant.total_services_contracted - used)

    return tenant.evolve(**changes)


def _blocked_reason(tenant: TenantSnapshot, now: datetime, policy: TrialPolicy) -> str:
    if tenant.status == TenantStatus.INACTIVE:
        return "Subscription is inactive."
    if tenant.status == TenantStatus.TRIAL:
        if trial_state(tenant, now, policy).expired:
            return "Trial period has expired."
        return f"Trial limit of {policy.max_services} services reached."
    if tenant.is_service_count:
        return "No contracted services remaining. Purchase more services to continue."
    return "Monthly service limit reached for the current plan."


def cancel_subscription(
    tenant: TenantSnapshot,
    now: datetime,
    reason: Optional[str] = "cancelled",
) -> TenantSnapshot:
    logger.info(f"Deactivating tenant {tenant.id}: {reason}", extra={"tenant_id": tenant.id})
    return tenant.evolve(
        status=TenantStatus.INACTIVE,
        auto_renewal=False,
        payment_status=PaymentStatus.PENDING,
        gateway_subscription_id=None,
        pending_plan_id=None,
        pending_billing_type=None,
        inactive_reason=reason,
        inactive_since=now,
    )


def expire_if_due(
    tenant: TenantSnapshot,
    now: datetime,
    policy: TrialPolicy = DEFAULT_TRIAL_POLICY,
) -> TenantSnapshot:
    """Deactivate a tenant whose paid period or trial has run out.

    Returns ``tenant`` itself when nothing is due.
    """
    if tenant.status == TenantStatus.ACTIVE:
        if tenant.subscription_end is not None and tenant.subscription_end < now:
            return tenant.evolve(
                status=TenantStatus.INACTIVE,
                payment_status=PaymentStatus.OVERDUE,
                inactive_reason="subscription_expired",
                inactive_since=now,
            )
    elif tenant.status == TenantStatus.TRIAL:
        if trial_state(tenant, now, policy).expired:
            return tenant.evolve(
                status=TenantStatus.INACTIVE,
                inactive_reason="trial_expired",
                inactive_since=now,
            )
    return tenant


def reset_monthly_counter(tenant: TenantSnapshot) -> TenantSnapshot:
    if tenant.services_used_this_month == 0:
        return tenant
    return tenant.evolve(services_used_this_month=0)


def mark_checkout_started(
    tenant: TenantSnapshot,
    plan_id: str,
    billing_type: Union[BillingType, str, None] = None,
    gateway_subscription_id: Optional[str] = None,
) -> TenantSnapshot:
    """Remember what the tenant is paying for while the gateway checkout is open.

    ``gateway_subscription_id`` is only set for recurring checkouts; one-time
    service packs keep whatever subscription id the tenant already had.
    """
    return tenant.evolve(
        pending_plan_id=plan_id,
        pending_billing_type=coerce_billing_type(billing_type),
        gateway_subscription_id=gateway_subscription_id or tenant.gateway_subscription_id,
        payment_status=PaymentStatus.PENDING,
        auto_renewal=gateway_subscription_id is not None or tenant.auto_renewal,
    )
