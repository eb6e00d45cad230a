"""Service-credit accounting for service-count plans.

Two operations touch the credit bucket and they are deliberately different:

* :func:`purchase_additional_services` *adds* credits on top of what is left.
* :func:`renew_plan` *replaces* the bucket, discarding any carry-over.

Example of a purchase: 100 contracted, 75 used, 25 left; buying 100 more
gives 200 contracted, 75 used, 125 left.
"""
from datetime import datetime
from typing import Optional

from app.core.dates import add_months
from app.core.enums import PaymentStatus, RenewalType, TenantStatus
from app.core.logging import get_logger
from app.subscription.errors import InvalidQuantity, NotServicePlan
from app.subscription.models import PaymentRecord, PurchaseEligibility, TenantSnapshot


logger = get_logger(__name__)

CREDIT_VALIDITY_MONTHS = 6
STALE_PLAN_MONTHS = 12


def can_purchase_more_services(tenant: TenantSnapshot, now: datetime) -> PurchaseEligibility:
    if tenant.renewal_type != RenewalType.SERVICE_COUNT:
        return PurchaseEligibility(
            allowed=False,
            reason="Plan is unlimited monthly, no additional service credits are needed.",
        )

    expiry = tenant.service_subscription_expiry
    if expiry is not None and add_months(expiry, STALE_PLAN_MONTHS) < now:
        return PurchaseEligibility(
            allowed=False,
            reason=(
                f"Plan expired more than {STALE_PLAN_MONTHS} months ago; "
                "it must be fully renewed instead of topped up."
            ),
        )

    return PurchaseEligibility(allowed=True)


def purchase_additional_services(
    tenant: TenantSnapshot,
    additional_count: int,
    now: datetime,
    payment: Optional[PaymentRecord] = None,
) -> TenantSnapshot:
    """Add ``additional_count`` credits to the tenant's bucket.

    Payment must already be confirmed by the caller; the purchase itself marks
    the tenant active and paid. ``payment``, when given, is appended to the
    payment history. Expiry is pushed six months past the later of
    the current expiry and ``now``, so an expired plan does not accumulate time
    retroactively.
    """
    if tenant.renewal_type != RenewalType.SERVICE_COUNT:
        raise NotServicePlan(
            "Only service-count plans can purchase additional services."
        )
    if additional_count < 1:
        raise InvalidQuantity(
            f"At least 1 service must be purchased (got {additional_count}).", limit=1,
        )

    base = tenant.service_subscription_expiry or now
    if base < now:
        base = now
    new_expiry = add_months(base, CREDIT_VALIDITY_MONTHS)

    history = tenant.payment_history + ((payment,) if payment is not None else ())
    updated = tenant.evolve(
        total_services_contracted=tenant.total_services_contracted + additional_count,
        services_remaining=tenant.services_remaining + additional_count,
        service_subscription_expiry=new_expiry,
        subscription_end=new_expiry,
        billing_cycle_end=new_expiry,
        status=TenantStatus.ACTIVE,
        payment_status=PaymentStatus.PAID,
        inactive_reason=None,
        inactive_since=None,
        payment_history=history,
    )

    logger.info(
        f"Added {additional_count} services to tenant {tenant.id}: "
        f"contracted {tenant.total_services_contracted} -> {updated.total_services_contracted}, "
        f"remaining {tenant.services_remaining} -> {updated.services_remaining}",
        extra={"tenant_id": tenant.id},
    )
    return updated


def renew_plan(
    tenant: TenantSnapshot,
    new_total_services: int,
    reset_usage_counters: bool,
    now: datetime,
) -> TenantSnapshot:
    """Replace the credit bucket with ``new_total_services``.

    Without a counter reset, services already used this cycle still count
    against the new bucket so that remaining never exceeds contracted minus used.
    """
    if new_total_services < 0:
        raise InvalidQuantity(
            f"Total services cannot be negative (got {new_total_services}).", limit=0,
        )

    expiry = add_months(now, CREDIT_VALIDITY_MONTHS)
    changes = {
        "total_services_contracted": new_total_services,
        "service_subscription_expiry": expiry,
        "subscription_end": expiry,
        "billing_cycle_end": expiry,
        "status": TenantStatus.ACTIVE,
        "payment_status": PaymentStatus.PAID,
        "inactive_reason": None,
        "inactive_since": None,
    }
    if reset_usage_counters:
        changes["services_used"] = 0
        changes["services_used_this_month"] = 0
        changes["services_remaining"] = new_total_services
    else:
        changes["services_remaining"] = max(0, new_total_services - tenant.services_used)

    logger.info(
        f"Renewed plan for tenant {tenant.id} with {new_total_services} services"
        f"{' (counters reset)' if reset_usage_counters else ''}",
        extra={"tenant_id": tenant.id},
    )
    return tenant.evolve(**changes)
