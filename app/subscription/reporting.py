"""Read-only summaries for dashboards."""
import math
from collections import Counter
from datetime import datetime
from typing import Iterable

from app.core.enums import PlanHealth, TenantStatus
from app.subscription.models import PlanStatusInfo, SubscriptionStats, TenantSnapshot


def plan_status_info(tenant: TenantSnapshot, now: datetime) -> PlanStatusInfo:
    total = tenant.total_services_contracted
    used = tenant.services_used
    remaining = tenant.services_remaining

    percentage_used = round(used / total * 100) if total > 0 else 0

    if remaining > total * 0.3:
        health = PlanHealth.OK
    elif remaining > total * 0.1:
        health = PlanHealth.WARNING
    else:
        health = PlanHealth.CRITICAL

    days_until_expiry = None
    is_expired = False
    expiry = tenant.service_subscription_expiry
    if expiry is not None:
        days_until_expiry = math.ceil((expiry - now).total_seconds() / 86400)
        is_expired = days_until_expiry < 0

    return PlanStatusInfo(
        total=total,
        used=used,
        remaining=remaining,
        percentage_used=percentage_used,
        health=health,
        is_expired=is_expired,
        days_until_expiry=days_until_expiry,
    )


def subscription_stats(tenants: Iterable[TenantSnapshot]) -> SubscriptionStats:
    statuses = Counter()
    by_plan = Counter()
    for tenant in tenants:
        statuses[tenant.status] += 1
        if tenant.plan_id:
            by_plan[tenant.plan_id] += 1

    return SubscriptionStats(
        total=sum(statuses.values()),
        active=statuses[TenantStatus.ACTIVE],
        trial=statuses[TenantStatus.TRIAL],
        inactive=statuses[TenantStatus.INACTIVE],
        by_plan=dict(by_plan),
    )
