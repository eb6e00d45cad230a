"""Trial entitlement policy."""
from dataclasses import dataclass
from datetime import datetime

from app.core.dates import whole_days_between
from app.subscription.models import TenantSnapshot, TrialState


@dataclass(frozen=True)
class TrialPolicy:
    duration_days: int = 7
    max_services: int = 10
    max_users: int = 2
    # Trials with this many days left or fewer are flagged as expiring.
    expiring_threshold_days: int = 2


DEFAULT_TRIAL_POLICY = TrialPolicy()


def trial_state(
    tenant: TenantSnapshot,
    now: datetime,
    policy: TrialPolicy = DEFAULT_TRIAL_POLICY,
) -> TrialState:
    """Compute days and services left in the trial window.

    The service limit is a total for the whole trial, tracked on the monthly
    counter. Expiry and limit are independent reasons to upgrade.
    """
    days_since = max(0, whole_days_between(tenant.created_at, now))
    days_remaining = max(0, policy.duration_days - days_since)
    services_remaining = max(0, policy.max_services - tenant.services_used_this_month)

    return TrialState(
        days_remaining=days_remaining,
        services_remaining=services_remaining,
        expired=days_remaining == 0,
        limit_reached=services_remaining == 0,
    )
