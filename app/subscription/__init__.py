"""Subscription lifecycle engine.

Pure functions over immutable tenant and plan snapshots; no I/O.
"""
from app.subscription.catalog import (
    FALLBACK_PLANS, PlanCatalog, effective_price, format_plan_name, require_plan,
)
from app.subscription.credits import (
    can_purchase_more_services, purchase_additional_services, renew_plan,
)
from app.subscription.entitlement import can_add_user, resolve_entitlement
from app.subscription.errors import (
    InvalidQuantity, InvalidTenantState, NotServicePlan, PaymentNotApproved,
    ServiceLimitExceeded, ServiceLimitReached, SubscriptionError, UnknownPlan,
    UserLimitExceeded,
)
from app.subscription.models import (
    EntitlementView, PaymentEvent, PaymentRecord, PlanSnapshot, PlanStatusInfo,
    PurchaseEligibility, SubscriptionStats, TenantSnapshot, TrialState,
)
from app.subscription.reporting import plan_status_info, subscription_stats
from app.subscription.transitions import (
    apply_approved_payment, cancel_subscription, expire_if_due,
    mark_checkout_started, record_manual_payment, record_service_usage,
    request_plan_change, reset_monthly_counter,
)
from app.subscription.trial import DEFAULT_TRIAL_POLICY, TrialPolicy, trial_state

__all__ = [
    "FALLBACK_PLANS", "PlanCatalog", "effective_price", "format_plan_name", "require_plan",
    "can_purchase_more_services", "purchase_additional_services", "renew_plan",
    "can_add_user", "resolve_entitlement",
    "InvalidQuantity", "InvalidTenantState", "NotServicePlan", "PaymentNotApproved",
    "ServiceLimitExceeded", "ServiceLimitReached", "SubscriptionError", "UnknownPlan",
    "UserLimitExceeded",
    "EntitlementView", "PaymentEvent", "PaymentRecord", "PlanSnapshot", "PlanStatusInfo",
    "PurchaseEligibility", "SubscriptionStats", "TenantSnapshot", "TrialState",
    "plan_status_info", "subscription_stats",
    "apply_approved_payment", "cancel_subscription", "expire_if_due",
    "mark_checkout_started", "record_manual_payment", "record_service_usage", "request_plan_change",
    "reset_monthly_counter",
    "DEFAULT_TRIAL_POLICY", "TrialPolicy", "trial_state",
]
