"""Validation failures raised by the subscription engine."""
from typing import Optional


class SubscriptionError(Exception):
    """Base class; ``code`` is stable and safe to expose to clients."""
    code = "subscription_error"
    status_code = 400

    def __init__(self, message: str, *, limit: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.limit = limit


class UnknownPlan(SubscriptionError):
    code = "unknown_plan"
    status_code = 404

    def __init__(self, plan_id: Optional[str]):
        super().__init__(f"Plan '{plan_id}' is not available. Please select another plan.")
        self.plan_id = plan_id


class PaymentNotApproved(SubscriptionError):
    code = "payment_not_approved"
    status_code = 402

    def __init__(self, payment_id: str, status: str):
        super().__init__(f"Payment {payment_id} was not approved (status: {status}).")
        self.payment_id = payment_id


class ServiceLimitExceeded(SubscriptionError):
    code = "service_limit_exceeded"
    status_code = 409


class UserLimitExceeded(SubscriptionError):
    code = "user_limit_exceeded"
    status_code = 409


class NotServicePlan(SubscriptionError):
    code = "not_service_plan"
    status_code = 400


class InvalidQuantity(SubscriptionError):
    code = "invalid_quantity"
    status_code = 400


class InvalidTenantState(SubscriptionError):
    code = "invalid_tenant_state"
    status_code = 409


class ServiceLimitReached(SubscriptionError):
    """Raised when a tenant tries to consume a service it is not entitled to."""
    code = "service_limit_reached"
    status_code = 403
