"""Pydantic schemas."""
from app.schemas.plan import PlanResponse
from app.schemas.subscription import (
    EntitlementResponse, PaymentRecordResponse, SubscriptionResponse,
    TrialStateResponse, PlanStatusResponse, PurchaseEligibilityResponse,
    PlanChangeRequest, PurchaseServicesRequest, CancelSubscriptionRequest,
    RenewPlanRequest, SubscriptionStatsResponse, JobResultResponse,
)
from app.schemas.payment import (
    CheckoutRequest, CheckoutResponse, PaymentWebhook, WebhookAck,
)

__all__ = [
    "PlanResponse",
    "EntitlementResponse", "PaymentRecordResponse", "SubscriptionResponse",
    "TrialStateResponse", "PlanStatusResponse", "PurchaseEligibilityResponse",
    "PlanChangeRequest", "PurchaseServicesRequest", "CancelSubscriptionRequest",
    "RenewPlanRequest", "SubscriptionStatsResponse", "JobResultResponse",
    "CheckoutRequest", "CheckoutResponse", "PaymentWebhook", "WebhookAck",
]
