"""Subscription schemas."""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field

from app.core.enums import (
    BillingType, PaymentStatus, PlanHealth, RenewalType, TenantStatus,
)


class EntitlementResponse(BaseModel):
    """Computed entitlement of a tenant."""
    used: int
    total: Optional[int] = None
    remaining: Optional[int] = None
    limit_reached: bool
    user_limit_reached: bool
    is_expiring: bool
    catalog_missing: bool
    days_remaining: Optional[int] = None
    plan_name: Optional[str] = None

    class Config:
        from_attributes = True


class PaymentRecordResponse(BaseModel):
    amount: float
    paid_at: datetime
    method: str
    reference: str
    plan_id: Optional[str] = None
    billing_type: Optional[str] = None

    class Config:
        from_attributes = True


class SubscriptionResponse(BaseModel):
    """Tenant subscription state with its entitlement."""
    id: str
    name: str
    status: TenantStatus
    plan_id: Optional[str] = None
    plan_name: str
    renewal_type: RenewalType
    payment_status: PaymentStatus
    created_at: datetime
    subscription_start: Optional[datetime] = None
    subscription_end: Optional[datetime] = None
    billing_cycle_end: Optional[datetime] = None
    auto_renewal: bool
    services_used_this_month: int
    total_services_contracted: int
    services_used: int
    services_remaining: int
    service_subscription_expiry: Optional[datetime] = None
    active_user_count: int
    pending_plan_id: Optional[str] = None
    pending_billing_type: Optional[BillingType] = None
    can_add_user: bool
    entitlement: EntitlementResponse
    payment_history: List[PaymentRecordResponse] = []


class TrialStateResponse(BaseModel):
    days_remaining: int
    services_remaining: int
    expired: bool
    limit_reached: bool

    class Config:
        from_attributes = True


class PlanStatusResponse(BaseModel):
    total: int
    used: int
    remaining: int
    percentage_used: int
    health: PlanHealth
    is_expired: bool
    days_until_expiry: Optional[int] = None

    class Config:
        from_attributes = True


class PurchaseEligibilityResponse(BaseModel):
    allowed: bool
    reason: Optional[str] = None

    class Config:
        from_attributes = True


class PlanChangeRequest(BaseModel):
    """Request to switch plan; takes effect after payment."""
    plan_id: str = Field(..., min_length=1, max_length=64)
    billing_type: BillingType = BillingType.MONTHLY


class PurchaseServicesRequest(BaseModel):
    """Additional service credits, payment already confirmed.

    When ``amount`` is given the payment is added to the tenant's history.
    """
    quantity: int = Field(..., le=10000, description="Services to add")
    amount: Optional[float] = Field(None, ge=0)
    method: str = Field("transfer", min_length=1, max_length=50)
    reference: Optional[str] = Field(None, min_length=1, max_length=128)


class ManualPaymentRequest(BaseModel):
    """Payment received outside the gateway, e.g. a bank transfer."""
    plan_id: Optional[str] = Field(None, min_length=1, max_length=64)
    billing_type: Optional[BillingType] = None
    amount: Optional[float] = Field(None, ge=0, description="Defaults to the plan price")
    method: str = Field("transfer", min_length=1, max_length=50)
    reference: Optional[str] = Field(None, min_length=1, max_length=128, description="Receipt or transfer id")


class CancelSubscriptionRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=255)


class RenewPlanRequest(BaseModel):
    """Replace a tenant's service bucket."""
    total_services: int = Field(..., ge=0)
    reset_usage_counters: bool = False


class SubscriptionStatsResponse(BaseModel):
    total: int
    active: int
    trial: int
    inactive: int
    by_plan: dict

    class Config:
        from_attributes = True


class JobResultResponse(BaseModel):
    processed: int
    changed: int
