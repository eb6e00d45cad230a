"""Immutable snapshots the subscription engine operates on."""
from datetime import datetime
from typing import Any, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.core.dates import parse_instant, to_instant
from app.core.enums import (
    BillingType, GatewayPaymentStatus, PaymentStatus, PlanHealth, PlanType,
    RenewalType, TenantStatus,
)


class _Snapshot(BaseModel):
    model_config = ConfigDict(frozen=True, use_enum_values=False)


class PaymentRecord(_Snapshot):
    """One entry of a tenant's append-only payment history."""
    amount: float
    paid_at: datetime
    method: str
    reference: str
    plan_id: Optional[str] = None
    billing_type: Optional[str] = None

    @field_validator("paid_at", mode="before")
    @classmethod
    def normalize_paid_at(cls, v: Any) -> datetime:
        return to_instant(v)


class PlanSnapshot(_Snapshot):
    """Plan catalog entry."""
    id: str
    name: str
    description: str = ""
    plan_type: PlanType = PlanType.MONTHLY

    # Monthly plans
    price_monthly: float = 0.0
    price_semiannual: float = 0.0
    max_users: int = 1
    max_monthly_services: Optional[int] = None

    # Service-count plans
    service_price: Optional[float] = None
    total_services: Optional[int] = None
    validity_months: Optional[int] = None

    # Presentation only
    is_active: bool = True
    publish_on_homepage: bool = False
    display_order: int = 0
    recommended: bool = False
    features: Tuple[str, ...] = ()

    @property
    def is_service_plan(self) -> bool:
        return self.plan_type == PlanType.SERVICE


class TenantSnapshot(_Snapshot):
    """A lubricentro as seen by the engine.

    Every timestamp field is normalized on construction, so callers may pass
    whatever representation the store handed them.
    """
    id: str
    name: str = ""
    email: Optional[str] = None
    status: TenantStatus = TenantStatus.TRIAL
    created_at: datetime
    plan_id: Optional[str] = None
    renewal_type: RenewalType = RenewalType.MONTHLY
    payment_status: PaymentStatus = PaymentStatus.PENDING

    subscription_start: Optional[datetime] = None
    subscription_end: Optional[datetime] = None
    billing_cycle_end: Optional[datetime] = None
    trial_end: Optional[datetime] = None
    auto_renewal: bool = False

    services_used_this_month: int = Field(default=0, ge=0)

    total_services_contracted: int = Field(default=0, ge=0)
    services_used: int = Field(default=0, ge=0)
    services_remaining: int = Field(default=0, ge=0)
    service_subscription_expiry: Optional[datetime] = None

    active_user_count: int = Field(default=0, ge=0)

    pending_plan_id: Optional[str] = None
    pending_billing_type: Optional[BillingType] = None
    gateway_subscription_id: Optional[str] = None
    inactive_reason: Optional[str] = None
    inactive_since: Optional[datetime] = None
    renewal_count: int = 0

    payment_history: Tuple[PaymentRecord, ...] = ()
    version: int = 0

    @field_validator("created_at", mode="before")
    @classmethod
    def normalize_created_at(cls, v: Any) -> datetime:
        # Unparseable creation dates count as "now": no trial penalty.
        return to_instant(v)

    @field_validator(
        "subscription_start", "subscription_end", "billing_cycle_end",
        "trial_end", "service_subscription_expiry", "inactive_since",
        mode="before",
    )
    @classmethod
    def normalize_optional_instant(cls, v: Any) -> Optional[datetime]:
        return parse_instant(v)

    @field_validator(
        "services_used_this_month", "total_services_contracted",
        "services_used", "services_remaining", "active_user_count",
        mode="before",
    )
    @classmethod
    def default_missing_counter(cls, v: Any) -> int:
        return 0 if v is None else v

    @property
    def is_service_count(self) -> bool:
        return self.renewal_type == RenewalType.SERVICE_COUNT

    def evolve(self, **changes: Any) -> "TenantSnapshot":
        """Return a validated copy with ``changes`` applied."""
        data = self.model_dump()
        data.update(changes)
        return TenantSnapshot.model_validate(data)


class PaymentEvent(_Snapshot):
    """A completed transaction as reported by the gateway."""
    payment_id: str
    status: GatewayPaymentStatus
    tenant_id: Optional[str] = None
    plan_id: Optional[str] = None
    billing_type: Optional[BillingType] = None
    external_reference: Optional[str] = None

    @property
    def approved(self) -> bool:
        return self.status == GatewayPaymentStatus.APPROVED


class TrialState(_Snapshot):
    days_remaining: int
    services_remaining: int
    expired: bool
    limit_reached: bool

    @property
    def must_upgrade(self) -> bool:
        return self.expired or self.limit_reached


class EntitlementView(_Snapshot):
    """How much a tenant may still use, and whether it is blocked.

    ``total``/``remaining`` of None mean unlimited or unknown; ``catalog_missing``
    distinguishes the latter.
    """
    status: TenantStatus
    renewal_type: RenewalType
    used: int = 0
    total: Optional[int] = None
    remaining: Optional[int] = None
    limit_reached: bool = False
    user_limit_reached: bool = False
    is_expiring: bool = False
    catalog_missing: bool = False
    days_remaining: Optional[int] = None
    plan_name: Optional[str] = None

    @property
    def can_consume(self) -> bool:
        return not self.limit_reached


class PurchaseEligibility(_Snapshot):
    allowed: bool
    reason: Optional[str] = None


class PlanStatusInfo(_Snapshot):
    total: int
    used: int
    remaining: int
    percentage_used: int
    health: PlanHealth
    is_expired: bool
    days_until_expiry: Optional[int] = None


class SubscriptionStats(_Snapshot):
    total: int
    active: int
    trial: int
    inactive: int
    by_plan: dict
