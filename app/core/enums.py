"""Enum definitions for the application."""
from enum import Enum


class TenantStatus(str, Enum):
    """Lifecycle status of a lubricentro."""
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    TRIAL = "TRIAL"


class RenewalType(str, Enum):
    """Which entitlement arithmetic applies to a tenant."""
    MONTHLY = "MONTHLY"
    SEMIANNUAL = "SEMIANNUAL"
    ANNUAL = "ANNUAL"
    SERVICE_COUNT = "SERVICE_COUNT"


class PaymentStatus(str, Enum):
    """Tenant payment standing."""
    PAID = "PAID"
    PENDING = "PENDING"
    OVERDUE = "OVERDUE"


class PlanType(str, Enum):
    """Plan catalog entry kinds."""
    MONTHLY = "MONTHLY"
    SERVICE = "SERVICE"


class BillingType(str, Enum):
    """Billing period chosen at checkout."""
    MONTHLY = "monthly"
    SEMIANNUAL = "semiannual"


class GatewayPaymentStatus(str, Enum):
    """Payment outcome reported by the gateway."""
    APPROVED = "approved"
    DECLINED = "declined"
    PENDING = "pending"


class PlanHealth(str, Enum):
    """Service-count bucket health for dashboards."""
    OK = "ok"
    WARNING = "warning"
    CRITICAL = "critical"


class UserRole(str, Enum):
    """User role options."""
    ADMIN = "ADMIN"
    OWNER = "OWNER"
    EMPLOYEE = "EMPLOYEE"
