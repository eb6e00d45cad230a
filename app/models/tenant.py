"""Tenant model for multi-tenancy."""
from datetime import datetime, timezone
from sqlalchemy import String, Boolean, DateTime, Integer, Enum as SQLEnum, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
import uuid

from app.core.database import Base
from app.core.enums import BillingType, PaymentStatus, RenewalType, TenantStatus


class Tenant(Base):
    """Tenant model representing a lubricentro and its subscription state."""

    __tablename__ = "tenants"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4())
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=True)
    status: Mapped[TenantStatus] = mapped_column(
        SQLEnum(TenantStatus),
        default=TenantStatus.TRIAL,
        nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Subscription
    plan_id: Mapped[str] = mapped_column(String(64), nullable=True)
    renewal_type: Mapped[RenewalType] = mapped_column(
        SQLEnum(RenewalType),
        default=RenewalType.MONTHLY,
        nullable=False
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        SQLEnum(PaymentStatus),
        default=PaymentStatus.PENDING,
        nullable=False
    )
    subscription_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True)
    subscription_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True)
    billing_cycle_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True)
    trial_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True)
    auto_renewal: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    gateway_subscription_id: Mapped[str] = mapped_column(String(128), nullable=True, index=True)
    pending_plan_id: Mapped[str] = mapped_column(String(64), nullable=True)
    pending_billing_type: Mapped[BillingType] = mapped_column(SQLEnum(BillingType), nullable=True)
    renewal_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    inactive_reason: Mapped[str] = mapped_column(String(255), nullable=True)
    inactive_since: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True)

    # Usage counters
    services_used_this_month: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_services_contracted: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    services_used: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    services_remaining: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    service_subscription_expiry: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True)
    active_user_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Compare-and-swap counter, bumped on every write
    version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Relationships
    payments = relationship(
        "PaymentRecord",
        back_populates="tenant",
        cascade="all, delete-orphan",
        order_by="PaymentRecord.paid_at",
    )

    __table_args__ = (
        Index("ix_tenant_status", "status"),
    )
