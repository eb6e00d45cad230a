"""Payment record model (append-only)."""
from datetime import datetime, timezone
from sqlalchemy import String, DateTime, Float, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
import uuid

from app.core.database import Base


class PaymentRecord(Base):
    """One confirmed payment of a tenant. Rows are inserted, never updated."""

    __tablename__ = "payment_records"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4())
    )
    tenant_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    paid_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    method: Mapped[str] = mapped_column(String(50), nullable=False)
    # External payment id; unique so a redelivered webhook cannot double-append.
    reference: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    plan_id: Mapped[str] = mapped_column(String(64), nullable=True)
    billing_type: Mapped[str] = mapped_column(String(20), nullable=True)

    # Relationships
    tenant = relationship("Tenant", back_populates="payments")

    __table_args__ = (
        Index("ix_payment_tenant_paid_at", "tenant_id", "paid_at"),
    )
