"""Subscription plan catalog model."""
from datetime import datetime, timezone
from sqlalchemy import String, Boolean, DateTime, Integer, Float, JSON, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.core.enums import PlanType


class Plan(Base):
    """A purchasable plan; read-only at runtime."""

    __tablename__ = "plans"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(String(1000), nullable=False, default="")
    plan_type: Mapped[PlanType] = mapped_column(
        SQLEnum(PlanType),
        default=PlanType.MONTHLY,
        nullable=False
    )

    price_monthly: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    price_semiannual: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    max_users: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    max_monthly_services: Mapped[int] = mapped_column(Integer, nullable=True)

    service_price: Mapped[float] = mapped_column(Float, nullable=True)
    total_services: Mapped[int] = mapped_column(Integer, nullable=True)
    validity_months: Mapped[int] = mapped_column(Integer, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    publish_on_homepage: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    recommended: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    display_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    features: Mapped[list] = mapped_column(JSON, default=list, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
