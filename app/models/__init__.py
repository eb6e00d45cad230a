"""SQLAlchemy models."""
from app.models.tenant import Tenant
from app.models.plan import Plan
from app.models.payment import PaymentRecord

__all__ = ["Tenant", "Plan", "PaymentRecord"]
