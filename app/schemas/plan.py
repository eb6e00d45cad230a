"""Plan schemas."""
from typing import Optional, List
from pydantic import BaseModel

from app.core.enums import PlanType


class PlanResponse(BaseModel):
    """Plan catalog entry as shown to tenants."""
    id: str
    name: str
    description: str
    plan_type: PlanType
    price_monthly: float
    price_semiannual: float
    max_users: int
    max_monthly_services: Optional[int] = None
    service_price: Optional[float] = None
    total_services: Optional[int] = None
    validity_months: Optional[int] = None
    recommended: bool
    features: List[str]

    class Config:
        from_attributes = True
