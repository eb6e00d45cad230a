"""Payment schemas."""
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field

from app.core.enums import BillingType


class CheckoutRequest(BaseModel):
    """Request to start a gateway checkout for a plan."""
    plan_id: str = Field(..., min_length=1, max_length=64)
    billing_type: BillingType = BillingType.MONTHLY


class CheckoutResponse(BaseModel):
    session_id: str
    redirect_url: str
    plan_id: str
    billing_type: BillingType
    amount: float


class PaymentWebhook(BaseModel):
    """Gateway notification.

    Either the outcome inline (``paymentId``/``status``/``externalReference``)
    or a bare ``{"type": "payment", "data": {"id": ...}}`` notice.
    """
    paymentId: Optional[str] = None
    status: Optional[str] = None
    externalReference: Optional[str] = None
    type: Optional[str] = None
    data: Optional[Dict[str, Any]] = None

    class Config:
        extra = "allow"


class WebhookAck(BaseModel):
    payment_id: Optional[str] = None
    status: str
    applied: bool = False
    duplicate: bool = False
