"""Mercado Pago payment gateway adapter."""
from typing import Any, Optional, Tuple

import httpx
from pydantic import BaseModel

from app.core.config import settings
from app.core.enums import BillingType, GatewayPaymentStatus
from app.core.logging import get_logger
from app.subscription.catalog import coerce_billing_type
from app.subscription.models import PaymentEvent


logger = get_logger(__name__)

_DECLINED_STATUSES = {"rejected", "cancelled", "refunded", "charged_back", "declined"}


class GatewayError(Exception):
    """The processor could not complete a request."""


class CheckoutSession(BaseModel):
    session_id: str
    redirect_url: str


def build_external_reference(tenant_id: str, plan_id: str, billing_type: BillingType) -> str:
    return f"{tenant_id}:{plan_id}:{billing_type.value}"


def parse_external_reference(reference: Optional[str]) -> Tuple[Optional[str], Optional[str], Optional[BillingType]]:
    """Split ``tenant:plan:billing``; a bare value is taken as the tenant id."""
    if not reference:
        return None, None, None
    parts = reference.split(":")
    tenant_id = parts[0] or None
    plan_id = parts[1] if len(parts) > 1 and parts[1] else None
    billing_type = coerce_billing_type(parts[2]) if len(parts) > 2 and parts[2] else None
    return tenant_id, plan_id, billing_type


def map_payment_status(raw: Optional[str]) -> GatewayPaymentStatus:
    value = (raw or "").strip().lower()
    if value == "approved":
        return GatewayPaymentStatus.APPROVED
    if value in _DECLINED_STATUSES:
        return GatewayPaymentStatus.DECLINED
    return GatewayPaymentStatus.PENDING


def event_from_payment(payment_id: str, status: Optional[str], external_reference: Optional[str]) -> PaymentEvent:
    tenant_id, plan_id, billing_type = parse_external_reference(external_reference)
    return PaymentEvent(
        payment_id=str(payment_id),
        status=map_payment_status(status),
        tenant_id=tenant_id,
        plan_id=plan_id,
        billing_type=billing_type,
        external_reference=external_reference,
    )


class MercadoPagoGateway:
    """Thin async client over the Mercado Pago REST API."""

    def __init__(
        self,
        access_token: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.access_token = access_token or settings.MERCADOPAGO_ACCESS_TOKEN
        self.base_url = (base_url or settings.MERCADOPAGO_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.MERCADOPAGO_TIMEOUT_SECONDS
        self.transport = transport

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

    async def _request(self, method: str, path: str, json: Optional[dict] = None) -> Any:
        if not self.access_token:
            raise GatewayError("MERCADOPAGO_ACCESS_TOKEN is not configured")

        url = f"{self.base_url}{path}"
        async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
            for attempt in range(2):  # One retry on transient timeouts
                try:
                    response = await client.request(method, url, json=json, headers=self._headers())
                    if response.is_error:
                        logger.error(
                            f"Gateway {method} {path} failed with status {response.status_code}: {response.text}"
                        )
                        response.raise_for_status()
                    return response.json()
                except httpx.TimeoutException:
                    if attempt == 0:
                        logger.warning(f"Timeout calling gateway {method} {path} (attempt 1). Retrying...")
                        continue
                    logger.error(f"Timeout calling gateway {method} {path} (attempt 2). Giving up.")
                    raise GatewayError("Payment gateway timed out")
                except httpx.HTTPStatusError as e:
                    raise GatewayError(f"Payment gateway rejected the request ({e.response.status_code})")
                except httpx.HTTPError as e:
                    raise GatewayError(f"Payment gateway unreachable: {type(e).__name__}")

    async def create_session(
        self,
        tenant_id: str,
        plan_id: str,
        billing_type: BillingType,
        amount: float,
        email: Optional[str],
        recurring: bool = True,
        description: Optional[str] = None,
    ) -> CheckoutSession:
        """Open a checkout for ``plan_id``.

        Recurring plans become a preapproval (subscription); one-time
        service packs become a checkout preference.
        """
        reference = build_external_reference(tenant_id, plan_id, billing_type)
        reason = description or f"Suscripción {plan_id}"
        back_url = f"{settings.FRONTEND_URL}/payment/success"

        if recurring:
            frequency = 6 if billing_type == BillingType.SEMIANNUAL else 1
            body = {
                "reason": reason,
                "external_reference": reference,
                "payer_email": email,
                "back_url": back_url,
                "status": "pending",
                "auto_recurring": {
                    "frequency": frequency,
                    "frequency_type": "months",
                    "transaction_amount": amount,
                    "currency_id": settings.CURRENCY,
                },
            }
            data = await self._request("POST", "/preapproval", json=body)
        else:
            body = {
                "items": [{
                    "title": reason,
                    "quantity": 1,
                    "unit_price": amount,
                    "currency_id": settings.CURRENCY,
                }],
                "payer": {"email": email},
                "external_reference": reference,
                "back_urls": {
                    "success": back_url,
                    "failure": f"{settings.FRONTEND_URL}/payment/failure",
                    "pending": f"{settings.FRONTEND_URL}/payment/pending",
                },
            }
            data = await self._request("POST", "/checkout/preferences", json=body)

        logger.info(f"Created gateway session {data.get('id')} for tenant {tenant_id}", extra={"tenant_id": tenant_id})
        return CheckoutSession(session_id=str(data["id"]), redirect_url=data["init_point"])

    async def get_payment(self, payment_id: str) -> PaymentEvent:
        data = await self._request("GET", f"/v1/payments/{payment_id}")
        return event_from_payment(data.get("id", payment_id), data.get("status"), data.get("external_reference"))

    async def cancel_subscription(self, subscription_id: str) -> bool:
        data = await self._request("PUT", f"/preapproval/{subscription_id}", json={"status": "cancelled"})
        cancelled = data.get("status") == "cancelled"
        logger.info(f"Cancelled gateway subscription {subscription_id}: {cancelled}")
        return cancelled

    def parse_webhook(self, payload: dict) -> Optional[PaymentEvent]:
        """Read a redirect/webhook payload carrying the payment outcome inline.

        The inline outcome is unauthenticated; callers confirm it with
        :meth:`get_payment` before acting on it. Returns None for notifications that only carry an id (``{"type":
        "payment", "data": {"id": ...}}``); those must be fetched with
        :meth:`get_payment`.
        """
        payment_id = payload.get("paymentId") or payload.get("payment_id")
        status = payload.get("status")
        if payment_id is None or status is None:
            return None
        reference = payload.get("externalReference") or payload.get("external_reference")
        return event_from_payment(payment_id, status, reference)


def get_gateway() -> MercadoPagoGateway:
    return MercadoPagoGateway()
