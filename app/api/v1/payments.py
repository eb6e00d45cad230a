"""Payment API endpoints: gateway checkout and notifications."""
from fastapi import APIRouter, Depends

from app.core.dependencies import (
    Catalog, DbSession, Gateway, TenantCtx, require_role, verify_webhook_secret,
)
from app.core.enums import GatewayPaymentStatus, TenantStatus, UserRole
from app.core.logging import get_logger
from app.schemas.payment import CheckoutRequest, CheckoutResponse, PaymentWebhook, WebhookAck
from app.services.payments import process_payment_event
from app.services.tenant_store import update_tenant
from app.subscription import (
    PaymentNotApproved, effective_price, mark_checkout_started,
    request_plan_change, require_plan,
)


router = APIRouter()
logger = get_logger(__name__)


@router.post(
    "/checkout",
    response_model=CheckoutResponse,
    dependencies=[Depends(require_role(UserRole.OWNER.value, UserRole.ADMIN.value))],
)
async def start_checkout(
    request: CheckoutRequest,
    ctx: TenantCtx,
    db: DbSession,
    catalog: Catalog,
    gateway: Gateway,
):
    """Open a gateway checkout for a plan and return where to send the payer."""
    plan = require_plan(catalog, request.plan_id)

    if ctx.tenant.status == TenantStatus.ACTIVE:
        # Reject a downgrade the tenant no longer fits before charging anything.
        request_plan_change(ctx.tenant, catalog, plan.id, request.billing_type)

    amount = effective_price(plan, request.billing_type)
    recurring = not plan.is_service_plan
    session = await gateway.create_session(
        tenant_id=ctx.tenant_id,
        plan_id=plan.id,
        billing_type=request.billing_type,
        amount=amount,
        email=ctx.tenant.email or ctx.token.email,
        recurring=recurring,
        description=f"Suscripción {plan.name}",
    )

    await update_tenant(
        db,
        ctx.tenant_id,
        lambda t: mark_checkout_started(
            t, plan.id, request.billing_type, session.session_id if recurring else None,
        ),
    )

    logger.info(
        f"Checkout {session.session_id} started for plan '{plan.id}'",
        extra={"tenant_id": ctx.tenant_id, "user_id": ctx.user_id, "plan_id": plan.id},
    )
    return CheckoutResponse(
        session_id=session.session_id,
        redirect_url=session.redirect_url,
        plan_id=plan.id,
        billing_type=request.billing_type,
        amount=amount,
    )


@router.post("/webhook", response_model=WebhookAck, dependencies=[Depends(verify_webhook_secret)])
async def payment_webhook(
    payload: PaymentWebhook,
    db: DbSession,
    catalog: Catalog,
    gateway: Gateway,
):
    """Apply a gateway payment notification.

    Only the payment id is taken from the notification; status and external
    reference are always read back from the gateway. Redeliveries of an
    already applied payment are acknowledged as duplicates. Declined payments
    are acknowledged without changes so the gateway stops retrying.
    """
    inline = gateway.parse_webhook(payload.model_dump())
    if inline is not None:
        payment_id = inline.payment_id
    else:
        payment_id = (payload.data or {}).get("id")
        if payload.type != "payment" or payment_id is None:
            logger.info(f"Ignoring gateway notification of type '{payload.type}'")
            return WebhookAck(status="ignored")

    event = await gateway.get_payment(str(payment_id))
    if inline is not None and inline.status != event.status:
        logger.warning(
            f"Notification for payment {payment_id} claimed '{inline.status.value}', "
            f"gateway reports '{event.status.value}'",
            extra={"payment_id": event.payment_id},
        )

    if event.status == GatewayPaymentStatus.PENDING:
        logger.info(f"Payment {event.payment_id} still pending", extra={"payment_id": event.payment_id})
        return WebhookAck(payment_id=event.payment_id, status="pending")

    try:
        outcome = await process_payment_event(db, event, catalog)
    except PaymentNotApproved:
        logger.info(
            f"Payment {event.payment_id} declined; tenant left unchanged",
            extra={"payment_id": event.payment_id, "tenant_id": event.tenant_id},
        )
        return WebhookAck(payment_id=event.payment_id, status="declined")

    return WebhookAck(
        payment_id=outcome.payment_id,
        status="duplicate" if outcome.duplicate else "applied",
        applied=outcome.applied,
        duplicate=outcome.duplicate,
    )
