"""Applying gateway payment notifications to tenants, at most once per payment."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dates import utcnow
from app.core.logging import get_logger
from app.models.payment import PaymentRecord as PaymentRecordRow
from app.services.tenant_store import DuplicatePayment, TenantNotFound, update_tenant
from app.subscription.catalog import PlanCatalog
from app.subscription.models import PaymentEvent, TenantSnapshot
from app.subscription.transitions import apply_approved_payment


logger = get_logger(__name__)


class PaymentOutcome(BaseModel):
    payment_id: str
    applied: bool
    duplicate: bool = False
    tenant: Optional[TenantSnapshot] = None


async def payment_already_recorded(db: AsyncSession, payment_id: str) -> bool:
    result = await db.execute(
        select(PaymentRecordRow.id).where(PaymentRecordRow.reference == payment_id).limit(1)
    )
    return result.scalar_one_or_none() is not None


async def process_payment_event(
    db: AsyncSession,
    event: PaymentEvent,
    catalog: PlanCatalog,
    now: Optional[datetime] = None,
) -> PaymentOutcome:
    """Apply an approved payment to its tenant.

    Redelivered events are acknowledged without touching the tenant: the
    pre-check handles sequential duplicates, the unique reference constraint
    handles concurrent ones. Engine errors (declined payment, unknown plan)
    propagate to the caller.
    """
    log_extra = {"payment_id": event.payment_id, "tenant_id": event.tenant_id}

    if await payment_already_recorded(db, event.payment_id):
        logger.info(f"Payment {event.payment_id} already applied; ignoring redelivery", extra=log_extra)
        return PaymentOutcome(payment_id=event.payment_id, applied=False, duplicate=True)

    if not event.tenant_id:
        raise TenantNotFound(None)

    moment = now or utcnow()
    try:
        tenant = await update_tenant(
            db,
            event.tenant_id,
            lambda current: apply_approved_payment(current, catalog, event, moment),
        )
    except DuplicatePayment:
        logger.info(f"Payment {event.payment_id} applied concurrently; ignoring", extra=log_extra)
        return PaymentOutcome(payment_id=event.payment_id, applied=False, duplicate=True)

    logger.info(f"Payment {event.payment_id} applied", extra=log_extra)
    return PaymentOutcome(payment_id=event.payment_id, applied=True, tenant=tenant)
