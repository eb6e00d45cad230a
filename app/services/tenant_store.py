"""Tenant persistence: snapshot conversion and versioned read-modify-write."""
from datetime import datetime, timezone
from typing import Callable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.logging import get_logger
from app.models.payment import PaymentRecord as PaymentRecordRow
from app.models.tenant import Tenant
from app.subscription.models import PaymentRecord, TenantSnapshot


logger = get_logger(__name__)

# Columns mirrored one-to-one between the ORM row and the snapshot.
SNAPSHOT_FIELDS = (
    "name", "email", "status", "created_at", "plan_id", "renewal_type",
    "payment_status", "subscription_start", "subscription_end",
    "billing_cycle_end", "trial_end", "auto_renewal",
    "services_used_this_month", "total_services_contracted", "services_used",
    "services_remaining", "service_subscription_expiry", "active_user_count",
    "pending_plan_id", "pending_billing_type", "gateway_subscription_id",
    "inactive_reason", "inactive_since", "renewal_count",
)

TenantOperation = Callable[[TenantSnapshot], TenantSnapshot]


class TenantNotFound(Exception):
    def __init__(self, tenant_id: Optional[str]):
        super().__init__(f"Tenant '{tenant_id}' not found")
        self.tenant_id = tenant_id


class TenantUpdateConflict(Exception):
    """The tenant kept changing underneath us; the caller should retry later."""

    def __init__(self, tenant_id: str, attempts: int):
        super().__init__(f"Update failed for tenant {tenant_id} after {attempts} attempts, please retry")
        self.tenant_id = tenant_id
        self.attempts = attempts


class DuplicatePayment(Exception):
    def __init__(self, reference: str):
        super().__init__(f"Payment {reference} already recorded")
        self.reference = reference


def to_snapshot(tenant: Tenant, payments: List[PaymentRecordRow]) -> TenantSnapshot:
    data = {field: getattr(tenant, field) for field in SNAPSHOT_FIELDS}
    data["id"] = tenant.id
    data["version"] = tenant.version
    data["payment_history"] = [
        PaymentRecord(
            amount=p.amount,
            paid_at=p.paid_at,
            method=p.method,
            reference=p.reference,
            plan_id=p.plan_id,
            billing_type=p.billing_type,
        )
        for p in payments
    ]
    return TenantSnapshot.model_validate(data)


async def _load_payments(db: AsyncSession, tenant_id: str) -> List[PaymentRecordRow]:
    result = await db.execute(
        select(PaymentRecordRow)
        .where(PaymentRecordRow.tenant_id == tenant_id)
        .order_by(PaymentRecordRow.paid_at, PaymentRecordRow.id)
    )
    return list(result.scalars().all())


async def get_tenant_snapshot(db: AsyncSession, tenant_id: str) -> Optional[TenantSnapshot]:
    result = await db.execute(
        select(Tenant)
        .where(Tenant.id == tenant_id)
        .execution_options(populate_existing=True)
    )
    tenant = result.scalar_one_or_none()
    if tenant is None:
        return None
    return to_snapshot(tenant, await _load_payments(db, tenant_id))


async def list_tenant_snapshots(db: AsyncSession) -> List[TenantSnapshot]:
    result = await db.execute(
        select(Tenant)
        .order_by(Tenant.created_at)
        .execution_options(populate_existing=True)
    )
    tenants = result.scalars().all()

    payments_result = await db.execute(
        select(PaymentRecordRow).order_by(PaymentRecordRow.paid_at, PaymentRecordRow.id)
    )
    by_tenant = {}
    for payment in payments_result.scalars().all():
        by_tenant.setdefault(payment.tenant_id, []).append(payment)

    return [to_snapshot(t, by_tenant.get(t.id, [])) for t in tenants]


def _changed_columns(before: TenantSnapshot, after: TenantSnapshot) -> dict:
    return {
        field: getattr(after, field)
        for field in SNAPSHOT_FIELDS
        if getattr(after, field) != getattr(before, field)
    }


def _appended_payments(before: TenantSnapshot, after: TenantSnapshot) -> tuple:
    seen = len(before.payment_history)
    if after.payment_history[:seen] != before.payment_history:
        raise ValueError(f"Payment history of tenant {before.id} can only be appended to")
    return after.payment_history[seen:]


async def update_tenant(
    db: AsyncSession,
    tenant_id: str,
    operation: TenantOperation,
    max_attempts: Optional[int] = None,
) -> TenantSnapshot:
    """Apply ``operation`` to a fresh snapshot and write it back atomically.

    The write only lands if ``tenants.version`` still matches what was read;
    otherwise the read/compute/write cycle starts over, up to ``max_attempts``.
    Errors raised by ``operation`` propagate untouched.
    """
    attempts = max_attempts or settings.TENANT_UPDATE_MAX_RETRIES

    for attempt in range(1, attempts + 1):
        current = await get_tenant_snapshot(db, tenant_id)
        if current is None:
            raise TenantNotFound(tenant_id)

        updated = operation(current)
        if updated is current:
            return current

        values = _changed_columns(current, updated)
        new_payments = _appended_payments(current, updated)
        next_version = current.version + 1

        result = await db.execute(
            update(Tenant)
            .where(Tenant.id == tenant_id, Tenant.version == current.version)
            .values(**values, version=next_version, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await db.rollback()
            logger.warning(
                f"Version conflict updating tenant {tenant_id} (attempt {attempt}/{attempts})",
                extra={"tenant_id": tenant_id},
            )
            continue

        for payment in new_payments:
            db.add(PaymentRecordRow(
                tenant_id=tenant_id,
                amount=payment.amount,
                paid_at=payment.paid_at,
                method=payment.method,
                reference=payment.reference,
                plan_id=payment.plan_id,
                billing_type=payment.billing_type,
            ))

        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            if not new_payments:
                raise
            references = ", ".join(p.reference for p in new_payments)
            raise DuplicatePayment(references)

        return updated.evolve(version=next_version)

    raise TenantUpdateConflict(tenant_id, attempts)
