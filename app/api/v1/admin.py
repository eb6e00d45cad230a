"""Back-office endpoints for platform administrators."""
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.v1.subscription import build_subscription_response
from app.core.dates import utcnow
from app.core.dependencies import Catalog, CurrentToken, DbSession, Policy, require_role
from app.core.enums import UserRole
from app.core.logging import get_logger
from app.schemas.subscription import (
    JobResultResponse, ManualPaymentRequest, PurchaseServicesRequest, RenewPlanRequest,
    SubscriptionResponse, SubscriptionStatsResponse,
)
from app.services.tenant_store import get_tenant_snapshot, list_tenant_snapshots, update_tenant
from app.subscription import (
    InvalidTenantState, PaymentRecord, TenantSnapshot, can_purchase_more_services,
    purchase_additional_services, record_manual_payment, renew_plan, subscription_stats,
)
from app.tasks import tasks


router = APIRouter(dependencies=[Depends(require_role(UserRole.ADMIN.value))])
logger = get_logger(__name__)


def manual_reference(reference: Optional[str] = None) -> str:
    return reference or f"manual-{uuid.uuid4().hex}"


@router.get("/tenants/{tenant_id}", response_model=SubscriptionResponse)
async def get_tenant_subscription(
    tenant_id: str,
    db: DbSession,
    catalog: Catalog,
    policy: Policy,
):
    tenant = await get_tenant_snapshot(db, tenant_id)
    if tenant is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Tenant not found",
        )
    return build_subscription_response(tenant, catalog, policy, utcnow())


@router.post("/tenants/{tenant_id}/renew", response_model=SubscriptionResponse)
async def renew_tenant_plan(
    tenant_id: str,
    request: RenewPlanRequest,
    token: CurrentToken,
    db: DbSession,
    catalog: Catalog,
    policy: Policy,
):
    """Replace a tenant's service bucket."""
    now = utcnow()
    tenant = await update_tenant(
        db,
        tenant_id,
        lambda t: renew_plan(t, request.total_services, request.reset_usage_counters, now),
    )
    logger.info(
        f"Admin renewed tenant {tenant_id} with {request.total_services} services",
        extra={"tenant_id": tenant_id, "user_id": token.sub},
    )
    return build_subscription_response(tenant, catalog, policy, now)


@router.post("/tenants/{tenant_id}/services/purchase", response_model=SubscriptionResponse)
async def purchase_tenant_services(
    tenant_id: str,
    request: PurchaseServicesRequest,
    token: CurrentToken,
    db: DbSession,
    catalog: Catalog,
    policy: Policy,
):
    """Add service credits on top of the remaining ones once the payment is confirmed."""
    now = utcnow()
    payment = None
    if request.amount is not None:
        payment = PaymentRecord(
            amount=request.amount,
            paid_at=now,
            method=request.method,
            reference=manual_reference(request.reference),
        )

    def purchase(current: TenantSnapshot) -> TenantSnapshot:
        eligibility = can_purchase_more_services(current, now)
        if not eligibility.allowed and current.is_service_count:
            raise InvalidTenantState(eligibility.reason)
        return purchase_additional_services(current, request.quantity, now, payment)

    tenant = await update_tenant(db, tenant_id, purchase)
    logger.info(
        f"Admin added {request.quantity} services to tenant {tenant_id}",
        extra={"tenant_id": tenant_id, "user_id": token.sub},
    )
    return build_subscription_response(tenant, catalog, policy, now)


@router.post("/tenants/{tenant_id}/payments", response_model=SubscriptionResponse)
async def record_tenant_payment(
    tenant_id: str,
    request: ManualPaymentRequest,
    token: CurrentToken,
    db: DbSession,
    catalog: Catalog,
    policy: Policy,
):
    """Activate a plan paid by transfer or cash and add it to the payment history."""
    now = utcnow()
    reference = manual_reference(request.reference)
    tenant = await update_tenant(
        db,
        tenant_id,
        lambda t: record_manual_payment(
            t, catalog, request.plan_id, request.billing_type,
            request.amount, request.method, reference, now,
        ),
    )
    logger.info(
        f"Admin recorded {request.method} payment {reference} for tenant {tenant_id}",
        extra={"tenant_id": tenant_id, "user_id": token.sub, "payment_id": reference},
    )
    return build_subscription_response(tenant, catalog, policy, now)


@router.get("/stats", response_model=SubscriptionStatsResponse)
async def get_stats(db: DbSession):
    """Tenant counts by status and by plan."""
    tenants = await list_tenant_snapshots(db)
    return SubscriptionStatsResponse.model_validate(subscription_stats(tenants))


@router.post("/jobs/expire-subscriptions", response_model=JobResultResponse)
async def run_expiry_job(db: DbSession, policy: Policy):
    result = await tasks.expire_subscriptions(db, policy=policy)
    return JobResultResponse(processed=result.processed, changed=result.changed)


@router.post("/jobs/reset-monthly-counters", response_model=JobResultResponse)
async def run_monthly_reset_job(db: DbSession):
    result = await tasks.reset_monthly_counters(db)
    return JobResultResponse(processed=result.processed, changed=result.changed)
