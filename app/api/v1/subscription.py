"""Subscription API endpoints for the current tenant."""
from datetime import datetime
from typing import Mapping

from fastapi import APIRouter, Depends

from app.core.dates import utcnow
from app.core.dependencies import (
    Catalog, DbSession, Gateway, Policy, TenantCtx, require_role,
)
from app.core.enums import UserRole
from app.core.gateway import GatewayError
from app.core.logging import get_logger
from app.schemas.subscription import (
    CancelSubscriptionRequest, EntitlementResponse, PaymentRecordResponse,
    PlanChangeRequest, PlanStatusResponse, PurchaseEligibilityResponse,
    SubscriptionResponse, TrialStateResponse,
)
from app.services.tenant_store import update_tenant
from app.subscription import (
    PlanSnapshot, TenantSnapshot, TrialPolicy,
    can_add_user, can_purchase_more_services, cancel_subscription,
    format_plan_name, plan_status_info,
    record_service_usage, request_plan_change, resolve_entitlement, trial_state,
)


router = APIRouter()
logger = get_logger(__name__)

owner_or_admin = Depends(require_role(UserRole.OWNER.value, UserRole.ADMIN.value))


def build_subscription_response(
    tenant: TenantSnapshot,
    catalog: Mapping[str, PlanSnapshot],
    policy: TrialPolicy,
    now: datetime,
) -> SubscriptionResponse:
    entitlement = resolve_entitlement(tenant, catalog, now, policy)
    return SubscriptionResponse(
        id=tenant.id,
        name=tenant.name,
        status=tenant.status,
        plan_id=tenant.plan_id,
        plan_name=format_plan_name(tenant.plan_id, catalog),
        renewal_type=tenant.renewal_type,
        payment_status=tenant.payment_status,
        created_at=tenant.created_at,
        subscription_start=tenant.subscription_start,
        subscription_end=tenant.subscription_end,
        billing_cycle_end=tenant.billing_cycle_end,
        auto_renewal=tenant.auto_renewal,
        services_used_this_month=tenant.services_used_this_month,
        total_services_contracted=tenant.total_services_contracted,
        services_used=tenant.services_used,
        services_remaining=tenant.services_remaining,
        service_subscription_expiry=tenant.service_subscription_expiry,
        active_user_count=tenant.active_user_count,
        pending_plan_id=tenant.pending_plan_id,
        pending_billing_type=tenant.pending_billing_type,
        can_add_user=can_add_user(tenant, catalog, policy),
        entitlement=EntitlementResponse.model_validate(entitlement),
        payment_history=[PaymentRecordResponse.model_validate(p) for p in tenant.payment_history],
    )


@router.get("", response_model=SubscriptionResponse)
async def get_subscription(ctx: TenantCtx, catalog: Catalog, policy: Policy):
    """Current subscription state and entitlement."""
    return build_subscription_response(ctx.tenant, catalog, policy, utcnow())


@router.get("/trial", response_model=TrialStateResponse)
async def get_trial_state(ctx: TenantCtx, policy: Policy):
    """Days and services left in the trial window."""
    return TrialStateResponse.model_validate(trial_state(ctx.tenant, utcnow(), policy))


@router.get("/plan-status", response_model=PlanStatusResponse)
async def get_plan_status(ctx: TenantCtx):
    """Service-count bucket usage summary."""
    return PlanStatusResponse.model_validate(plan_status_info(ctx.tenant, utcnow()))


@router.get("/purchase-eligibility", response_model=PurchaseEligibilityResponse)
async def get_purchase_eligibility(ctx: TenantCtx):
    """Whether additional services can be bought instead of renewing."""
    return PurchaseEligibilityResponse.model_validate(can_purchase_more_services(ctx.tenant, utcnow()))


@router.post("/plan-change", response_model=SubscriptionResponse, dependencies=[owner_or_admin])
async def change_plan(
    request: PlanChangeRequest,
    ctx: TenantCtx,
    db: DbSession,
    catalog: Catalog,
    policy: Policy,
):
    """Prepare a plan change; it takes effect once the payment is approved."""
    tenant = await update_tenant(
        db,
        ctx.tenant_id,
        lambda t: request_plan_change(t, catalog, request.plan_id, request.billing_type),
    )
    logger.info(
        f"Plan change to '{request.plan_id}' requested by tenant {ctx.tenant_id}",
        extra={"tenant_id": ctx.tenant_id, "user_id": ctx.user_id},
    )
    return build_subscription_response(tenant, catalog, policy, utcnow())


@router.post("/services/consume", response_model=SubscriptionResponse)
async def consume_service(
    ctx: TenantCtx,
    db: DbSession,
    catalog: Catalog,
    policy: Policy,
):
    """Count one performed service against the entitlement."""
    now = utcnow()
    tenant = await update_tenant(
        db,
        ctx.tenant_id,
        lambda t: record_service_usage(t, catalog, now, policy),
    )
    return build_subscription_response(tenant, catalog, policy, now)


@router.post("/cancel", response_model=SubscriptionResponse, dependencies=[owner_or_admin])
async def cancel(
    request: CancelSubscriptionRequest,
    ctx: TenantCtx,
    db: DbSession,
    catalog: Catalog,
    policy: Policy,
    gateway: Gateway,
):
    """Cancel the recurring charge and deactivate the tenant."""
    subscription_id = ctx.tenant.gateway_subscription_id
    if subscription_id and not await gateway.cancel_subscription(subscription_id):
        raise GatewayError(f"Payment gateway did not cancel subscription {subscription_id}")

    now = utcnow()
    tenant = await update_tenant(
        db,
        ctx.tenant_id,
        lambda t: cancel_subscription(t, now, request.reason or "cancelled"),
    )
    return build_subscription_response(tenant, catalog, policy, now)
