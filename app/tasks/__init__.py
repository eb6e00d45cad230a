"""Periodic subscription maintenance tasks.

Meant to be triggered by an external scheduler (cron, Cloud Scheduler) through
the admin job endpoints; each run is safe to repeat.
"""
from datetime import datetime
from typing import Optional
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dates import utcnow
from app.core.enums import TenantStatus
from app.services.tenant_store import (
    TenantNotFound, TenantUpdateConflict, list_tenant_snapshots, update_tenant,
)
from app.subscription.models import TenantSnapshot
from app.subscription.transitions import expire_if_due, reset_monthly_counter
from app.subscription.trial import DEFAULT_TRIAL_POLICY, TrialPolicy

logger = logging.getLogger(__name__)


class JobResult:
    def __init__(self, processed: int = 0, changed: int = 0):
        self.processed = processed
        self.changed = changed


class SubscriptionTasks:
    """Batch jobs over every tenant."""

    @staticmethod
    async def reset_monthly_counters(db: AsyncSession) -> JobResult:
        """
        Zero the monthly service counter of active tenants.

        Trial usage is a lifetime total and is left alone.
        """
        result = JobResult()
        for tenant in await list_tenant_snapshots(db):
            if tenant.status != TenantStatus.ACTIVE:
                continue
            result.processed += 1
            if await _apply(db, tenant, reset_monthly_counter):
                result.changed += 1

        logger.info(f"Monthly counter reset: {result.changed}/{result.processed} tenants updated")
        return result

    @staticmethod
    async def expire_subscriptions(
        db: AsyncSession,
        now: Optional[datetime] = None,
        policy: TrialPolicy = DEFAULT_TRIAL_POLICY,
    ) -> JobResult:
        """
        Deactivate tenants whose paid period or trial is over.
        """
        moment = now or utcnow()
        result = JobResult()
        for tenant in await list_tenant_snapshots(db):
            if tenant.status == TenantStatus.INACTIVE:
                continue
            result.processed += 1
            if await _apply(db, tenant, lambda t: expire_if_due(t, moment, policy)):
                result.changed += 1

        logger.info(f"Expiry sweep: {result.changed}/{result.processed} tenants deactivated")
        return result


async def _apply(db: AsyncSession, tenant: TenantSnapshot, operation) -> bool:
    """Run one tenant update; a conflicted or vanished tenant is skipped until the next run."""
    changed = []

    def tracked(current: TenantSnapshot) -> TenantSnapshot:
        updated = operation(current)
        changed.append(updated is not current)
        return updated

    try:
        await update_tenant(db, tenant.id, tracked)
    except (TenantUpdateConflict, TenantNotFound) as e:
        logger.warning(f"Skipping tenant {tenant.id}: {e}", extra={"tenant_id": tenant.id})
        return False
    return changed[-1]


# Export instance
tasks = SubscriptionTasks()
