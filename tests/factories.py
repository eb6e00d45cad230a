"""Snapshot and token builders shared by tests."""
from datetime import datetime, timedelta, timezone
import uuid

from app.core.enums import RenewalType, TenantStatus, UserRole
from app.core.security import create_access_token
from app.subscription.models import TenantSnapshot


NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)

WEBHOOK_HEADERS = {"X-Webhook-Secret": "test-webhook-secret"}


def make_tenant(**overrides) -> TenantSnapshot:
    data = {
        "id": "tenant-1",
        "name": "Lubricentro Test",
        "created_at": NOW - timedelta(days=2),
    }
    data.update(overrides)
    return TenantSnapshot.model_validate(data)


def make_active_tenant(**overrides) -> TenantSnapshot:
    data = {
        "status": TenantStatus.ACTIVE,
        "plan_id": "basic",
        "renewal_type": RenewalType.MONTHLY,
        "subscription_start": NOW - timedelta(days=5),
        "subscription_end": NOW + timedelta(days=25),
        "billing_cycle_end": NOW + timedelta(days=25),
        "created_at": NOW - timedelta(days=90),
    }
    data.update(overrides)
    return make_tenant(**data)


def make_service_tenant(**overrides) -> TenantSnapshot:
    data = {
        "status": TenantStatus.ACTIVE,
        "renewal_type": RenewalType.SERVICE_COUNT,
        "plan_id": "services100",
        "total_services_contracted": 100,
        "services_used": 40,
        "services_remaining": 60,
        "service_subscription_expiry": NOW + timedelta(days=60),
        "subscription_end": NOW + timedelta(days=60),
        "created_at": NOW - timedelta(days=200),
    }
    data.update(overrides)
    return make_tenant(**data)


def auth_headers_for(tenant_id: str, role: str = UserRole.OWNER.value) -> dict:
    token = create_access_token(
        user_id=str(uuid.uuid4()),
        tenant_id=tenant_id,
        role=role,
        email="owner@lubricentro.test",
    )
    return {"Authorization": f"Bearer {token}"}
