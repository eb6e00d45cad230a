"""Subscription API tests."""
import httpx
import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import UserRole
from app.core.gateway import MercadoPagoGateway, get_gateway
from app.main import app
from app.models.tenant import Tenant
from app.services.tenant_store import get_tenant_snapshot, update_tenant
from tests.factories import auth_headers_for


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_list_plans_uses_fallback_catalog(client: AsyncClient):
    response = await client.get("/api/v1/plans")

    assert response.status_code == 200
    ids = [p["id"] for p in response.json()]
    assert ids == ["starter", "basic", "premium", "enterprise"]


@pytest.mark.asyncio
async def test_requires_token(client: AsyncClient):
    response = await client.get("/api/v1/subscription")

    assert response.status_code in (401, 403)


@pytest.mark.asyncio
async def test_invalid_token(client: AsyncClient):
    response = await client.get(
        "/api/v1/subscription",
        headers={"Authorization": "Bearer not-a-token"},
    )

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_unknown_tenant(client: AsyncClient):
    response = await client.get("/api/v1/subscription", headers=auth_headers_for("missing"))

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_get_trial_subscription(client: AsyncClient, auth_headers: dict):
    response = await client.get("/api/v1/subscription", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "TRIAL"
    assert data["plan_name"] == "Sin plan"
    assert data["can_add_user"] is True
    assert data["entitlement"]["total"] == 10
    assert data["entitlement"]["remaining"] == 10
    assert data["entitlement"]["plan_name"] == "Período de Prueba"


@pytest.mark.asyncio
async def test_get_trial_state(client: AsyncClient, auth_headers: dict):
    response = await client.get("/api/v1/subscription/trial", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["days_remaining"] == 6
    assert data["services_remaining"] == 10
    assert data["expired"] is False


@pytest.mark.asyncio
async def test_consume_service_until_trial_limit(client: AsyncClient, auth_headers: dict):
    for expected_used in range(1, 11):
        response = await client.post("/api/v1/subscription/services/consume", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["services_used_this_month"] == expected_used

    response = await client.post("/api/v1/subscription/services/consume", headers=auth_headers)

    assert response.status_code == 403
    body = response.json()
    assert body["code"] == "service_limit_reached"
    assert body["limit"] == 10


@pytest.mark.asyncio
async def test_plan_change_requires_active_tenant(client: AsyncClient, auth_headers: dict):
    response = await client.post(
        "/api/v1/subscription/plan-change",
        headers=auth_headers,
        json={"plan_id": "premium"},
    )

    assert response.status_code == 409
    assert response.json()["code"] == "invalid_tenant_state"


@pytest.mark.asyncio
async def test_plan_change_for_active_tenant(client: AsyncClient, active_tenant: Tenant):
    headers = auth_headers_for(active_tenant.id)

    response = await client.post(
        "/api/v1/subscription/plan-change",
        headers=headers,
        json={"plan_id": "premium", "billing_type": "semiannual"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["plan_id"] == "basic"
    assert data["pending_plan_id"] == "premium"
    assert data["pending_billing_type"] == "semiannual"


@pytest.mark.asyncio
async def test_plan_change_user_limit(client: AsyncClient, db_session: AsyncSession, active_tenant: Tenant):
    tenant_id = active_tenant.id
    await update_tenant(db_session, tenant_id, lambda t: t.evolve(active_user_count=4))

    response = await client.post(
        "/api/v1/subscription/plan-change",
        headers=auth_headers_for(tenant_id),
        json={"plan_id": "starter"},
    )

    assert response.status_code == 409
    body = response.json()
    assert body["code"] == "user_limit_exceeded"
    assert body["limit"] == 1


@pytest.mark.asyncio
async def test_plan_change_unknown_plan(client: AsyncClient, active_tenant: Tenant):
    response = await client.post(
        "/api/v1/subscription/plan-change",
        headers=auth_headers_for(active_tenant.id),
        json={"plan_id": "platinum"},
    )

    assert response.status_code == 404
    assert response.json()["code"] == "unknown_plan"


@pytest.mark.asyncio
async def test_employee_cannot_change_plan(client: AsyncClient, active_tenant: Tenant):
    response = await client.post(
        "/api/v1/subscription/plan-change",
        headers=auth_headers_for(active_tenant.id, role=UserRole.EMPLOYEE.value),
        json={"plan_id": "premium"},
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_owner_cannot_grant_service_credits(client: AsyncClient, db_session: AsyncSession, active_tenant: Tenant):
    """Credits are only added by an administrator after the payment is confirmed."""
    tenant_id = active_tenant.id
    await update_tenant(
        db_session,
        tenant_id,
        lambda t: t.evolve(
            status="INACTIVE",
            renewal_type="SERVICE_COUNT",
            total_services_contracted=100,
            services_used=100,
            services_remaining=0,
        ),
    )

    response = await client.post(
        f"/api/v1/admin/tenants/{tenant_id}/services/purchase",
        headers=auth_headers_for(tenant_id),
        json={"quantity": 9999},
    )

    assert response.status_code == 403
    stored = await get_tenant_snapshot(db_session, tenant_id)
    assert stored.status.value == "INACTIVE"
    assert stored.services_remaining == 0


@pytest.mark.asyncio
async def test_cancel_subscription_cancels_gateway_preapproval(
    client: AsyncClient,
    db_session: AsyncSession,
    active_tenant: Tenant,
):
    tenant_id = active_tenant.id
    await update_tenant(db_session, tenant_id, lambda t: t.evolve(gateway_subscription_id="pre-1", auto_renewal=True))
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(200, json={"id": "pre-1", "status": "cancelled"})

    app.dependency_overrides[get_gateway] = lambda: MercadoPagoGateway(
        access_token="TEST-token", transport=httpx.MockTransport(handler),
    )

    response = await client.post(
        "/api/v1/subscription/cancel",
        headers=auth_headers_for(tenant_id),
        json={"reason": "closing the shop"},
    )

    assert response.status_code == 200
    assert calls == ["/preapproval/pre-1"]
    data = response.json()
    assert data["status"] == "INACTIVE"
    assert data["auto_renewal"] is False

    stored = await get_tenant_snapshot(db_session, tenant_id)
    assert stored.inactive_reason == "closing the shop"
    assert stored.gateway_subscription_id is None


@pytest.mark.asyncio
async def test_cancel_fails_when_gateway_down(client: AsyncClient, db_session: AsyncSession, active_tenant: Tenant):
    tenant_id = active_tenant.id
    await update_tenant(db_session, tenant_id, lambda t: t.evolve(gateway_subscription_id="pre-1"))

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"message": "internal"})

    app.dependency_overrides[get_gateway] = lambda: MercadoPagoGateway(
        access_token="TEST-token", transport=httpx.MockTransport(handler),
    )

    response = await client.post("/api/v1/subscription/cancel", headers=auth_headers_for(tenant_id), json={})

    assert response.status_code == 502
    stored = await get_tenant_snapshot(db_session, tenant_id)
    assert stored.status.value == "ACTIVE"


@pytest.mark.asyncio
async def test_cancel_fails_when_gateway_keeps_subscription(
    client: AsyncClient,
    db_session: AsyncSession,
    active_tenant: Tenant,
):
    tenant_id = active_tenant.id
    await update_tenant(db_session, tenant_id, lambda t: t.evolve(gateway_subscription_id="pre-2", auto_renewal=True))

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"id": "pre-2", "status": "authorized"})

    app.dependency_overrides[get_gateway] = lambda: MercadoPagoGateway(
        access_token="TEST-token", transport=httpx.MockTransport(handler),
    )

    response = await client.post("/api/v1/subscription/cancel", headers=auth_headers_for(tenant_id), json={})

    assert response.status_code == 502
    assert response.json()["code"] == "gateway_error"
    stored = await get_tenant_snapshot(db_session, tenant_id)
    assert stored.status.value == "ACTIVE"
    assert stored.gateway_subscription_id == "pre-2"
