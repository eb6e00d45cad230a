"""Test configuration and fixtures."""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("MERCADOPAGO_ACCESS_TOKEN", "TEST-token")
os.environ.setdefault("MERCADOPAGO_WEBHOOK_SECRET", "test-webhook-secret")

import pytest
import pytest_asyncio
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.core.database import Base, get_db
from app.core.enums import PlanType, RenewalType, TenantStatus, UserRole
from app.models.plan import Plan
from app.models.tenant import Tenant
from app.subscription.catalog import FALLBACK_PLANS
from app.subscription.models import PlanSnapshot
from tests.factories import NOW, auth_headers_for
import uuid


# Test database URL (use SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def catalog() -> dict:
    """Fallback monthly plans plus one service pack."""
    plans = dict(FALLBACK_PLANS)
    plans["services100"] = PlanSnapshot(
        id="services100",
        name="Plan 100 Servicios",
        plan_type=PlanType.SERVICE,
        service_price=10500,
        total_services=100,
        validity_months=6,
        max_users=3,
    )
    return plans


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh in-memory database per test."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_maker = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session

    await test_engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database override."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def seeded_plans(db_session: AsyncSession, catalog: dict) -> dict:
    """Store the test catalog in the plans table."""
    for order, plan in enumerate(catalog.values()):
        db_session.add(Plan(
            id=plan.id,
            name=plan.name,
            description=plan.description,
            plan_type=plan.plan_type,
            price_monthly=plan.price_monthly,
            price_semiannual=plan.price_semiannual,
            max_users=plan.max_users,
            max_monthly_services=plan.max_monthly_services,
            service_price=plan.service_price,
            total_services=plan.total_services,
            validity_months=plan.validity_months,
            recommended=plan.recommended,
            display_order=order,
            features=list(plan.features),
        ))
    await db_session.commit()
    return catalog


@pytest_asyncio.fixture
async def test_tenant(db_session: AsyncSession) -> Tenant:
    """Create a trial tenant created yesterday."""
    tenant = Tenant(
        id=str(uuid.uuid4()),
        name="Lubricentro Test",
        email="owner@lubricentro.test",
        status=TenantStatus.TRIAL,
        created_at=datetime.now(timezone.utc) - timedelta(days=1),
        active_user_count=1,
    )
    db_session.add(tenant)
    await db_session.commit()
    await db_session.refresh(tenant)
    return tenant


@pytest_asyncio.fixture
async def active_tenant(db_session: AsyncSession) -> Tenant:
    """Create a paid tenant on the basic monthly plan."""
    now = datetime.now(timezone.utc)
    tenant = Tenant(
        id=str(uuid.uuid4()),
        name="Lubricentro Activo",
        email="active@lubricentro.test",
        status=TenantStatus.ACTIVE,
        plan_id="basic",
        renewal_type=RenewalType.MONTHLY,
        created_at=now - timedelta(days=90),
        subscription_start=now - timedelta(days=5),
        subscription_end=now + timedelta(days=25),
        billing_cycle_end=now + timedelta(days=25),
        services_used_this_month=10,
        active_user_count=1,
    )
    db_session.add(tenant)
    await db_session.commit()
    await db_session.refresh(tenant)
    return tenant


@pytest.fixture
def auth_headers(test_tenant: Tenant) -> dict:
    """Authorization headers for the trial tenant's owner."""
    return auth_headers_for(test_tenant.id)


@pytest.fixture
def admin_headers(test_tenant: Tenant) -> dict:
    return auth_headers_for(test_tenant.id, role=UserRole.ADMIN.value)
