"""Seed data script to populate the plan catalog and a demo tenant."""
import asyncio
import uuid
from datetime import timedelta

from sqlalchemy import select

from app.core.config import settings
from app.core.database import async_session_maker, engine, Base
from app.core.dates import utcnow
from app.core.enums import PlanType, TenantStatus, UserRole
from app.core.security import create_access_token
from app.models import Plan, Tenant
from app.subscription.catalog import FALLBACK_PLANS


SERVICE_PLANS = [
    {
        "id": "services50",
        "name": "Plan 50 Servicios",
        "description": "50 servicios para usar en 6 meses",
        "service_price": 6000,
        "total_services": 50,
        "max_users": 2,
    },
    {
        "id": "services100",
        "name": "Plan 100 Servicios",
        "description": "100 servicios para usar en 6 meses",
        "service_price": 10500,
        "total_services": 100,
        "max_users": 3,
        "recommended": True,
    },
    {
        "id": "services250",
        "name": "Plan 250 Servicios",
        "description": "250 servicios para usar en 6 meses",
        "service_price": 24000,
        "total_services": 250,
        "max_users": 5,
    },
]


def monthly_plan_rows():
    for plan in FALLBACK_PLANS.values():
        yield Plan(
            id=plan.id,
            name=plan.name,
            description=plan.description,
            plan_type=PlanType.MONTHLY,
            price_monthly=plan.price_monthly,
            price_semiannual=plan.price_semiannual,
            max_users=plan.max_users,
            max_monthly_services=plan.max_monthly_services,
            recommended=plan.recommended,
            publish_on_homepage=True,
            display_order=plan.display_order,
            features=list(plan.features),
        )


def service_plan_rows(start_order: int):
    for offset, data in enumerate(SERVICE_PLANS):
        yield Plan(
            plan_type=PlanType.SERVICE,
            validity_months=6,
            publish_on_homepage=True,
            display_order=start_order + offset,
            features=[f"{data['total_services']} servicios incluidos", "Vigencia de 6 meses"],
            **data,
        )


async def seed_data():
    """Seed initial data for testing."""
    async with async_session_maker() as session:
        # Check if data already exists
        result = await session.execute(select(Plan).limit(1))
        if result.scalar_one_or_none():
            print("Data already seeded. Skipping...")
            return

        plans = list(monthly_plan_rows())
        plans.extend(service_plan_rows(start_order=len(plans) + 1))
        session.add_all(plans)
        print(f"Created {len(plans)} plans")

        now = utcnow()
        tenant = Tenant(
            id=str(uuid.uuid4()),
            name="Lubricentro Demo",
            email="demo@lubricentro.test",
            status=TenantStatus.TRIAL,
            created_at=now,
            updated_at=now,
            trial_end=now + timedelta(days=settings.TRIAL_DURATION_DAYS),
            active_user_count=1,
        )
        session.add(tenant)
        await session.commit()
        print(f"Created tenant: {tenant.name} (ID: {tenant.id})")

        token = create_access_token(
            user_id=str(uuid.uuid4()),
            tenant_id=tenant.id,
            role=UserRole.OWNER.value,
            email=tenant.email,
        )
        print("\n✅ Seed data created successfully!")
        print(f"\n📝 Owner access token:\n   {token}")


async def main():
    """Main entry point."""
    # Create tables if they don't exist (for local development)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    await seed_data()


if __name__ == "__main__":
    asyncio.run(main())
