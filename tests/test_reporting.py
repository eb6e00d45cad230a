"""Catalog helpers and dashboard summary tests."""
from datetime import timedelta

import pytest

from app.core.enums import BillingType, PlanHealth, TenantStatus
from app.subscription.catalog import (
    coerce_billing_type, effective_price, format_plan_name, published_plans, require_plan,
)
from app.subscription.errors import UnknownPlan
from app.subscription.reporting import plan_status_info, subscription_stats
from tests.factories import NOW, make_active_tenant, make_service_tenant, make_tenant


def test_effective_price_by_billing_type(catalog):
    basic = catalog["basic"]

    assert effective_price(basic) == 2500
    assert effective_price(basic, BillingType.SEMIANNUAL) == 12000
    assert effective_price(basic, "SEMIANNUAL") == 12000
    assert effective_price(basic, "yearly") == 2500


def test_effective_price_of_service_plan_ignores_billing(catalog):
    assert effective_price(catalog["services100"], BillingType.SEMIANNUAL) == 10500


def test_coerce_billing_type_defaults_to_monthly():
    assert coerce_billing_type(None) == BillingType.MONTHLY
    assert coerce_billing_type(" semiannual ") == BillingType.SEMIANNUAL


def test_require_plan_unknown(catalog):
    with pytest.raises(UnknownPlan) as exc_info:
        require_plan(catalog, "gold")

    assert exc_info.value.plan_id == "gold"
    assert exc_info.value.status_code == 404


def test_published_plans_sorted_and_active_only(catalog):
    hidden = catalog["starter"].model_copy(update={"is_active": False})
    plans = published_plans({**catalog, "starter": hidden})

    ids = [p.id for p in plans]
    assert "starter" not in ids
    assert ids[:3] == ["services100", "basic", "premium"]


def test_format_plan_name(catalog):
    assert format_plan_name(None) == "Sin plan"
    assert format_plan_name("premium", catalog) == "Plan Premium"
    assert format_plan_name("legacy_gold") == "Legacy Gold"


@pytest.mark.parametrize(
    "used, remaining, health",
    [
        (40, 60, PlanHealth.OK),
        (75, 25, PlanHealth.WARNING),
        (95, 5, PlanHealth.CRITICAL),
    ],
)
def test_plan_status_health(used, remaining, health):
    tenant = make_service_tenant(services_used=used, services_remaining=remaining)

    info = plan_status_info(tenant, NOW)

    assert info.health == health
    assert info.percentage_used == used


def test_plan_status_expiry():
    tenant = make_service_tenant(service_subscription_expiry=NOW + timedelta(days=10, hours=2))

    info = plan_status_info(tenant, NOW)

    assert info.days_until_expiry == 11
    assert info.is_expired is False


def test_plan_status_expired():
    tenant = make_service_tenant(service_subscription_expiry=NOW - timedelta(days=3))

    assert plan_status_info(tenant, NOW).is_expired is True


def test_plan_status_empty_bucket():
    info = plan_status_info(make_tenant(), NOW)

    assert info.total == 0
    assert info.percentage_used == 0
    assert info.health == PlanHealth.CRITICAL
    assert info.days_until_expiry is None


def test_subscription_stats():
    tenants = [
        make_tenant(id="t1"),
        make_active_tenant(id="t2"),
        make_active_tenant(id="t3", plan_id="premium"),
        make_active_tenant(id="t4", status=TenantStatus.INACTIVE),
        make_service_tenant(id="t5"),
    ]

    stats = subscription_stats(tenants)

    assert stats.total == 5
    assert stats.active == 3
    assert stats.trial == 1
    assert stats.inactive == 1
    assert stats.by_plan == {"basic": 2, "premium": 1, "services100": 1}
