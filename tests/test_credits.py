"""Service-credit accounting tests."""
from datetime import timedelta

import pytest

from app.core.dates import add_months
from app.core.enums import PaymentStatus, TenantStatus
from app.subscription.credits import (
    can_purchase_more_services, purchase_additional_services, renew_plan,
)
from app.subscription.errors import InvalidQuantity, NotServicePlan
from app.subscription.models import PaymentRecord
from tests.factories import NOW, make_active_tenant, make_service_tenant


def test_purchase_adds_to_remaining_credits():
    """100 contracted, 75 used: buying 100 more leaves 125 to use."""
    tenant = make_service_tenant(
        total_services_contracted=100, services_used=75, services_remaining=25,
    )

    updated = purchase_additional_services(tenant, 100, NOW)

    assert updated.total_services_contracted == 200
    assert updated.services_used == 75
    assert updated.services_remaining == 125


def test_purchase_extends_valid_expiry():
    tenant = make_service_tenant()
    current_expiry = tenant.service_subscription_expiry

    updated = purchase_additional_services(tenant, 10, NOW)

    expected = add_months(current_expiry, 6)
    assert updated.service_subscription_expiry == expected
    assert updated.subscription_end == expected
    assert updated.billing_cycle_end == expected


def test_purchase_on_expired_plan_counts_from_now():
    tenant = make_service_tenant(
        service_subscription_expiry=NOW - timedelta(days=30),
        status=TenantStatus.INACTIVE,
        inactive_reason="subscription_expired",
    )

    updated = purchase_additional_services(tenant, 10, NOW)

    assert updated.service_subscription_expiry == add_months(NOW, 6)
    assert updated.status == TenantStatus.ACTIVE
    assert updated.payment_status == PaymentStatus.PAID
    assert updated.inactive_reason is None


def test_purchase_rejects_monthly_plans():
    with pytest.raises(NotServicePlan):
        purchase_additional_services(make_active_tenant(), 10, NOW)


@pytest.mark.parametrize("quantity", [0, -5])
def test_purchase_rejects_non_positive_quantity(quantity):
    with pytest.raises(InvalidQuantity):
        purchase_additional_services(make_service_tenant(), quantity, NOW)


def test_purchase_does_not_mutate_input():
    tenant = make_service_tenant()

    purchase_additional_services(tenant, 10, NOW)

    assert tenant.total_services_contracted == 100
    assert tenant.services_remaining == 60


def test_renew_replaces_bucket_without_carry_over():
    """Renewal discards leftovers, unlike an additional purchase."""
    tenant = make_service_tenant(
        total_services_contracted=100, services_used=75, services_remaining=25,
    )

    renewed = renew_plan(tenant, 100, reset_usage_counters=True, now=NOW)
    topped_up = purchase_additional_services(tenant, 100, NOW)

    assert renewed.total_services_contracted == 100
    assert renewed.services_remaining == 100
    assert renewed.services_used == 0
    assert topped_up.services_remaining == 125


def test_renew_with_reset_zeroes_monthly_counter():
    tenant = make_service_tenant(services_used_this_month=12)

    renewed = renew_plan(tenant, 50, reset_usage_counters=True, now=NOW)

    assert renewed.services_used_this_month == 0
    assert renewed.service_subscription_expiry == add_months(NOW, 6)
    assert renewed.subscription_end == add_months(NOW, 6)
    assert renewed.status == TenantStatus.ACTIVE


def test_renew_without_reset_keeps_used_services():
    tenant = make_service_tenant(services_used=40, services_used_this_month=12)

    renewed = renew_plan(tenant, 100, reset_usage_counters=False, now=NOW)

    assert renewed.total_services_contracted == 100
    assert renewed.services_used == 40
    assert renewed.services_remaining == 60
    assert renewed.services_used_this_month == 12


def test_renew_below_used_never_goes_negative():
    tenant = make_service_tenant(services_used=80, services_remaining=20)

    renewed = renew_plan(tenant, 50, reset_usage_counters=False, now=NOW)

    assert renewed.services_remaining == 0


def test_renew_rejects_negative_total():
    with pytest.raises(InvalidQuantity):
        renew_plan(make_service_tenant(), -1, reset_usage_counters=True, now=NOW)


def test_can_purchase_for_current_service_plan():
    eligibility = can_purchase_more_services(make_service_tenant(), NOW)

    assert eligibility.allowed is True
    assert eligibility.reason is None


def test_cannot_purchase_on_monthly_plan():
    eligibility = can_purchase_more_services(make_active_tenant(), NOW)

    assert eligibility.allowed is False
    assert "monthly" in eligibility.reason


def test_cannot_purchase_on_long_expired_plan():
    tenant = make_service_tenant(service_subscription_expiry=NOW - timedelta(days=400))

    eligibility = can_purchase_more_services(tenant, NOW)

    assert eligibility.allowed is False
    assert "12 months" in eligibility.reason


def test_can_purchase_on_recently_expired_plan():
    tenant = make_service_tenant(service_subscription_expiry=NOW - timedelta(days=200))

    assert can_purchase_more_services(tenant, NOW).allowed is True


def test_purchase_appends_confirmed_payment():
    tenant = make_service_tenant()
    payment = PaymentRecord(amount=6000, paid_at=NOW, method="transfer", reference="trf-50")

    updated = purchase_additional_services(tenant, 50, NOW, payment)

    assert updated.payment_history == tenant.payment_history + (payment,)
    assert updated.services_remaining == tenant.services_remaining + 50
