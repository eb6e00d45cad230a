"""Timestamp normalization tests."""
from datetime import date, datetime, timedelta, timezone

import pytest

from app.core.dates import add_months, parse_instant, to_instant, whole_days_between
from tests.factories import make_tenant


EXPECTED = datetime(2024, 5, 1, 15, 30, tzinfo=timezone.utc)


class FirestoreLikeTimestamp:
    def __init__(self, moment: datetime):
        self._moment = moment

    def toDate(self):
        return self._moment


@pytest.mark.parametrize(
    "value",
    [
        EXPECTED,
        EXPECTED.astimezone(timezone(timedelta(hours=-3))),
        "2024-05-01T15:30:00Z",
        "2024-05-01T12:30:00-03:00",
        "Wed, 01 May 2024 15:30:00 GMT",
        EXPECTED.timestamp(),
        int(EXPECTED.timestamp() * 1000),
        str(int(EXPECTED.timestamp())),
        {"seconds": int(EXPECTED.timestamp()), "nanoseconds": 0},
        {"_seconds": int(EXPECTED.timestamp()), "_nanoseconds": 0},
        FirestoreLikeTimestamp(EXPECTED),
    ],
)
def test_representations_normalize_to_same_instant(value):
    assert parse_instant(value) == EXPECTED


def test_naive_datetime_is_treated_as_utc():
    parsed = parse_instant(datetime(2024, 5, 1, 15, 30))

    assert parsed == EXPECTED
    assert parsed.tzinfo is not None


def test_plain_date_is_midnight_utc():
    assert parse_instant(date(2024, 5, 1)) == datetime(2024, 5, 1, tzinfo=timezone.utc)


@pytest.mark.parametrize("value", [None, "", "   ", "garbage", True, {"foo": 1}, object(), float("nan")])
def test_unparseable_values_return_none(value):
    assert parse_instant(value) is None


class BrokenTimestamp:
    def toDate(self):
        raise RuntimeError("wrapper detached from its document")


def test_failing_accessor_returns_none():
    assert parse_instant(BrokenTimestamp()) is None


def test_to_instant_default():
    fallback = datetime(2020, 1, 1, tzinfo=timezone.utc)

    assert to_instant("garbage", fallback) == fallback
    assert to_instant(None).tzinfo is not None


def test_add_months_clamps_to_month_end():
    assert add_months(datetime(2024, 1, 31, tzinfo=timezone.utc), 1) == datetime(2024, 2, 29, tzinfo=timezone.utc)
    assert add_months(datetime(2024, 8, 31, tzinfo=timezone.utc), 6) == datetime(2025, 2, 28, tzinfo=timezone.utc)


def test_whole_days_between_truncates():
    start = datetime(2024, 5, 1, tzinfo=timezone.utc)

    assert whole_days_between(start, start + timedelta(days=2, hours=23)) == 2
    assert whole_days_between(start, start) == 0


def test_snapshot_normalizes_mixed_timestamps():
    tenant = make_tenant(
        created_at="2024-05-01T15:30:00Z",
        subscription_end={"seconds": int(EXPECTED.timestamp())},
        service_subscription_expiry=int(EXPECTED.timestamp() * 1000),
        billing_cycle_end="not a date",
    )

    assert tenant.created_at == EXPECTED
    assert tenant.subscription_end == EXPECTED
    assert tenant.service_subscription_expiry == EXPECTED
    assert tenant.billing_cycle_end is None
