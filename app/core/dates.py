"""Timestamp normalization and calendar arithmetic.

Tenant documents carry instants in several shapes: native datetimes, ISO
strings, epoch numbers (seconds or milliseconds) and document-store timestamp
wrappers exposing an accessor. Everything is normalized here into a
timezone-aware UTC ``datetime`` before it reaches the subscription engine.
"""
from datetime import datetime, date, time, timezone
from typing import Any, Optional

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta


# Epoch values above this are treated as milliseconds (~ year 5138 in seconds).
_EPOCH_MS_THRESHOLD = 100_000_000_000

_ACCESSORS = ("to_datetime", "ToDatetime", "toDate", "to_pydatetime")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _from_epoch(value: float) -> datetime:
    if abs(value) >= _EPOCH_MS_THRESHOLD:
        value = value / 1000.0
    return datetime.fromtimestamp(value, tz=timezone.utc)


def _from_mapping(value: dict) -> Optional[datetime]:
    seconds = value.get("seconds", value.get("_seconds"))
    if seconds is None:
        return None
    nanos = value.get("nanoseconds", value.get("_nanoseconds", 0)) or 0
    return _from_epoch(float(seconds) + float(nanos) / 1e9)


def _from_string(value: str) -> Optional[datetime]:
    text = value.strip()
    if not text:
        return None
    try:
        return _from_epoch(float(text))
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return date_parser.parse(text)


def _from_accessor(value: Any) -> Optional[datetime]:
    for accessor in _ACCESSORS:
        method = getattr(value, accessor, None)
        if not callable(method):
            continue
        try:
            raw = method()
        except Exception:
            # Foreign timestamp wrappers may fail in any way; treat as unparseable.
            return None
        return parse_instant(raw)
    return None


def parse_instant(value: Any) -> Optional[datetime]:
    """Best-effort conversion of ``value`` to an aware UTC datetime.

    Returns None when the value is missing or cannot be interpreted; never raises.
    """
    if value is None:
        return None

    try:
        if isinstance(value, datetime):
            result = value
        elif isinstance(value, date):
            result = datetime.combine(value, time.min)
        elif isinstance(value, bool):
            return None
        elif isinstance(value, (int, float)):
            result = _from_epoch(float(value))
        elif isinstance(value, str):
            result = _from_string(value)
        elif isinstance(value, dict):
            result = _from_mapping(value)
        else:
            return _from_accessor(value)
    except (ValueError, TypeError, OverflowError, OSError, ArithmeticError):
        return None

    if result is None:
        return None
    if result.tzinfo is None:
        return result.replace(tzinfo=timezone.utc)
    return result.astimezone(timezone.utc)


def to_instant(value: Any, default: Optional[datetime] = None) -> datetime:
    """Like :func:`parse_instant` but falls back to ``default`` (or now)."""
    parsed = parse_instant(value)
    if parsed is not None:
        return parsed
    return default if default is not None else utcnow()


def add_months(moment: datetime, months: int) -> datetime:
    """Calendar month addition, clamping to the last day of short months."""
    return moment + relativedelta(months=months)


def whole_days_between(start: datetime, end: datetime) -> int:
    """Whole days elapsed from ``start`` to ``end`` (negative if ``end`` is earlier)."""
    delta = end - start
    return delta.days
