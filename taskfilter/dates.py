"""Relative and absolute date literals.

Date literals are resolved lazily, at comparison time, so `now` always means
the moment a filter is evaluated rather than the moment it was parsed.

Supported forms:
    2024-05-01, 2024-05-01T09:30:00Z    ISO-8601 (naive values are UTC)
    now                                  current instant
    now+7d, now-1w, now+2               offset; units s m h d w M y, default d
    now/d, now/w, now/M, now/y           start of the current day/week/month/year
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone
from typing import Any

from dateutil.relativedelta import relativedelta

from .config import MAX_DATE_TOKEN_LENGTH

_ISO_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")
_RELATIVE = re.compile(r"^now([+-]\d+)([smhdwMy])?$")
_PERIOD = re.compile(r"^now/([dwMy])$")

# Upstream API encodes "no date" as the zero instant
_NULL_DATE_PREFIX = "0001-01-01"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse_iso(text: str) -> datetime | None:
    normalized = text.strip()
    if normalized.endswith(("Z", "z")):
        normalized = normalized[:-1] + "+00:00"
    try:
        return _as_utc(datetime.fromisoformat(normalized))
    except ValueError:
        return None


def _offset(amount: int, unit: str) -> timedelta | relativedelta:
    if unit == "s":
        return timedelta(seconds=amount)
    if unit == "m":
        return timedelta(minutes=amount)
    if unit == "h":
        return timedelta(hours=amount)
    if unit == "w":
        return timedelta(weeks=amount)
    if unit == "M":
        return relativedelta(months=amount)
    if unit == "y":
        return relativedelta(years=amount)
    return timedelta(days=amount)


def _start_of_period(now: datetime, unit: str) -> datetime:
    day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if unit == "w":
        return day - timedelta(days=day.weekday())
    if unit == "M":
        return day.replace(day=1)
    if unit == "y":
        return day.replace(month=1, day=1)
    return day


def resolve_date(token: str, now: datetime | None = None) -> datetime | None:
    """
    Resolve a date literal to an aware UTC datetime.

    Args:
        token: ISO-8601 string or relative token such as `now-1w`
        now: Reference instant (defaults to the current time)

    Returns:
        The resolved instant, or None when the token is not a date literal.
        Callers treat None as "condition does not match".
    """
    if not isinstance(token, str) or len(token) > MAX_DATE_TOKEN_LENGTH:
        return None
    token = token.strip()

    if _ISO_PREFIX.match(token):
        return _parse_iso(token)

    if not token.startswith("now"):
        return None
    reference = _as_utc(now) if now is not None else _utcnow()

    if token == "now":
        return reference

    match = _RELATIVE.match(token)
    if match:
        amount = int(match.group(1))
        unit = match.group(2) or "d"
        try:
            return reference + _offset(amount, unit)
        except (OverflowError, ValueError):
            # Offset lands outside the representable date range
            return None

    match = _PERIOD.match(token)
    if match:
        return _start_of_period(reference, match.group(1))

    return None


def is_valid_date_value(token: str) -> bool:
    """True when `token` is a resolvable date literal."""
    return resolve_date(token) is not None


def parse_task_date(value: Any) -> datetime | None:
    """
    Normalize a task-side date value.

    Returns None for absent dates: None, empty strings, unparseable strings and
    the upstream zero-date sentinel.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.year == 1:
            return None
        return _as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str):
        if not value or value.startswith(_NULL_DATE_PREFIX):
            return None
        return _parse_iso(value)
    return None


def same_day(a: datetime, b: datetime) -> bool:
    """Calendar-day equality (UTC), ignoring the time of day."""
    return _as_utc(a).date() == _as_utc(b).date()
