"""
Values -- coercion and arithmetic helpers for backend record fields.

Responsibility:
    Backend records arrive with optional, loosely typed fields (numbers as
    floats or strings, timestamps with or without offsets, blank strings
    where nothing was entered).  These helpers state the defaulting rules
    once so every record type applies them the same way.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Decimal-only arithmetic for monetary amounts (never float).
    - Missing or malformed amounts coalesce to ``Decimal("0")``.
    - Naive datetimes are read as UTC so comparisons never mix naive and
      aware values.

Failure modes:
    - ``parse_datetime`` / ``parse_date`` raise ValueError on a non-empty
      string that is not ISO 8601.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0")
ONE_DAY = timedelta(days=1)


def to_amount(value: Any) -> Decimal:
    """
    Coerce a backend amount to Decimal, treating anything unusable as zero.

    Floats go through ``str`` so ``0.1`` becomes ``Decimal("0.1")`` rather
    than its binary expansion.  Booleans, NaN and infinities are rejected
    as zero.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            return ZERO
        return Decimal(str(value))
    if isinstance(value, str):
        text = value.strip().replace(",", "").lstrip("$")
        if not text:
            return ZERO
        try:
            amount = Decimal(text)
        except InvalidOperation:
            return ZERO
        return amount if amount.is_finite() else ZERO
    return ZERO


def quantize_amount(amount: Decimal, places: int = 2) -> Decimal:
    """Round half-up to a fixed number of decimal places for display."""
    return amount.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def blank_to_none(value: Any) -> str | None:
    """Strip a string field; empty strings and None both become None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def as_utc(value: datetime | None) -> datetime | None:
    """Return ``value`` as an aware UTC datetime; naive values are assumed UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_datetime(value: Any) -> datetime | None:
    """Parse an ISO 8601 timestamp (``Z`` suffix accepted) into aware UTC."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    text = str(value).strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return as_utc(datetime.fromisoformat(text))


def parse_date(value: Any) -> date | None:
    """Parse a calendar date; timestamps are truncated to their UTC date."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return as_utc(value).date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    if len(text) == 10:
        return date.fromisoformat(text)
    parsed = parse_datetime(text)
    return parsed.date() if parsed else None


def whole_days_between(later: datetime, earlier: datetime) -> int:
    """
    Number of full days from ``earlier`` to ``later``, truncated toward zero.

    ``later`` before ``earlier`` gives a negative count; a partial day in
    either direction does not count.
    """
    return int((as_utc(later) - as_utc(earlier)) / ONE_DAY)
