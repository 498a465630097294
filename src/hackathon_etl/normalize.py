"""Normalization functions for hackathon submission ingestion.

All functions accept str | None and return the appropriate type or None.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

_INT_RE = re.compile(r"^[+-]?\d+$")
_DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%b %d, %Y")


# ---------------------------------------------------------------------------
# Rule 1: trim
# ---------------------------------------------------------------------------

def trim(value: str | None) -> str | None:
    """Strip leading/trailing whitespace; treat empty string as None."""
    if value is None:
        return None
    v = value.strip()
    return v if v else None


# ---------------------------------------------------------------------------
# Rule 2: parse_int
# ---------------------------------------------------------------------------

def parse_int(value: str | None) -> int | None:
    """Parse an optionally signed run of digits.

    '5.0', '1_000' and '0x10' are rejected even though int() or Decimal()
    would accept some of them.
    """
    v = trim(value)
    if v is None or not _INT_RE.match(v):
        return None
    return int(v)


# ---------------------------------------------------------------------------
# Rule 3: parse_decimal
# ---------------------------------------------------------------------------

def parse_decimal(value: str | None) -> Decimal | None:
    """Parse a finite decimal number, returning None on failure.

    NaN and Infinity parse as Decimal but are not valid scores.
    """
    v = trim(value)
    if v is None or "_" in v:
        return None
    try:
        d = Decimal(v)
    except InvalidOperation:
        return None
    return d if d.is_finite() else None


# ---------------------------------------------------------------------------
# Rule 4: parse_date
# ---------------------------------------------------------------------------

def parse_date(value: str | None) -> date | None:
    """Parse a calendar date.

    Accepts ISO dates, ISO date-times (time part dropped), '%m/%d/%Y'
    and '%b %d, %Y' (e.g. 'Jul 23, 2025').
    """
    v = trim(value)
    if v is None:
        return None
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(v, fmt).date()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(v).date()
    except ValueError:
        return None
