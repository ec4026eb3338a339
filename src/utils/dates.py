"""Date helpers for the housing dataset.

The source CSV stores dates as ``DD/MM/YY``. Internally every date is kept
in canonical ``YYYY-MM-DD`` form, which is fixed-width and zero-padded so
plain string comparison orders dates correctly.

Two-digit years are mapped with a fixed pivot: ``< 50`` becomes ``20YY`` and
``50..99`` becomes ``19YY``. Dates outside 1950-2049 cannot round-trip through
the two-digit form.

Source dates are read leniently: whitespace around each part is trimmed and
single-digit days and months are zero-padded, so ``" 1/6/20"`` parses as
``2020-06-01``. Years must be ASCII digits.
"""

from __future__ import annotations

import re

YEAR_PIVOT = 50

# Whole-string, ASCII-only matches; a trailing newline or non-ASCII digit is
# another shape
_CANONICAL_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
_SOURCE_RE = re.compile(r"[0-9]{2}/[0-9]{2}/[0-9]{2,4}")


def parse_source_date(value: str | None) -> str | None:
    """Convert a ``DD/MM/YY`` or ``DD/MM/YYYY`` date to ``YYYY-MM-DD``.

    Args:
        value: Date string from the source dataset.

    Returns:
        Canonical date string, or None if the value is malformed.
    """
    if not value:
        return None

    parts = value.split("/")
    if len(parts) != 3:
        return None

    day = parts[0].strip().zfill(2)
    month = parts[1].strip().zfill(2)
    year_text = parts[2].strip()
    if not (year_text.isascii() and year_text.isdigit()):
        return None
    year = int(year_text)

    if year < YEAR_PIVOT:
        year += 2000
    elif year < 100:
        year += 1900

    return f"{year}-{month}-{day}"


def to_source_date(value: str | None) -> str | None:
    """Convert a canonical ``YYYY-MM-DD`` date back to ``DD/MM/YY``.

    Args:
        value: Canonical date string.

    Returns:
        Source-format date string, or None if the value is malformed.
    """
    if not value:
        return None

    parts = value.split("-")
    if len(parts) != 3:
        return None

    try:
        year = int(parts[0])
    except ValueError:
        return None
    month, day = parts[1], parts[2]

    short_year = year - 2000 if year >= 2000 else year - 1900
    return f"{day}/{month}/{short_year:02d}"


def normalize_date(value: str | None) -> str | None:
    """Normalize a caller-supplied date to canonical form.

    Accepts ``YYYY-MM-DD`` (returned unchanged), ``DD/MM/YY`` and
    ``DD/MM/YYYY``. Any other shape yields None.
    """
    if not value:
        return None

    if _CANONICAL_RE.fullmatch(value):
        return value

    if _SOURCE_RE.fullmatch(value):
        return parse_source_date(value)

    return None


def compare_dates(first: str, second: str) -> int:
    """Compare two canonical dates, returning -1, 0 or 1."""
    if first == second:
        return 0
    return -1 if first < second else 1


def is_date_in_range(
    date: str | None, date_from: str | None = None, date_to: str | None = None
) -> bool:
    """Check whether a canonical date falls inside an inclusive range.

    A missing bound leaves that side of the range open.
    """
    if not date:
        return False
    if date_from and compare_dates(date, date_from) < 0:
        return False
    if date_to and compare_dates(date, date_to) > 0:
        return False
    return True
