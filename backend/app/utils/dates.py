"""Tolerant parsing of the free-form travel date strings users and upstream services produce.

Accepted shapes:
    2026-03-04                      2026-03-04 to 2026-03-09
    March 4, 2026                   Feb 15 - Feb 22, 2026
    Jan 15, 2026 - Jan 22, 2026     June 15-22, 2026
    Mar 4 - 9, 2026                 March 2026, 7 days   (flexible: starts on the 1st)
"""

import re
from datetime import date, datetime, timedelta

_ISO_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")
_RANGE_SPLIT = re.compile(r"\s+(?:to|until|-|–|—)\s+", re.IGNORECASE)
_SAME_MONTH_RANGE = re.compile(r"^([A-Za-z]+)\.?\s+(\d{1,2})\s*[-–]\s*(\d{1,2}),?\s+(\d{4})$")
_FLEXIBLE = re.compile(r"^([A-Za-z]+)\.?\s+(\d{4}),?\s*\(?(\d{1,3})\s*(?:days?|nights?)\)?$", re.IGNORECASE)
_DAY_AND_YEAR = re.compile(r"^(\d{1,2}),?\s+(\d{4})$")
_YEAR = re.compile(r"(\d{4})")
_MONTH_DAY_FORMATS = ("%b %d, %Y", "%B %d, %Y", "%b %d %Y", "%B %d %Y", "%d %b %Y", "%d %B %Y")


def _month_number(name: str) -> int | None:
    for fmt in ("%b", "%B"):
        try:
            return datetime.strptime(name[:3] if fmt == "%b" else name, fmt).month
        except ValueError:
            continue
    return None


def parse_date(text: str) -> date | None:
    """Parse a single calendar date, or None."""
    text = " ".join(text.replace(".", " ").split()).strip(" ,")
    if not text:
        return None
    if _ISO_PREFIX.match(text):
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            return None
    for fmt in _MONTH_DAY_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def parse_date_range(text: str | None) -> tuple[date, date] | None:
    """Parse a date or date range into (start, end); None when nothing usable is found."""
    if not isinstance(text, str):
        return None
    text = " ".join(text.split())
    if not text:
        return None

    flexible = _FLEXIBLE.match(text)
    if flexible:
        month = _month_number(flexible.group(1))
        days = int(flexible.group(3))
        if month is None or days < 1:
            return None
        try:
            start = date(int(flexible.group(2)), month, 1)
            return start, start + timedelta(days=days - 1)
        except (ValueError, OverflowError):
            return None

    same_month = _SAME_MONTH_RANGE.match(text)
    if same_month:
        name, first, last, year = same_month.groups()
        start = parse_date(f"{name} {first}, {year}")
        end = parse_date(f"{name} {last}, {year}")
        if start and end:
            return start, end

    parts = _RANGE_SPLIT.split(text)
    if len(parts) == 2:
        start_text, end_text = (p.strip() for p in parts)
        if _DAY_AND_YEAR.match(end_text):
            end_text = f"{start_text.split()[0]} {end_text}"
        year = _YEAR.search(end_text)
        if not _YEAR.search(start_text) and year:
            start_text = f"{start_text}, {year.group(1)}"
        start = parse_date(start_text)
        end = parse_date(end_text)
        if start and end:
            if end < start and start.month == 12 and end.month == 1:
                # "Dec 28 - Jan 3, 2026" borrowed the end year for the start
                if start.year == 1:
                    return None
                start = date(start.year - 1, start.month, start.day)
            return start, end
        return None

    single = parse_date(text)
    if single:
        return single, single
    return None


def days_between(start: date, today: date) -> int:
    """Whole days from today until start (0 = today, negative = past)."""
    return (start - today).days
