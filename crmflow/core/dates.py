"""
Date helpers for list names, email names and campaign filters.

Month abbreviations are spelled out here rather than taken from
``strftime('%b')`` so names never depend on the process locale.
"""

import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple, Union

from .exceptions import InvalidFilterError

MONTH_NAMES = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
               "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
_MONTH_LOOKUP = {name.lower(): index + 1 for index, name in enumerate(MONTH_NAMES)}

EMAIL_NAME_DATE_PATTERN = re.compile(r"\d{2} \w{3} \d{4}")
_ISO_FRACTION = re.compile(r"\.(\d+)")

DateLike = Union[date, datetime, str]


def parse_iso_datetime(text: str) -> datetime:
    """
    Parse an ISO-8601 timestamp as returned by PostgREST or HubSpot.

    Accepts a trailing ``Z`` and fractional seconds of any length, which
    ``datetime.fromisoformat`` only handles from Python 3.11.
    """
    text = text.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    text = _ISO_FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    return datetime.fromisoformat(text)


def to_date(value: DateLike) -> date:
    """Coerce an ISO string, date or datetime into a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return parse_iso_datetime(text).date()
    except ValueError:
        return date.fromisoformat(text[:10])


def format_list_date(value: DateLike) -> str:
    """Format as ``D MMM YYYY`` (e.g. ``5 Mar 2025``)."""
    d = to_date(value)
    return f"{d.day} {MONTH_NAMES[d.month - 1]} {d.year}"


def format_email_date(value: date) -> str:
    """Format as ``DD MMM YYYY`` (e.g. ``05 Mar 2025``)."""
    return f"{value.day:02d} {MONTH_NAMES[value.month - 1]} {value.year}"


def parse_email_date(text: str) -> Optional[date]:
    """Parse a ``DD MMM YYYY`` fragment; None when it is not a real date."""
    try:
        day_part, month_part, year_part = text.split(" ")
        month = _MONTH_LOOKUP.get(month_part.lower())
        if month is None:
            return None
        return date(int(year_part), month, int(day_part))
    except ValueError:
        return None


def shift_name_date(name: str, day_offset: int) -> Optional[Tuple[str, date]]:
    """
    Replace the ``DD MMM YYYY`` date inside ``name`` with that date plus
    ``day_offset`` days.

    Returns the new name and the shifted date, or None when the name carries
    no parseable date.
    """
    if not name:
        return None
    match = EMAIL_NAME_DATE_PATTERN.search(name)
    if not match:
        return None
    original = parse_email_date(match.group(0))
    if original is None:
        return None
    shifted = original + timedelta(days=day_offset)
    new_name = name[:match.start()] + format_email_date(shifted) + name[match.end():]
    return new_name, shifted


def epoch_midnight_ms(value: DateLike) -> str:
    """Epoch milliseconds of ``value`` truncated to UTC midnight, as a string."""
    if isinstance(value, datetime) and value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    midnight = datetime.combine(to_date(value), time(0, 0), tzinfo=timezone.utc)
    return str(int(midnight.timestamp() * 1000))


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def resolve_filter_date(days_filter: str, today: Optional[date] = None) -> Optional[str]:
    """
    Resolve a days filter to an ISO date.

    ``today`` -> today, ``t+N`` -> today + N days, ``all`` -> None (no filter).
    """
    today = today or utc_today()
    if days_filter == "all":
        return None
    if days_filter == "today":
        return today.isoformat()
    if days_filter and days_filter.startswith("t+"):
        try:
            days_to_add = int(days_filter[2:])
        except ValueError:
            raise InvalidFilterError("days", days_filter, ["today", "t+N", "all"])
        return (today + timedelta(days=days_to_add)).isoformat()
    raise InvalidFilterError("days", days_filter, ["today", "t+N", "all"])


def utc_day_window(day: Optional[DateLike] = None) -> Tuple[datetime, datetime]:
    """Return [start, end) of a UTC calendar day."""
    d = to_date(day) if day is not None else utc_today()
    start = datetime.combine(d, time(0, 0), tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def format_display_datetime(value: Union[datetime, str]) -> str:
    """Format as ``D MMM YYYY h:mmAM`` for list views."""
    if isinstance(value, str):
        value = parse_iso_datetime(value)
    hours = value.hour % 12 or 12
    suffix = "PM" if value.hour >= 12 else "AM"
    return f"{value.day} {MONTH_NAMES[value.month - 1]} {value.year} {hours}:{value.minute:02d}{suffix}"
