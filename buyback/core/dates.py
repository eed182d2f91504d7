"""Date helpers shared by the API, the spreadsheet export and the import.

Two kinds of values pass through here and they must not be confused:

* ``date`` is a calendar day (the buyback date). It is shown from its UTC
  calendar components so that no timezone offset can move it to a
  neighbouring day.
* ``created_at``/``updated_at`` are instants. They are converted to a local
  zone before display and may legitimately land on a different day.

Both formatters return ``"Invalid date"`` instead of raising.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .config import settings

INVALID_DATE = "Invalid date"
DISPLAY_FORMAT = "%d-%m-%y | %I:%M %p"
DATE_DISPLAY_FORMAT = "%d-%m-%y | 12:00 AM"

_CALENDAR_FORMATS = ("%d-%m-%y | %I:%M %p", "%d-%m-%y", "%Y-%m-%d", "%d/%m/%Y")


def utc_now_iso() -> str:
    """Current instant as the ISO text stored in the timestamp columns."""

    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _to_dt(value: Any) -> datetime | None:
    """Coerce ISO strings and datetimes into aware UTC datetimes."""

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_date(value: Any) -> str:
    """Format a calendar day as ``dd-MM-yy | 12:00 AM``."""

    if isinstance(value, date) and not isinstance(value, datetime):
        return value.strftime(DATE_DISPLAY_FORMAT)
    dt = _to_dt(value)
    if dt is None:
        return INVALID_DATE
    return dt.date().strftime(DATE_DISPLAY_FORMAT)


def format_timestamp(value: Any, tz: str | None = None) -> str:
    """Format an instant as ``dd-MM-yy | hh:mm AM`` in ``tz`` (default ``settings.TZ``)."""

    dt = _to_dt(value)
    if dt is None:
        return INVALID_DATE
    try:
        zone = ZoneInfo(tz or settings.TZ)
    except (ZoneInfoNotFoundError, ValueError):
        return INVALID_DATE
    return dt.astimezone(zone).strftime(DISPLAY_FORMAT)


def parse_calendar_date(value: Any) -> date:
    """Read a calendar day out of whatever a form or spreadsheet cell holds.

    Aware datetimes contribute their UTC day; naive ones their own day. Strings
    may be ISO dates/timestamps or the exported ``dd-MM-yy | hh:mm AM`` text.
    """

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError("date is required")

    text = value.strip()
    dt = _to_dt(text)
    if dt is not None:
        return dt.date()
    for fmt in _CALENDAR_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Unrecognised date: {text!r}")
