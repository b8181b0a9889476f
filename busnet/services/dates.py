"""
Lenient date parsing for backend values.

Backends hand dates back in several spellings: ``15/03/2024`` (day first),
``2024-03-15`` or ``2024-03-15T10:00:00Z``, and occasionally free-form text.
None of the helpers here raise on bad input; they return None instead.
"""

import logging
import re
from datetime import date, datetime, time
from typing import Any, Optional

from dateutil import parser as dtparse

logger = logging.getLogger(__name__)

_DAY_FIRST = re.compile(r"^(\d{2})/(\d{2})/(\d{4})$")
_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse a date/datetime value; None when empty or unparseable."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time())

    text = str(value).strip()
    try:
        match = _DAY_FIRST.match(text)
        if match:
            day, month, year = (int(part) for part in match.groups())
            return datetime(year, month, day)

        match = _ISO_DATE.match(text)
        if match:
            try:
                return datetime.fromisoformat(text.replace("Z", "+00:00"))
            except ValueError:
                year, month, day = (int(part) for part in match.groups())
                return datetime(year, month, day)

        return dtparse.parse(text)
    except (ValueError, OverflowError) as e:
        logger.debug("Unparseable date %r: %s", value, e)
        return None


def parse_date(value: Any) -> Optional[date]:
    """
    Calendar date of a value.

    ISO strings keep the date as written, whatever the offset; other
    timezone-aware values are converted to local time first.
    """
    parsed = parse_datetime(value)
    if parsed is None:
        return None
    if isinstance(value, str) and _ISO_DATE.match(value.strip()):
        return parsed.date()
    if parsed.tzinfo is not None:
        return parsed.astimezone().date()
    return parsed.date()


def is_today(value: Any, today: Optional[date] = None) -> bool:
    """True if ``value`` falls on today's local calendar date."""
    parsed = parse_date(value)
    if parsed is None:
        return False
    return parsed == (today or date.today())


def sort_timestamp(value: Any) -> Optional[float]:
    """POSIX timestamp for ordering; naive values are taken as local time."""
    parsed = parse_datetime(value)
    if parsed is None:
        return None
    try:
        return parsed.timestamp()
    except (OverflowError, OSError, ValueError):
        return None
