"""Date handling for the date and relative date operators."""

import re
from datetime import date, datetime, time, timezone
from typing import Any, Optional, Union

from dateutil import parser
from dateutil.relativedelta import relativedelta

from flagcore.models import Inconclusive

RELATIVE_DATE_PATTERN = re.compile(r"^(?P<number>[0-9]+)(?P<interval>[a-z])$")

# Larger amounts overflow datetime arithmetic.
MAX_RELATIVE_AMOUNT = 10_000

_INTERVALS = {
    "h": lambda n: relativedelta(hours=n),
    "d": lambda n: relativedelta(days=n),
    "w": lambda n: relativedelta(weeks=n),
    "m": lambda n: relativedelta(months=n),
    "y": lambda n: relativedelta(years=n),
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def relative_date_parse(value: Any, now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Resolve a relative date token such as ``"3d"`` or ``"2m"`` to an instant.

    The result is ``now`` minus the given amount, with months and years
    following the calendar. Returns None when the token doesn't parse.

    Args:
        value: Token of the form ``<digits><h|d|w|m|y>``
        now: Reference instant (default: current UTC time)

    Returns:
        The cutoff instant, or None
    """
    if not isinstance(value, str):
        return None
    match = RELATIVE_DATE_PATTERN.match(value)
    if not match:
        return None

    number = int(match.group("number"))
    if number >= MAX_RELATIVE_AMOUNT:
        return None

    interval = _INTERVALS.get(match.group("interval"))
    if interval is None:
        return None

    reference = _ensure_aware(now) if now is not None else utc_now()
    return reference - interval(number)


def to_datetime(value: Any) -> Union[datetime, Inconclusive]:
    """
    Coerce a supplied property value to an aware datetime.

    Naive values are taken to be UTC. Anything that isn't a date, a datetime
    or a parseable string is inconclusive.
    """
    if isinstance(value, datetime):
        return _ensure_aware(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if isinstance(value, str):
        try:
            return _ensure_aware(parser.parse(value))
        except (ValueError, OverflowError):
            return Inconclusive(f"{value} is in an invalid date format")
    return Inconclusive(f"The date provided {value!r} must be a string or date object")


def _ensure_aware(value: datetime) -> datetime:
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        return value.replace(tzinfo=timezone.utc)
    return value
