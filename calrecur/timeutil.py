"""Calendar arithmetic shared by the generators, filters and iterators.

Day-of-year values are 0-based. Fixed-day ordinals count days from
0001-01-01 (ordinal 1) and match ``date.toordinal()``, but are computed
from raw fields so they also work for out-of-range builder years.
"""

from datetime import date, datetime, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

_MONTH_LENGTHS = (31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31)

# Days before the first of each month in a common year
_MONTH_START_TO_DOY = (0, 31, 59, 90, 120, 151, 181, 212, 243, 273, 304, 334)


def is_leap_year(year: int) -> bool:
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


def year_length(year: int) -> int:
    return 366 if is_leap_year(year) else 365


def month_length(year: int, month: int) -> int:
    if month == 2 and is_leap_year(year):
        return 29
    return _MONTH_LENGTHS[month - 1]


def day_of_year(year: int, month: int, day: int) -> int:
    """Return the 0-based day of the year for a valid (year, month, day)."""
    leap_day = 1 if month > 2 and is_leap_year(year) else 0
    return _MONTH_START_TO_DOY[month - 1] + leap_day + day - 1


def fixed_from_gregorian(year: int, month: int, day: int) -> int:
    """Fixed-day ordinal of a proleptic Gregorian date."""
    prior = year - 1
    if month <= 2:
        correction = 0
    elif is_leap_year(year):
        correction = -1
    else:
        correction = -2
    return (
        365 * prior
        + prior // 4
        - prior // 100
        + prior // 400
        + (367 * month - 362) // 12
        + correction
        + day
    )


def day_number(year: int, month: int, day: int) -> int:
    """Canonical day-of-week number, Sunday=0 through Saturday=6."""
    return fixed_from_gregorian(year, month, day) % 7


def days_between(a: date, b: date) -> int:
    """Whole days from ``b`` to ``a``; time-of-day is ignored."""
    return fixed_from_gregorian(a.year, a.month, a.day) - fixed_from_gregorian(
        b.year, b.month, b.day
    )


def days_between_fields(
    y1: int, m1: int, d1: int, y2: int, m2: int, d2: int
) -> int:
    return fixed_from_gregorian(y1, m1, d1) - fixed_from_gregorian(y2, m2, d2)


def trunc_div(a: int, b: int) -> int:
    """Integer division rounding toward zero."""
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b >= 0) else -q


def as_date(value: date) -> date:
    """Drop the time-of-day, if any."""
    return date(value.year, value.month, value.day)


def day_start(value: date) -> datetime:
    """Midnight at the start of the value's day."""
    return datetime(value.year, value.month, value.day)


def resolve_zone(tz: str | tzinfo | None) -> tzinfo:
    """Turn an IANA name (or an existing tzinfo) into a tzinfo."""
    if tz is None:
        return timezone.utc
    if isinstance(tz, tzinfo):
        return tz
    if tz.upper() in ("UTC", "Z"):
        return timezone.utc
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(
            f"Unknown timezone: '{tz}'\n"
            f"Hint: Use an IANA timezone name such as 'America/Los_Angeles' or 'UTC'.\n"
            f"      Install the 'tzdata' package if your system has no zone database."
        ) from e


def to_utc(value: date, zone: tzinfo) -> date:
    """Convert a local value to UTC. Dates are returned unchanged."""
    if not isinstance(value, datetime) or zone is timezone.utc:
        return value
    return value.replace(tzinfo=zone).astimezone(timezone.utc).replace(tzinfo=None)


def from_utc(value: date, zone: tzinfo) -> date:
    """Convert a UTC value to local time. Dates are returned unchanged."""
    if not isinstance(value, datetime) or zone is timezone.utc:
        return value
    return value.replace(tzinfo=timezone.utc).astimezone(zone).replace(tzinfo=None)


def naive_utc(value: date) -> date:
    """Strip the zone from an aware datetime after converting it to UTC.

    Naive datetimes and dates pass through untouched.
    """
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def naive_local(value: date, zone: tzinfo) -> date:
    """Express a value as naive local time in ``zone``.

    Aware datetimes are converted; naive values are taken as already local.
    """
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(zone).replace(tzinfo=None)
    return value
