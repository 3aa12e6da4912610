"""Value types used by recurrence rules, and the total order over instants.

Instants are plain ``date`` objects (all-day values) or naive ``datetime``
objects (timed values). Since ``datetime`` subclasses ``date``, the builtin
comparisons between the two kinds are unreliable, so all engine ordering
goes through :func:`comparable`.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum, IntEnum
from typing import Any, Literal, TypeAlias

from dateutil import rrule as du

from calrecur.timeutil import day_number

Day: TypeAlias = Literal[
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"
]


def comparable(value: date) -> int:
    """Return an integer key giving a total order over dates and datetimes.

    A date sorts strictly before midnight of the same day, and never
    compares equal to any datetime.
    """
    key = (((value.year << 4) + value.month) << 5) + value.day
    if isinstance(value, datetime):
        return (((((key << 5) + value.hour) << 6) + value.minute) << 6) + value.second + 1
    return key << 17


def compare(a: date, b: date) -> int:
    ka, kb = comparable(a), comparable(b)
    return (ka > kb) - (ka < kb)


class Weekday(Enum):
    """Day of week; the value is the canonical day-number (Sunday is 0)."""

    SU = 0
    MO = 1
    TU = 2
    WE = 3
    TH = 4
    FR = 5
    SA = 6

    @classmethod
    def of(cls, value: date) -> "Weekday":
        return cls(day_number(value.year, value.month, value.day))

    @classmethod
    def first_in_month(cls, year: int, month: int) -> "Weekday":
        return cls(day_number(year, month, 1))

    @classmethod
    def coerce(cls, value: Any) -> "Weekday":
        """Accept a Weekday, a dateutil weekday, or a day name."""
        if isinstance(value, Weekday):
            return value
        if isinstance(value, du.weekday):
            # dateutil numbers Monday as 0
            return cls((value.weekday + 1) % 7)
        if isinstance(value, str):
            key = value.strip().lower()
            if key in _DAY_NAMES:
                return _DAY_NAMES[key]
            if key.upper() in cls.__members__:
                return cls[key.upper()]
            valid = ", ".join(sorted(_DAY_NAMES))
            raise ValueError(f"Invalid day name: '{value}'\n" f"Valid days: {valid}\n")
        raise TypeError(
            f"Cannot interpret {type(value).__name__} as a weekday.\n"
            f"Hint: Use Weekday.MO, dateutil.rrule.MO, or a name like 'monday'."
        )


_DAY_NAMES: dict[Day, Weekday] = {
    "monday": Weekday.MO,
    "tuesday": Weekday.TU,
    "wednesday": Weekday.WE,
    "thursday": Weekday.TH,
    "friday": Weekday.FR,
    "saturday": Weekday.SA,
    "sunday": Weekday.SU,
}


@dataclass(frozen=True)
class WeekdayNum:
    """A weekday with an ordinal inside the month or year.

    ``num`` is 0 for every occurrence, N for the Nth from the start of the
    period and -N for the Nth from its end.
    """

    num: int
    wday: Weekday

    @classmethod
    def coerce(cls, value: Any) -> "WeekdayNum":
        if isinstance(value, WeekdayNum):
            return value
        if isinstance(value, du.weekday):
            return cls(value.n or 0, Weekday.coerce(value))
        return cls(0, Weekday.coerce(value))

    def __str__(self) -> str:
        return f"{self.num}{self.wday.name}" if self.num else self.wday.name


class Frequency(IntEnum):
    """Recurrence frequency, ordered from most to least frequent."""

    SECONDLY = 0
    MINUTELY = 1
    HOURLY = 2
    DAILY = 3
    WEEKLY = 4
    MONTHLY = 5
    YEARLY = 6

    @classmethod
    def coerce(cls, value: Any) -> "Frequency":
        """Accept a Frequency, a name like "weekly", or a dateutil constant."""
        if isinstance(value, Frequency):
            return value
        if isinstance(value, str):
            key = value.strip().upper()
            if key in cls.__members__:
                return cls[key]
            valid = ", ".join(f.name.lower() for f in reversed(cls))
            raise ValueError(
                f"Invalid frequency: '{value}'\n" f"Valid frequencies: {valid}\n"
            )
        if isinstance(value, int) and value in _DATEUTIL_FREQ:
            return _DATEUTIL_FREQ[value]
        raise TypeError(
            f"Cannot interpret {value!r} as a frequency.\n"
            f"Hint: Use Frequency.WEEKLY, 'weekly', or dateutil.rrule.WEEKLY."
        )


_DATEUTIL_FREQ: dict[int, Frequency] = {
    du.YEARLY: Frequency.YEARLY,
    du.MONTHLY: Frequency.MONTHLY,
    du.WEEKLY: Frequency.WEEKLY,
    du.DAILY: Frequency.DAILY,
    du.HOURLY: Frequency.HOURLY,
    du.MINUTELY: Frequency.MINUTELY,
    du.SECONDLY: Frequency.SECONDLY,
}
