"""Structured recurrence rule parameters."""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from typing import Any

from calrecur.timeutil import naive_utc
from calrecur.values import Frequency, Weekday, WeekdayNum


def _ints(value: int | Iterable[int] | None) -> tuple[int, ...]:
    if value is None:
        return ()
    if isinstance(value, int):
        return (value,)
    return tuple(int(v) for v in value)


def _weekday_nums(value: Any) -> tuple[WeekdayNum, ...]:
    if value is None:
        return ()
    if isinstance(value, (str, WeekdayNum, Weekday)) or not isinstance(value, Iterable):
        value = [value]
    return tuple(WeekdayNum.coerce(v) for v in value)


@dataclass(frozen=True, kw_only=True)
class RecurrenceRule:
    """An already-parsed RRULE.

    Values are normalized on construction: ``freq`` accepts a
    :class:`Frequency`, a name like ``"weekly"`` or a dateutil constant;
    ``by_day`` accepts :class:`WeekdayNum`, :class:`Weekday`, dateutil
    weekdays (``MO(-1)``) or day names; by-lists accept a single int.
    ``until`` is in UTC; aware datetimes are converted.

    Example:
        >>> from dateutil.rrule import MO, FR
        >>> RecurrenceRule(freq="monthly", by_day=[MO(1), FR(-1)], count=4)
    """

    freq: Frequency
    interval: int = 1
    wkst: Weekday = Weekday.MO
    count: int | None = None
    until: date | None = None
    by_year: tuple[int, ...] = ()
    by_month: tuple[int, ...] = ()
    by_week_no: tuple[int, ...] = ()
    by_year_day: tuple[int, ...] = ()
    by_month_day: tuple[int, ...] = ()
    by_day: tuple[WeekdayNum, ...] = ()
    by_hour: tuple[int, ...] = ()
    by_minute: tuple[int, ...] = ()
    by_second: tuple[int, ...] = ()
    by_set_pos: tuple[int, ...] = ()

    def __post_init__(self) -> None:
        set_ = object.__setattr__
        set_(self, "freq", Frequency.coerce(self.freq))
        set_(self, "wkst", Weekday.coerce(self.wkst))
        # a non-positive interval means the default
        set_(self, "interval", self.interval if self.interval > 0 else 1)
        if self.until is not None:
            if not isinstance(self.until, date):
                raise TypeError(
                    f"until must be a date or datetime, got {type(self.until).__name__}"
                )
            set_(self, "until", naive_utc(self.until))
        for name in (
            "by_year", "by_month", "by_week_no", "by_year_day", "by_month_day",
            "by_hour", "by_minute", "by_second", "by_set_pos",
        ):
            set_(self, name, _ints(getattr(self, name)))
        set_(self, "by_day", _weekday_nums(self.by_day))

    def __str__(self) -> str:
        parts = [f"FREQ={self.freq.name}"]
        if self.interval != 1:
            parts.append(f"INTERVAL={self.interval}")
        if self.wkst is not Weekday.MO:
            parts.append(f"WKST={self.wkst.name}")
        if self.count is not None:
            parts.append(f"COUNT={self.count}")
        if self.until is not None:
            parts.append(f"UNTIL={self.until.isoformat()}")
        for name in (
            "by_year", "by_month", "by_week_no", "by_year_day", "by_month_day",
            "by_day", "by_hour", "by_minute", "by_second", "by_set_pos",
        ):
            values = getattr(self, name)
            if values:
                key = name.replace("_", "").upper()
                parts.append(f"{key}={','.join(map(str, values))}")
        return ";".join(parts)
