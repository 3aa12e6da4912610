"""Predicates applied to fully assembled candidate instants.

Filters cover the by-parts that a field generator cannot express on its
own, e.g. BYDAY when the days are produced by BYMONTHDAY, or BYHOUR on a
rule whose hours are produced serially.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import date, datetime

from typing_extensions import override

from calrecur.builder import DateBuilder
from calrecur.generators import invert_weekday_num
from calrecur.timeutil import day_of_year, days_between, month_length, year_length
from calrecur.values import Weekday, WeekdayNum


class Filter(ABC):

    @abstractmethod
    def apply(self, value: date) -> bool:
        pass

    def __and__(self, other: "Filter") -> "Filter":
        return And(self, other)


class And(Filter):
    def __init__(self, *filters: Filter):
        super().__init__()
        self.filters: tuple[Filter, ...] = filters

    @override
    def apply(self, value: date) -> bool:
        return all(f.apply(value) for f in self.filters)


class Always(Filter):
    @override
    def apply(self, value: date) -> bool:
        return True

    def __and__(self, other: Filter) -> Filter:
        return other


ALWAYS = Always()


def all_of(filters: Iterable[Filter]) -> Filter:
    """Combine filters, dropping the ones that accept everything."""
    needed = [f for f in filters if f is not ALWAYS]
    if not needed:
        return ALWAYS
    if len(needed) == 1:
        return needed[0]
    return And(*needed)


class ByDayFilter(Filter):
    """Accepts days matching one of the weekday ordinals.

    The week number of a candidate is derived from its day count within the
    month (or the year when ``weeks_in_year`` is set) and the week start,
    without the "first week has at least four days" adjustment that
    BYWEEKNO uses.
    """

    def __init__(self, days: Iterable[WeekdayNum], weeks_in_year: bool, wkst: Weekday):
        self.days = tuple(days)
        self.weeks_in_year = weeks_in_year
        self.wkst = wkst

    @override
    def apply(self, value: date) -> bool:
        dow = Weekday.of(value)
        if self.weeks_in_year:
            n_days = year_length(value.year)
            dow0 = Weekday.first_in_month(value.year, 1)
            instance = day_of_year(value.year, value.month, value.day)
        else:
            n_days = month_length(value.year, value.month)
            dow0 = Weekday.first_in_month(value.year, value.month)
            instance = value.day - 1

        if self.wkst.value <= dow.value:
            week_no = 1 + instance // 7
        else:
            week_no = instance // 7

        for day in self.days:
            if day.wday is not dow:
                continue
            if day.num == 0:
                return True
            wanted = day.num
            if wanted < 0:
                wanted = invert_weekday_num(day, dow0, n_days)
            if wanted == week_no:
                return True
        return False


class ByMonthDayFilter(Filter):
    def __init__(self, month_days: Iterable[int]):
        self.month_days = tuple(month_days)

    @override
    def apply(self, value: date) -> bool:
        n_days = month_length(value.year, value.month)
        for day in self.month_days:
            if day < 0:
                day += n_days + 1
            if day == value.day:
                return True
        return False


class WeekIntervalFilter(Filter):
    """Accepts days in every ``interval``-th week counted from dtStart's week."""

    def __init__(self, interval: int, wkst: Weekday, dtstart: date):
        self.interval = interval
        back = (7 + Weekday.of(dtstart).value - wkst.value) % 7
        start = DateBuilder(dtstart.year, dtstart.month, dtstart.day - back)
        self.week_start = start.to_date()

    @override
    def apply(self, value: date) -> bool:
        weeks = days_between(value, self.week_start) // 7
        return weeks % self.interval == 0


class _BitmaskFilter(Filter):
    """Accepts timed values whose field is in a bitmask of allowed values."""

    def __init__(self, field: str, mask: int):
        self.field = field
        self.mask = mask

    @override
    def apply(self, value: date) -> bool:
        if not isinstance(value, datetime):
            return False
        return bool(self.mask & (1 << getattr(value, self.field)))


def _bitmask_filter(field: str, values: Iterable[int], size: int) -> Filter:
    mask = 0
    for v in values:
        mask |= 1 << v
    full = (1 << size) - 1
    if mask & full == full:
        return ALWAYS
    return _BitmaskFilter(field, mask)


def by_hour_filter(hours: Iterable[int]) -> Filter:
    return _bitmask_filter("hour", hours, 24)


def by_minute_filter(minutes: Iterable[int]) -> Filter:
    return _bitmask_filter("minute", minutes, 60)


def by_second_filter(seconds: Iterable[int]) -> Filter:
    return _bitmask_filter("second", seconds, 60)
