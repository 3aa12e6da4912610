"""Field generators.

A field generator writes the next legal value of one field (year, month,
day, hour, minute or second) into a :class:`DateBuilder`, reading only the
larger fields, and reports the outcome as a :class:`Step`.

Two families exist. Serial generators step by a fixed interval from the
start value and carry that interval across month and year boundaries.
Enumerated ("by") generators walk a sorted set of values that is rebuilt
whenever a larger field changes.
"""

import logging
from abc import ABC, abstractmethod
from bisect import bisect_left
from collections.abc import Iterable, Sequence
from datetime import MAXYEAR, MINYEAR, date, timedelta
from enum import Enum, auto
from operator import attrgetter

from typing_extensions import override

from calrecur.builder import DateBuilder
from calrecur.intset import IntSet, uniquify
from calrecur.timeutil import (
    day_of_year,
    days_between_fields,
    month_length,
    trunc_div,
    year_length,
)
from calrecur.values import Weekday, WeekdayNum

logger = logging.getLogger(__name__)


class Step(Enum):
    """Outcome of a single generator step."""

    PRODUCED = auto()
    EXHAUSTED = auto()
    # an artificial ceiling was hit; iteration must stop entirely
    SHORT_CIRCUIT = auto()


class FieldGenerator(ABC):
    """Base class for all field generators.

    ``single_value`` is set by generators that emit exactly one value each
    time the larger fields change; the instance generator uses it to skip
    the sub-day loops. A generator may also carry a throttle: after
    ``throttle_limit`` consecutive steps without :meth:`work_done` being
    called, :meth:`generate` short-circuits.
    """

    single_value: int | None = None
    throttle_limit: int | None = None
    _remaining: int = 0

    @property
    def emits_at_most_one_per_cycle(self) -> bool:
        return self.single_value is not None

    def throttled(self, limit: int) -> "FieldGenerator":
        self.throttle_limit = limit
        self._remaining = limit
        return self

    def work_done(self) -> None:
        """Reset the throttle after an instance has been accepted."""
        if self.throttle_limit is not None:
            self._remaining = self.throttle_limit

    def generate(self, builder: DateBuilder) -> Step:
        if self.throttle_limit is not None:
            self._remaining -= 1
            if self._remaining < 0:
                logger.debug(
                    "%s produced %d candidates without an instance; giving up",
                    self, self.throttle_limit,
                )
                return Step.SHORT_CIRCUIT
        return Step.PRODUCED if self._fill(builder) else Step.EXHAUSTED

    @abstractmethod
    def _fill(self, builder: DateBuilder) -> bool:
        """Write the next value into ``builder``; False when exhausted."""
        pass

    def __repr__(self) -> str:
        return type(self).__name__


def advance(generators: Sequence[FieldGenerator], builder: DateBuilder) -> Step:
    """Step the last generator, rolling the larger ones over as they run out.

    ``generators`` is ordered from the largest field to the smallest. When
    a generator is exhausted the next larger one is stepped and the smaller
    ones are retried from scratch; exhaustion of the first one exhausts the
    whole cascade.
    """
    last = len(generators) - 1
    i = last
    while True:
        step = generators[i].generate(builder)
        if step is Step.PRODUCED:
            if i == last:
                return step
            i += 1
        elif step is Step.SHORT_CIRCUIT:
            return step
        elif i == 0:
            return Step.EXHAUSTED
        else:
            i -= 1


def descend(generators: Sequence[FieldGenerator], builder: DateBuilder, i: int) -> Step:
    """Generate ``generators[i:]`` in order, backing up when one runs out.

    Used after the larger fields jumped ahead, so that the smaller ones
    describe the new position instead of the old one.
    """
    while i < len(generators):
        step = generators[i].generate(builder)
        if step is Step.PRODUCED:
            i += 1
        elif step is Step.SHORT_CIRCUIT:
            return step
        elif i == 0:
            return Step.EXHAUSTED
        else:
            i -= 1
    return Step.PRODUCED


# Years


class SerialYear(FieldGenerator):
    def __init__(self, interval: int, dtstart: date):
        self.interval = interval
        self._year = dtstart.year - interval

    @override
    def _fill(self, builder: DateBuilder) -> bool:
        year = self._year + self.interval
        if year > MAXYEAR:
            return False
        self._year = builder.year = year
        return True

    def __repr__(self) -> str:
        return f"SerialYear(interval={self.interval})"


class ByYear(FieldGenerator):
    def __init__(self, years: Iterable[int], dtstart: date):
        self.years = tuple(y for y in uniquify(years) if MINYEAR <= y <= MAXYEAR)
        self._i = bisect_left(self.years, dtstart.year)

    @override
    def _fill(self, builder: DateBuilder) -> bool:
        if self._i >= len(self.years):
            return False
        builder.year = self.years[self._i]
        self._i += 1
        return True


# Months


class SerialMonth(FieldGenerator):
    def __init__(self, interval: int, dtstart: date):
        self.interval = interval
        years, month0 = divmod(dtstart.month - 1 - interval, 12)
        self._year = dtstart.year + years
        self._month = month0 + 1

    @override
    def _fill(self, builder: DateBuilder) -> bool:
        if self._year != builder.year:
            months_between = (builder.year - self._year) * 12 - (self._month - 1)
            month = (self.interval - months_between % self.interval) % self.interval + 1
            if month > 12:
                return False
            self._year = builder.year
        else:
            month = self._month + self.interval
            if month > 12:
                return False
        self._month = builder.month = month
        return True

    def __repr__(self) -> str:
        return f"SerialMonth(interval={self.interval})"


class ByMonth(FieldGenerator):
    def __init__(self, months: Iterable[int], dtstart: date):
        self.months = uniquify(months)
        self._year = dtstart.year
        self._i = 0

    @override
    def _fill(self, builder: DateBuilder) -> bool:
        if self._year != builder.year:
            self._i = 0
            self._year = builder.year
        if self._i >= len(self.months):
            return False
        builder.month = self.months[self._i]
        self._i += 1
        return True


# Days


class SerialDay(FieldGenerator):
    def __init__(self, interval: int, dtstart: date):
        self.interval = interval
        before = DateBuilder(dtstart.year, dtstart.month, dtstart.day - interval)
        before.normalize()
        self._year, self._month, self._day = before.year, before.month, before.day
        self._days_in_month = month_length(self._year, self._month)

    @override
    def _fill(self, builder: DateBuilder) -> bool:
        if self._year == builder.year and self._month == builder.month:
            day = self._day + self.interval
            if day > self._days_in_month:
                return False
        else:
            self._days_in_month = month_length(builder.year, builder.month)
            if self.interval != 1:
                elapsed = days_between_fields(
                    builder.year, builder.month, 1, self._year, self._month, self._day
                )
                day = (self.interval - elapsed % self.interval) % self.interval + 1
                if day > self._days_in_month:
                    return False
            else:
                day = 1
            self._year, self._month = builder.year, builder.month
        self._day = builder.day = day
        return True

    def __repr__(self) -> str:
        return f"SerialDay(interval={self.interval})"


class _DaysOfMonth(FieldGenerator):
    """Enumerated day generator whose day set is rebuilt every month."""

    def __init__(self, dtstart: date):
        self._year, self._month = dtstart.year, dtstart.month
        self._days: tuple[int, ...] = self._days_in(self._year, self._month)
        self._i = 0

    @abstractmethod
    def _days_in(self, year: int, month: int) -> tuple[int, ...]:
        pass

    def _enter(self, year: int, month: int) -> None:
        self._year, self._month = year, month
        self._days = self._days_in(year, month)
        self._i = 0

    @override
    def _fill(self, builder: DateBuilder) -> bool:
        if self._year != builder.year or self._month != builder.month:
            self._enter(builder.year, builder.month)
        if self._i >= len(self._days):
            return False
        builder.day = self._days[self._i]
        self._i += 1
        return True


class ByMonthDay(_DaysOfMonth):
    def __init__(self, month_days: Iterable[int], dtstart: date):
        self.month_days = uniquify(month_days)
        super().__init__(dtstart)

    @override
    def _days_in(self, year: int, month: int) -> tuple[int, ...]:
        n_days = month_length(year, month)
        days = IntSet()
        for day in self.month_days:
            if day < 0:
                day += n_days + 1
            if 1 <= day <= n_days:
                days.add(day)
        return days.to_tuple()


class ByDay(_DaysOfMonth):
    """Days matching a list of weekday ordinals.

    Ordinals count within the month, or within the year when
    ``weeks_in_year`` is set (YEARLY rules without BYMONTH).
    """

    def __init__(self, days: Iterable[WeekdayNum], weeks_in_year: bool, dtstart: date):
        self.days = tuple(days)
        self.weeks_in_year = weeks_in_year
        super().__init__(dtstart)
        self._i = bisect_left(self._days, dtstart.day)

    @override
    def _days_in(self, year: int, month: int) -> tuple[int, ...]:
        days_in_month = month_length(year, month)
        if self.weeks_in_year:
            n_days = year_length(year)
            dow0 = Weekday.first_in_month(year, 1)
            d0 = day_of_year(year, month, 1)
        else:
            n_days = days_in_month
            dow0 = Weekday.first_in_month(year, month)
            d0 = 0
        w0 = d0 // 7

        dates = IntSet()
        for day in self.days:
            weeks = [day.num] if day.num else range(w0, w0 + 7)
            for week in weeks:
                dom = day_num_to_date(dow0, n_days, week, day.wday, d0, days_in_month)
                if dom:
                    dates.add(dom)
        return dates.to_tuple()

    def __repr__(self) -> str:
        period = "year" if self.weeks_in_year else "month"
        return f"ByDay({','.join(map(str, self.days))} by {period})"


class ByWeekNo(_DaysOfMonth):
    """Days in the listed ISO-style week numbers (weeks start on ``wkst``)."""

    def __init__(self, week_nos: Iterable[int], wkst: Weekday, dtstart: date):
        self.week_nos = uniquify(week_nos)
        self.wkst = wkst
        self._check_year(dtstart.year)
        super().__init__(dtstart)

    def _check_year(self, year: int) -> None:
        dow_jan1 = Weekday.first_in_month(year, 1)
        days_in_first_week = 7 - (7 + dow_jan1.value - self.wkst.value) % 7
        orphaned = 0
        # week 1 must have at least 4 days; otherwise those days belong to
        # the last week of the previous year
        if days_in_first_week < 4:
            orphaned = days_in_first_week
            days_in_first_week = 7
        self._week1_start = days_in_first_week - 7 + orphaned
        self._weeks_in_year = (year_length(year) - orphaned + 6) // 7

    @override
    def _enter(self, year: int, month: int) -> None:
        if year != self._year:
            self._check_year(year)
        super()._enter(year, month)

    @override
    def _days_in(self, year: int, month: int) -> tuple[int, ...]:
        doy_month1 = day_of_year(year, month, 1)
        week_of_month = trunc_div(doy_month1 - self._week1_start, 7) + 1
        n_days = month_length(year, month)
        dates = IntSet()
        for week_no in self.week_nos:
            if week_no < 0:
                week_no += self._weeks_in_year + 1
            if week_of_month - 1 <= week_no <= week_of_month + 6:
                for d in range(7):
                    day = (week_no - 1) * 7 + d + self._week1_start - doy_month1 + 1
                    if 1 <= day <= n_days:
                        dates.add(day)
        return dates.to_tuple()


class ByYearDay(_DaysOfMonth):
    def __init__(self, year_days: Iterable[int], dtstart: date):
        self.year_days = uniquify(year_days)
        super().__init__(dtstart)

    @override
    def _days_in(self, year: int, month: int) -> tuple[int, ...]:
        doy_month1 = day_of_year(year, month, 1)
        n_days = month_length(year, month)
        n_year_days = year_length(year)
        dates = IntSet()
        for year_day in self.year_days:
            if year_day < 0:
                year_day += n_year_days + 1
            day = year_day - doy_month1
            if 1 <= day <= n_days:
                dates.add(day)
        return dates.to_tuple()


# Hours, minutes and seconds

_TIME_FIELDS = ("hour", "minute", "second")
_TIME_RADIX = {"hour": 24, "minute": 60, "second": 60}

# Larger fields whose change restarts a time field
_CONTEXT = {
    "hour": ("year", "month", "day"),
    "minute": ("year", "month", "day", "hour"),
    "second": ("year", "month", "day", "hour", "minute"),
}


def _days_between(builder: DateBuilder, year: int, month: int, day: int) -> int:
    if year == builder.year and month == builder.month:
        return builder.day - day
    return days_between_fields(builder.year, builder.month, builder.day, year, month, day)


class SerialTime(FieldGenerator):
    """Every ``interval`` hours, minutes or seconds from the start value."""

    def __init__(self, field: str, interval: int, dtstart: date):
        self.field = field
        self.interval = interval
        self._limit = _TIME_RADIX[field] - 1
        self._context_of = attrgetter(*_CONTEXT[field])
        start = DateBuilder.from_value(dtstart)
        self._context: tuple[int, ...] = self._context_of(start)
        self._value = getattr(start, field) - interval

    def _elapsed(self, builder: DateBuilder) -> int:
        """Units of this field from the last emitted value to ``builder``."""
        year, month, day, *times = self._context
        total = _days_between(builder, year, month, day)
        for name, stored in zip(_TIME_FIELDS, (*times, self._value)):
            if name == self.field:
                return total * _TIME_RADIX[name] - stored
            total = total * _TIME_RADIX[name] + getattr(builder, name) - stored
        raise AssertionError(self.field)

    @override
    def _fill(self, builder: DateBuilder) -> bool:
        context = self._context_of(builder)
        if context != self._context:
            elapsed = self._elapsed(builder)
            value = (self.interval - elapsed % self.interval) % self.interval
            if value > self._limit:
                return False
            self._context = context
        else:
            value = self._value + self.interval
            if value > self._limit:
                return False
        self._value = value
        setattr(builder, self.field, value)
        return True

    def __repr__(self) -> str:
        return f"SerialTime({self.field}, interval={self.interval})"


class SingleTime(FieldGenerator):
    """Emits one fixed value each time the larger fields change."""

    def __init__(self, field: str, value: int):
        self.field = field
        self.single_value = value
        self._context_of = attrgetter(*_CONTEXT[field])
        # an impossible context so the first call always emits
        self._context: tuple[int, ...] = (0,) * len(_CONTEXT[field])

    @override
    def _fill(self, builder: DateBuilder) -> bool:
        context = self._context_of(builder)
        if context == self._context:
            return False
        self._context = context
        setattr(builder, self.field, self.single_value)
        return True

    def __repr__(self) -> str:
        return f"SingleTime({self.field}={self.single_value})"


class ByTime(FieldGenerator):
    """Walks a sorted set of hours, minutes or seconds."""

    def __init__(self, field: str, values: tuple[int, ...], dtstart: date):
        self.field = field
        self.values = values
        self._context_of = attrgetter(*_CONTEXT[field])
        start = DateBuilder.from_value(dtstart)
        self._context: tuple[int, ...] = self._context_of(start)
        self._i = bisect_left(values, getattr(start, field))

    @override
    def _fill(self, builder: DateBuilder) -> bool:
        context = self._context_of(builder)
        if context != self._context:
            self._i = 0
            self._context = context
        if self._i >= len(self.values):
            return False
        setattr(builder, self.field, self.values[self._i])
        self._i += 1
        return True

    def __repr__(self) -> str:
        return f"ByTime({self.field}={list(self.values)})"


def by_time(field: str, values: Iterable[int], dtstart: date) -> FieldGenerator:
    """Enumerated generator for a time field.

    An empty list means the start value's field (0 for dates). A single
    value yields a :class:`SingleTime`.
    """
    unique = uniquify(values)
    if not unique:
        unique = (getattr(DateBuilder.from_value(dtstart), field),)
    if len(unique) == 1:
        return SingleTime(field, unique[0])
    return ByTime(field, unique, dtstart)


def serial_hour(interval: int, dtstart: date) -> FieldGenerator:
    return SerialTime("hour", interval, dtstart)


def serial_minute(interval: int, dtstart: date) -> FieldGenerator:
    return SerialTime("minute", interval, dtstart)


def serial_second(interval: int, dtstart: date) -> FieldGenerator:
    return SerialTime("second", interval, dtstart)


def by_hour(hours: Iterable[int], dtstart: date) -> FieldGenerator:
    return by_time("hour", hours, dtstart)


def by_minute(minutes: Iterable[int], dtstart: date) -> FieldGenerator:
    return by_time("minute", minutes, dtstart)


def by_second(seconds: Iterable[int], dtstart: date) -> FieldGenerator:
    return by_time("second", seconds, dtstart)


# Weekday arithmetic


def day_num_to_date(
    dow0: Weekday,
    n_days: int,
    week_num: int,
    dow: Weekday,
    d0: int,
    n_days_in_month: int,
) -> int:
    """Day of month of the ``week_num``-th ``dow`` in a period.

    Args:
        dow0: Weekday of the first day of the period
        n_days: Length of the period (month or year)
        week_num: 1-based ordinal, negative to count from the period end
        dow: The weekday wanted
        d0: Day-of-year of the month's first day when the period is a year,
            otherwise 0
        n_days_in_month: Length of the month the result must fall in

    Returns:
        The day of the month, or 0 if it falls outside the month
    """
    first = 1 + (7 + dow.value - dow0.value) % 7
    if week_num > 0:
        day = (week_num - 1) * 7 + first - d0
    else:
        last = first + 7 * 54
        last -= 7 * ((last - n_days + 6) // 7)
        day = last + 7 * (week_num + 1) - d0
    if day <= 0 or day > n_days_in_month:
        return 0
    return day


def count_in_period(dow: Weekday, dow0: Weekday, n_days: int) -> int:
    """Number of ``dow`` days in a period of ``n_days`` starting on ``dow0``."""
    if dow.value >= dow0.value:
        return 1 + (n_days - (dow.value - dow0.value) - 1) // 7
    return 1 + (n_days - (7 - (dow0.value - dow.value)) - 1) // 7


def invert_weekday_num(weekday_num: WeekdayNum, dow0: Weekday, n_days: int) -> int:
    """Turn a negative ordinal into the equivalent positive one."""
    return count_in_period(weekday_num.wday, dow0, n_days) + weekday_num.num + 1


def next_week_start(value: date, wkst: Weekday) -> date:
    """The first day on or after ``value`` that falls on ``wkst``."""
    delta = (7 - (7 + Weekday.of(value).value - wkst.value) % 7) % 7
    return date(value.year, value.month, value.day) + timedelta(days=delta)
