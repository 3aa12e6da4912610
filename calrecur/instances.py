"""Instance generators: compose field generators into whole instants."""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime, timedelta

from typing_extensions import override

from calrecur.builder import DateBuilder
from calrecur.filters import Filter
from calrecur.generators import FieldGenerator, Step, advance, descend, next_week_start
from calrecur.intset import IntSet, uniquify
from calrecur.timeutil import as_date, days_between
from calrecur.values import Frequency, Weekday


class InstanceGenerator(ABC):

    @abstractmethod
    def generate(self, builder: DateBuilder) -> Step:
        """Fill every field of ``builder`` with the next candidate instant."""
        pass


def skip_sub_day(
    hour: FieldGenerator, minute: FieldGenerator, second: FieldGenerator
) -> bool:
    """True when no time field can take more than one value per day."""
    return (
        hour.emits_at_most_one_per_cycle
        and minute.emits_at_most_one_per_cycle
        and second.emits_at_most_one_per_cycle
    )


class SerialInstances(InstanceGenerator):
    """Steps the field cascade until a candidate passes the filter."""

    def __init__(
        self,
        filter: Filter,
        year: FieldGenerator,
        month: FieldGenerator,
        day: FieldGenerator,
        hour: FieldGenerator,
        minute: FieldGenerator,
        second: FieldGenerator,
    ):
        self.filter = filter
        if skip_sub_day(hour, minute, second):
            # time fields were assigned once when the iterator was primed
            self.cascade: tuple[FieldGenerator, ...] = (year, month, day)
        else:
            self.cascade = (year, month, day, hour, minute, second)

    @override
    def generate(self, builder: DateBuilder) -> Step:
        while True:
            step = advance(self.cascade, builder)
            if step is not Step.PRODUCED:
                return step
            if self.filter.apply(builder.to_datetime()):
                return step


class SetPosInstances(InstanceGenerator):
    """Selects BYSETPOS positions out of each year, month, week or day.

    Candidates for one period are gathered with a serial generator. The
    first candidate found past the end of a period is kept back and seeds
    the next period. When every position has been found before the period
    ends, the rest of it is skipped and the smaller fields are regenerated
    for the new period.
    """

    PERIODS = (Frequency.YEARLY, Frequency.MONTHLY, Frequency.WEEKLY, Frequency.DAILY)

    def __init__(
        self,
        set_pos: Iterable[int],
        freq: Frequency,
        wkst: Weekday,
        filter: Filter,
        year: FieldGenerator,
        month: FieldGenerator,
        day: FieldGenerator,
        hour: FieldGenerator,
        minute: FieldGenerator,
        second: FieldGenerator,
    ):
        if freq not in self.PERIODS:
            raise ValueError(
                f"BYSETPOS cannot be expanded for {freq.name} rules.\n"
                f"Hint: Apply the positions to the BYHOUR/BYMINUTE/BYSECOND list "
                f"with filter_by_set_pos() instead."
            )
        self.set_pos = uniquify(set_pos)
        if not self.set_pos:
            raise ValueError("BYSETPOS needs at least one position")
        self.freq = freq
        self.wkst = wkst
        self._serial = SerialInstances(filter, year, month, day, hour, minute, second)
        self._year, self._month, self._day = year, month, day
        self._fields = (year, month, day, hour, minute)
        self._sub_day = not skip_sub_day(hour, minute, second)

        self._all_positive = self.set_pos[0] > 0
        self._limit = self.set_pos[-1] if self._all_positive else None

        self._pushback: datetime | None = None
        self._first = True
        self._done = False
        self._candidates: list[datetime] = []
        self._i = 0
        # first and last candidates of the period being collected
        self._period: datetime | None = None
        self._last: datetime | None = None

    @override
    def generate(self, builder: DateBuilder) -> Step:
        while self._i >= len(self._candidates):
            if self._done:
                return Step.EXHAUSTED
            step, d0 = self._start_period(builder)
            if step is not Step.PRODUCED:
                return step
            step, dates = self._collect(builder, d0)
            if step is Step.SHORT_CIRCUIT:
                return step
            self._candidates = self._select(dates)
            self._i = 0

        chosen = self._candidates[self._i]
        self._i += 1
        builder.set_value(chosen)
        return Step.PRODUCED

    def _start_period(self, builder: DateBuilder) -> tuple[Step, datetime | None]:
        """Position the builder at the start of the next period."""
        if self._pushback is not None:
            d0, self._pushback = self._pushback, None
            builder.set_value(d0)
            return Step.PRODUCED, d0
        if self._first:
            self._first = False
            return Step.PRODUCED, None

        # every position was found; skip the rest of the period
        assert self._last is not None and self._period is not None
        builder.set_value(self._last)
        step = Step.PRODUCED
        d0 = None
        if self.freq is Frequency.YEARLY:
            step = self._year.generate(builder)
            if step is Step.PRODUCED:
                step = advance((self._year, self._month), builder)
            if step is Step.PRODUCED and self._sub_day:
                step = descend(self._fields, builder, 2)
        elif self.freq is Frequency.MONTHLY:
            step = advance((self._year, self._month), builder)
            if step is Step.PRODUCED and self._sub_day:
                step = descend(self._fields, builder, 2)
        elif self.freq is Frequency.DAILY:
            # with one candidate per day the serial generator moves on by itself
            if self._sub_day:
                step = advance((self._year, self._month, self._day), builder)
                if step is Step.PRODUCED:
                    step = descend(self._fields, builder, 3)
        else:
            next_week = next_week_start(as_date(self._period) + timedelta(days=1), self.wkst)
            while True:
                step = self._serial.generate(builder)
                if step is not Step.PRODUCED or builder.compare_to(next_week) >= 0:
                    break
            d0 = builder.to_datetime()
        return step, d0

    def _collect(
        self, builder: DateBuilder, d0: datetime | None
    ) -> tuple[Step, list[datetime]]:
        dates = [d0] if d0 is not None else []
        self._period = self._last = d0
        while self._limit is None or len(dates) < self._limit:
            step = self._serial.generate(builder)
            if step is Step.SHORT_CIRCUIT:
                return step, dates
            if step is Step.EXHAUSTED:
                self._done = True
                break
            d = builder.to_datetime()
            if d0 is None:
                d0 = self._period = d
            elif not self._contains(d0, d):
                self._pushback = d
                break
            dates.append(d)
            self._last = d
        return Step.PRODUCED, dates

    def _contains(self, d0: datetime, d: datetime) -> bool:
        """Whether ``d`` falls in the same period as ``d0``."""
        if self.freq is Frequency.YEARLY:
            return d.year == d0.year
        if self.freq is Frequency.MONTHLY:
            return (d.year, d.month) == (d0.year, d0.month)
        if self.freq is Frequency.DAILY:
            return d.date() == d0.date()
        offset = (7 + Weekday.of(d).value - self.wkst.value) % 7
        offset0 = (7 + Weekday.of(d0).value - self.wkst.value) % 7
        return days_between(d, d0) < 7 and offset >= offset0

    def _select(self, dates: list[datetime]) -> list[datetime]:
        if self._all_positive:
            positions: Iterable[int] = self.set_pos
        else:
            n = len(dates)
            positions = IntSet(n + p + 1 if p < 0 else p for p in self.set_pos)
        return [dates[p - 1] for p in positions if 1 <= p <= len(dates)]


def filter_by_set_pos(members: Iterable[int], set_pos: Iterable[int]) -> tuple[int, ...]:
    """Apply BYSETPOS positions directly to a sorted by-list."""
    unique = uniquify(members)
    chosen = IntSet()
    for pos in set_pos:
        if pos == 0:
            continue
        index = pos + len(unique) if pos < 0 else pos - 1
        if 0 <= index < len(unique):
            chosen.add(unique[index])
    return chosen.to_tuple()
