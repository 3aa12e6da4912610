"""Recurrence iterators.

All iterators yield UTC values in strictly increasing order under
:func:`calrecur.values.comparable`: ``date`` for all-day recurrences and
naive ``datetime`` for timed ones.
"""

import logging
from abc import abstractmethod
from collections.abc import Iterable, Iterator
from datetime import date, datetime, tzinfo
from itertools import pairwise

from typing_extensions import override

from calrecur.builder import DateBuilder
from calrecur.conditions import Condition
from calrecur.generators import FieldGenerator, Step, advance, descend
from calrecur.instances import InstanceGenerator, skip_sub_day
from calrecur.timeutil import from_utc, naive_utc, to_utc
from calrecur.util import MAX_PRIMING_STEPS
from calrecur.values import comparable

logger = logging.getLogger(__name__)


class RecurrenceIterator(Iterator[date]):
    """Forward-only pull iterator over recurrence instances."""

    @abstractmethod
    def has_next(self) -> bool:
        pass

    @abstractmethod
    def next(self) -> date:
        """Return the next instance; raises StopIteration when exhausted."""
        pass

    @abstractmethod
    def advance_to(self, value: date) -> None:
        """Skip every instance strictly before ``value`` (UTC).

        Aware datetimes are converted to UTC first.
        """
        pass

    def remove(self) -> None:
        raise NotImplementedError("Recurrence iterators are read-only")

    def __iter__(self) -> "RecurrenceIterator":
        return self

    def __next__(self) -> date:
        return self.next()


class RRuleIterator(RecurrenceIterator):
    """Expands one recurrence rule.

    Fields are composed in local time and converted to UTC with ``zone``.
    Instances before ``dtstart`` are generated but dropped, so COUNT only
    counts instances on or after it.
    """

    def __init__(
        self,
        dtstart: date,
        zone: tzinfo,
        condition: Condition,
        instances: InstanceGenerator,
        year: FieldGenerator,
        month: FieldGenerator,
        day: FieldGenerator,
        hour: FieldGenerator,
        minute: FieldGenerator,
        second: FieldGenerator,
        can_shortcut: bool,
        max_priming_steps: int = MAX_PRIMING_STEPS,
    ):
        self.dtstart = dtstart
        self.zone = zone
        self.condition = condition
        self._instances = instances
        self._year = year
        self._month = month
        self._fields = (year, month, day, hour, minute)
        self._full_cascade = not skip_sub_day(hour, minute, second)
        self._can_shortcut = can_shortcut
        self._timed = isinstance(dtstart, datetime)
        self._builder = DateBuilder.from_value(dtstart)

        self._pending: date | None = None
        self._done = False
        # key of the last value handed out by _generate_instance
        self._last_key: int | None = None

        self._prime(day, hour, minute, second, max_priming_steps)

    def _prime(
        self,
        day: FieldGenerator,
        hour: FieldGenerator,
        minute: FieldGenerator,
        second: FieldGenerator,
        budget: int,
    ) -> None:
        if skip_sub_day(hour, minute, second):
            to_init: tuple[FieldGenerator, ...] = (self._year, self._month)
            self._builder.hour = hour.single_value or 0
            self._builder.minute = minute.single_value or 0
            self._builder.second = second.single_value or 0
        else:
            to_init = (self._year, self._month, day, hour, minute)

        i = 0
        while i < len(to_init):
            step = to_init[i].generate(self._builder)
            if step is Step.PRODUCED:
                i += 1
            elif step is Step.SHORT_CIRCUIT:
                self._finish("short-circuited while priming")
                return
            else:
                i -= 1
                if i < 0:
                    self._finish("no candidates")
                    return
            budget -= 1
            if budget == 0:
                self._finish("priming step limit reached")
                return

        start_key = comparable(to_utc(self.dtstart, self.zone))
        while True:
            value = self._generate_instance()
            if value is None:
                self._done = True
                return
            if comparable(value) >= start_key:
                if self.condition.apply(value):
                    self._pending = value
                    self._year.work_done()
                else:
                    self._done = True
                return
            budget -= 1
            if budget == 0:
                self._finish("priming step limit reached")
                return

    def _finish(self, reason: str) -> None:
        logger.debug("%s from %s exhausted: %s", self, self.dtstart, reason)
        self._done = True

    def _generate_instance(self) -> date | None:
        """Next UTC value past the last one returned, or None when done."""
        while True:
            step = self._instances.generate(self._builder)
            if step is not Step.PRODUCED:
                if step is Step.SHORT_CIRCUIT:
                    self._finish("too many candidates without an instance")
                return None
            if self._timed:
                value = to_utc(self._builder.to_datetime(), self.zone)
            else:
                value = self._builder.to_date()
            key = comparable(value)
            # DST transitions can move a later local time before an earlier one
            if self._last_key is None or key > self._last_key:
                self._last_key = key
                return value

    def _fetch_next(self) -> None:
        if self._done or self._pending is not None:
            return
        value = self._generate_instance()
        if value is not None and self.condition.apply(value):
            self._pending = value
            self._year.work_done()
        else:
            self._done = True

    @override
    def has_next(self) -> bool:
        self._fetch_next()
        return self._pending is not None

    @override
    def next(self) -> date:
        if not self.has_next():
            raise StopIteration
        value = self._pending
        self._pending = None
        assert value is not None
        return value

    @override
    def advance_to(self, value: date) -> None:
        value = naive_utc(value)
        target = comparable(value)
        if self._pending is not None and target <= comparable(self._pending):
            return
        if self._done:
            return

        local = from_utc(value, self.zone)
        if comparable(local) <= comparable(self._builder.to_date()):
            return
        self._pending = None

        if self._can_shortcut and self._skip_to(local) is not Step.PRODUCED:
            self._finish("ran out of candidates while skipping ahead")
            return

        while True:
            candidate = self._generate_instance()
            if candidate is None or not self.condition.apply(candidate):
                self._done = True
                return
            if comparable(candidate) >= target:
                self._pending = candidate
                return

    def _skip_to(self, local: date) -> Step:
        """Jump the year and month generators to the target's month."""
        builder = self._builder
        step = Step.PRODUCED
        moved = False
        if builder.year < local.year:
            while builder.year < local.year:
                step = self._year.generate(builder)
                if step is not Step.PRODUCED:
                    return step
            step = advance((self._year, self._month), builder)
            moved = True
        while step is Step.PRODUCED and builder.year == local.year and builder.month < local.month:
            step = advance((self._year, self._month), builder)
            moved = True
        if moved and step is Step.PRODUCED and self._full_cascade:
            # day, hour and minute still describe the old month
            step = descend(self._fields, builder, 2)
        return step

    def __repr__(self) -> str:
        return f"RRuleIterator(dtstart={self.dtstart.isoformat()})"


class RDateIterator(RecurrenceIterator):
    """Iterates over a strictly increasing list of literal UTC values."""

    def __init__(self, dates: Iterable[date]):
        if dates is None:
            raise TypeError("RDateIterator needs a sequence of dates, got None")
        values = [naive_utc(d) for d in dates]
        for d in values:
            if not isinstance(d, date):
                raise TypeError(
                    f"RDATE values must be date or datetime, got {type(d).__name__}"
                )
        for prev, cur in pairwise(values):
            if comparable(cur) <= comparable(prev):
                raise ValueError(
                    f"RDATE values must be strictly increasing.\n"
                    f"Got: {prev.isoformat()} followed by {cur.isoformat()}\n"
                    f"Hint: Use create_rdate_iterator() to sort and de-duplicate."
                )
        self._dates: list[date] = values
        self._i = 0

    @override
    def has_next(self) -> bool:
        return self._i < len(self._dates)

    @override
    def next(self) -> date:
        if self._i >= len(self._dates):
            raise StopIteration
        value = self._dates[self._i]
        self._i += 1
        return value

    @override
    def advance_to(self, value: date) -> None:
        target = comparable(naive_utc(value))
        while self._i < len(self._dates) and comparable(self._dates[self._i]) < target:
            self._i += 1
