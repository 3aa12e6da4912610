"""High-level recurrence sets.

This module wraps the iterator engine in a small Python API: a
:class:`Recurrence` is iterable, sliceable by time, and yields aware
datetimes in its own timezone (or plain dates for all-day recurrences).
"""

from collections.abc import Iterable, Iterator
from datetime import date, datetime, time, timezone, tzinfo
from typing import Literal

from calrecur.compound import CompoundIterator
from calrecur.factory import create_recurrence_iterator
from calrecur.rule import RecurrenceRule
from calrecur.timeutil import as_date, day_start, naive_local, resolve_zone, to_utc
from calrecur.util import DAY, HOUR, MINUTE
from calrecur.values import Day, Frequency, Weekday, WeekdayNum, comparable


def _rules(value: RecurrenceRule | Iterable[RecurrenceRule]) -> tuple[RecurrenceRule, ...]:
    if isinstance(value, RecurrenceRule):
        return (value,)
    return tuple(value)


class Recurrence:
    """A start instant plus rules and literal dates.

    ``dtstart`` is always the first instance. Naive datetimes are local to
    ``tz``; a ``date`` makes the whole recurrence all-day.
    """

    def __init__(
        self,
        dtstart: date,
        *,
        rrules: RecurrenceRule | Iterable[RecurrenceRule] = (),
        rdates: Iterable[date] = (),
        exrules: RecurrenceRule | Iterable[RecurrenceRule] = (),
        exdates: Iterable[date] = (),
        tz: str | tzinfo = "UTC",
    ):
        if not isinstance(dtstart, date):
            raise TypeError(
                f"dtstart must be a date or datetime, got {type(dtstart).__name__}.\n"
                f"Example: Recurrence(date(2025, 1, 6), rrules=rule)"
            )
        self.zone: tzinfo = resolve_zone(tz)
        self.dtstart: date = naive_local(dtstart, self.zone)
        self.rrules = _rules(rrules)
        self.rdates: tuple[date, ...] = tuple(rdates)
        self.exrules = _rules(exrules)
        self.exdates: tuple[date, ...] = tuple(exdates)

    @property
    def all_day(self) -> bool:
        return not isinstance(self.dtstart, datetime)

    def iterator(self) -> CompoundIterator:
        """A fresh engine iterator yielding UTC values."""
        return create_recurrence_iterator(
            self.dtstart,
            self.zone,
            rrules=self.rrules,
            rdates=self.rdates,
            exrules=self.exrules,
            exdates=self.exdates,
        )

    def __iter__(self) -> Iterator[date]:
        return (self._localize(v) for v in self.iterator())

    def __getitem__(self, item: slice) -> Iterator[date]:
        if not isinstance(item, slice) or item.step is not None:
            raise TypeError(
                "Recurrence only supports slicing by time: recurrence[start:end]\n"
                "Example: list(mondays[date(2025, 1, 1):date(2025, 2, 1)])"
            )
        return self.between(item.start, item.stop)

    def between(self, start: date | None, end: date | None) -> Iterator[date]:
        """Instances in ``[start, end)``; either bound may be None."""
        start_utc = None if start is None else self._to_utc(start)
        end_utc = None if end is None else self._to_utc(end)
        if start_utc is not None and end_utc is not None:
            if comparable(end_utc) < comparable(start_utc):
                raise ValueError(
                    f"end must not be before start.\n"
                    f"Got: start={start!r}, end={end!r}"
                )
        it = self.iterator()
        if start_utc is not None:
            it.advance_to(start_utc)
        return self._until(it, None if end_utc is None else comparable(end_utc))

    def _until(self, it: CompoundIterator, end_key: int | None) -> Iterator[date]:
        for value in it:
            if end_key is not None and comparable(value) >= end_key:
                return
            yield self._localize(value)

    def _to_utc(self, value: date) -> date:
        """Express a query bound in the engine's UTC terms."""
        if self.all_day:
            if isinstance(value, datetime):
                return as_date(naive_local(value, self.zone))
            return value
        if not isinstance(value, datetime):
            value = day_start(value)
        return to_utc(naive_local(value, self.zone), self.zone)

    def _localize(self, value: date) -> date:
        if isinstance(value, datetime):
            return value.replace(tzinfo=timezone.utc).astimezone(self.zone)
        return value


def recurring(
    freq: Literal["secondly", "minutely", "hourly", "daily", "weekly", "monthly", "yearly"],
    *,
    start: date,
    interval: int = 1,
    day: Day | list[Day] | None = None,
    week: int | None = None,
    day_of_month: int | list[int] | None = None,
    month: int | list[int] | None = None,
    at: int | None = None,
    count: int | None = None,
    until: date | None = None,
    tz: str = "UTC",
) -> Recurrence:
    """
    Build a recurrence from calendar-style arguments.

    Args:
        freq: Frequency - "daily", "weekly", "monthly", "yearly", ...
        start: First occurrence (a date, or a datetime local to ``tz``)
        interval: Repeat every N units (default 1)
        day: Day(s) of week ("monday" or ["monday", "wednesday"])
        week: Which week of the month or year for ``day``
            (1=first, -1=last, 2=second, etc.)
        day_of_month: Day(s) of month (1-31, or -1 for last day)
        month: Month(s) (1-12)
        at: Time of day in seconds from midnight; makes a date ``start``
            timed (e.g. ``9*HOUR + 30*MINUTE``)
        count: Stop after this many rule instances
        until: Last allowed instant (inclusive, UTC)
        tz: IANA timezone name

    Returns:
        A Recurrence yielding the occurrences

    Example:
        >>> from datetime import date
        >>> from calrecur import recurring, HOUR
        >>>
        >>> # Every other Monday at 9am Pacific
        >>> standup = recurring(
        ...     freq="weekly", interval=2, day="monday",
        ...     start=date(2025, 1, 6), at=9*HOUR, tz="US/Pacific"
        ... )
        >>>
        >>> # Last Friday of every month
        >>> last_friday = recurring(
        ...     freq="monthly", day="friday", week=-1, start=date(2025, 1, 1)
        ... )
    """
    frequency = Frequency.coerce(freq)

    if at is not None:
        if not (0 <= at < DAY):
            raise ValueError(
                f"at must be in range [0, {DAY}), got {at}.\n"
                f"Use 0 for midnight, 12*HOUR for noon, 23*HOUR for 11pm.\n"
                f"Example: at=9*HOUR + 30*MINUTE for 9:30am"
            )
        clock = time(at // HOUR, at % HOUR // MINUTE, at % MINUTE)
        start = datetime.combine(as_date(start), clock)

    by_day: list[WeekdayNum] = []
    if day is not None:
        days = [day] if isinstance(day, str) else day
        for d in days:
            by_day.append(WeekdayNum(week or 0, Weekday.coerce(d)))
    elif week is not None:
        raise ValueError(
            f"week={week} needs a day to count.\n"
            f"Example: recurring(freq='monthly', day='friday', week=-1, ...)"
        )

    rule = RecurrenceRule(
        freq=frequency,
        interval=interval,
        count=count,
        until=until,
        by_day=tuple(by_day),
        by_month_day=[] if day_of_month is None else day_of_month,
        by_month=[] if month is None else month,
    )
    return Recurrence(start, rrules=rule, tz=tz)
