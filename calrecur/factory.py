"""Builds recurrence iterators from rules and literal date lists."""

import logging
from collections.abc import Iterable
from datetime import date, datetime, timedelta, tzinfo

from calrecur.builder import DateBuilder
from calrecur.compound import CompoundIterator
from calrecur.conditions import Condition, CountCondition, Unbounded, UntilCondition
from calrecur.config import EngineSettings, get_settings
from calrecur.filters import (
    ByDayFilter,
    ByMonthDayFilter,
    Filter,
    WeekIntervalFilter,
    all_of,
    by_hour_filter,
    by_minute_filter,
    by_second_filter,
)
from calrecur.generators import (
    ByDay,
    ByMonth,
    ByMonthDay,
    ByWeekNo,
    ByYear,
    ByYearDay,
    FieldGenerator,
    SerialDay,
    SerialMonth,
    SerialYear,
    by_hour,
    by_minute,
    by_second,
    serial_hour,
    serial_minute,
    serial_second,
)
from calrecur.instances import InstanceGenerator, SerialInstances, SetPosInstances, filter_by_set_pos
from calrecur.iterators import RDateIterator, RecurrenceIterator, RRuleIterator
from calrecur.rule import RecurrenceRule
from calrecur.timeutil import as_date, day_start, naive_local, resolve_zone, to_utc
from calrecur.values import Frequency, Weekday, comparable

logger = logging.getLogger(__name__)


def _period_start(dtstart: date, freq: Frequency, wkst: Weekday) -> date:
    """First day of the year, month, week or day containing ``dtstart``.

    Date-only, so enumerated time fields start from their first value.
    """
    day = as_date(dtstart)
    if freq is Frequency.YEARLY:
        return day.replace(month=1, day=1)
    if freq is Frequency.MONTHLY:
        return day.replace(day=1)
    if freq is Frequency.WEEKLY:
        back = (7 + Weekday.of(day).value - wkst.value) % 7
        return day - timedelta(days=back)
    return day


def _condition(rule: RecurrenceRule, dtstart: date) -> Condition:
    if rule.count is not None:
        return CountCondition(rule.count)
    if rule.until is None:
        return Unbounded()
    until = rule.until
    if isinstance(until, datetime) != isinstance(dtstart, datetime):
        logger.warning(
            "UNTIL %s and DTSTART %s differ in kind; comparing as %s",
            until.isoformat(),
            dtstart.isoformat(),
            "date-times" if isinstance(dtstart, datetime) else "dates",
        )
        until = day_start(until) if isinstance(dtstart, datetime) else as_date(until)
    return UntilCondition(until)


def create_rrule_iterator(
    rule: RecurrenceRule,
    dtstart: date,
    tz: str | tzinfo | None = None,
    *,
    settings: EngineSettings | None = None,
) -> RRuleIterator:
    """Build the generator graph for ``rule`` and wrap it in an iterator.

    Args:
        rule: The recurrence rule to expand
        dtstart: First instance; naive values are local to ``tz``, aware
            datetimes are converted to it
        tz: IANA timezone name or tzinfo used to compose local times
            (default UTC)
        settings: Engine limits (default: :func:`get_settings`)

    Returns:
        An iterator over UTC instances on or after ``dtstart``
    """
    if not isinstance(dtstart, date):
        raise TypeError(f"dtstart must be a date or datetime, got {type(dtstart).__name__}")
    settings = settings or get_settings()
    zone = resolve_zone(tz)
    dtstart = naive_local(dtstart, zone)

    freq, interval, wkst = rule.freq, rule.interval, rule.wkst
    by_month = rule.by_month
    by_week_no = rule.by_week_no
    by_year_day = rule.by_year_day
    by_month_day = rule.by_month_day
    by_day = rule.by_day
    hours, minutes, seconds = rule.by_hour, rule.by_minute, rule.by_second
    set_pos = rule.by_set_pos

    # BYSETPOS on sub-daily rules picks directly from the time list
    if set_pos:
        if freq is Frequency.HOURLY:
            if hours and len(minutes) <= 1 and len(seconds) <= 1:
                hours = filter_by_set_pos(hours, set_pos)
            set_pos = ()
        elif freq is Frequency.MINUTELY:
            if minutes and len(hours) <= 1 and len(seconds) <= 1:
                minutes = filter_by_set_pos(minutes, set_pos)
            set_pos = ()
        elif freq is Frequency.SECONDLY:
            if seconds and len(hours) <= 1 and len(minutes) <= 1:
                seconds = filter_by_set_pos(seconds, set_pos)
            set_pos = ()

    # positions are counted from the start of the period containing dtstart
    start = _period_start(dtstart, freq, wkst) if set_pos else dtstart

    year: FieldGenerator
    if rule.by_year:
        year = ByYear(rule.by_year, start)
    else:
        year = SerialYear(interval if freq is Frequency.YEARLY else 1, start)
    year.throttled(settings.max_years_between_instances)

    month: FieldGenerator | None = None
    day: FieldGenerator | None = None
    hour: FieldGenerator | None = None
    minute: FieldGenerator | None = None
    second: FieldGenerator | None = None
    filters: list[Filter] = []

    if freq is Frequency.SECONDLY:
        if not seconds or interval != 1:
            second = serial_second(interval, dtstart)
            if seconds:
                filters.append(by_second_filter(seconds))
    elif freq is Frequency.MINUTELY:
        if not minutes or interval != 1:
            minute = serial_minute(interval, dtstart)
            if minutes:
                filters.append(by_minute_filter(minutes))
    elif freq is Frequency.HOURLY:
        if not hours or interval != 1:
            hour = serial_hour(interval, dtstart)
            if hours:
                filters.append(by_hour_filter(hours))
    elif freq is Frequency.WEEKLY:
        if by_day:
            day = ByDay(by_day, False, start)
            by_day = ()
            if interval > 1:
                filters.append(WeekIntervalFilter(interval, wkst, dtstart))
        else:
            day = SerialDay(interval * 7, dtstart)
    elif freq is Frequency.YEARLY and by_year_day:
        day = ByYearDay(by_year_day, start)
    elif freq in (Frequency.YEARLY, Frequency.MONTHLY):
        if by_month_day:
            day = ByMonthDay(by_month_day, start)
            by_month_day = ()
        elif by_week_no and freq is Frequency.YEARLY:
            day = ByWeekNo(by_week_no, wkst, start)
        elif by_day:
            day = ByDay(by_day, freq is Frequency.YEARLY and not by_month, start)
            by_day = ()
        else:
            if freq is Frequency.YEARLY:
                month = ByMonth([dtstart.month], start)
            day = ByMonthDay([dtstart.day], start)

    # empty time lists repeat dtstart's clock, even when start is date-only
    clock = DateBuilder.from_value(dtstart)
    if second is None:
        second = by_second(seconds or (clock.second,), start)
    if minute is None:
        if not minutes and freq < Frequency.MINUTELY:
            minute = serial_minute(1, dtstart)
        else:
            minute = by_minute(minutes or (clock.minute,), start)
    if hour is None:
        if not hours and freq < Frequency.HOURLY:
            hour = serial_hour(1, dtstart)
        else:
            hour = by_hour(hours or (clock.hour,), start)

    if day is None:
        if by_month_day:
            day = ByMonthDay(by_month_day, start)
            by_month_day = ()
        elif by_day:
            day = ByDay(by_day, freq is Frequency.YEARLY, start)
            by_day = ()
        elif freq <= Frequency.DAILY:
            day = SerialDay(interval if freq is Frequency.DAILY else 1, dtstart)
        else:
            day = ByMonthDay([dtstart.day], start)

    if by_day:
        filters.append(ByDayFilter(by_day, freq is Frequency.YEARLY, wkst))
    if by_month_day:
        filters.append(ByMonthDayFilter(by_month_day))

    if by_month:
        month = ByMonth(by_month, start)
    elif month is None:
        month = SerialMonth(interval if freq is Frequency.MONTHLY else 1, start)

    filter = all_of(filters)
    instances: InstanceGenerator
    if set_pos:
        instances = SetPosInstances(
            set_pos, freq, wkst, filter, year, month, day, hour, minute, second
        )
    else:
        instances = SerialInstances(filter, year, month, day, hour, minute, second)

    return RRuleIterator(
        dtstart,
        zone,
        _condition(rule, dtstart),
        instances,
        year,
        month,
        day,
        hour,
        minute,
        second,
        can_shortcut=rule.count is None and not set_pos,
        max_priming_steps=settings.max_priming_steps,
    )


def create_rdate_iterator(
    dates: Iterable[date], tz: str | tzinfo | None = None
) -> RDateIterator:
    """Iterator over literal instants, in any order and possibly repeated.

    Naive datetimes are local to ``tz``; dates are zone-independent.
    """
    zone = resolve_zone(tz)
    values = sorted((to_utc(naive_local(d, zone), zone) for d in dates), key=comparable)
    unique: list[date] = []
    for value in values:
        if not unique or comparable(unique[-1]) != comparable(value):
            unique.append(value)
    return RDateIterator(unique)


def join(first: RecurrenceIterator, *rest: RecurrenceIterator) -> CompoundIterator:
    """Union of several iterators, with duplicates collapsed."""
    return CompoundIterator([first, *rest], [])


def exclude(included: RecurrenceIterator, excluded: RecurrenceIterator) -> CompoundIterator:
    """Instances of ``included`` that ``excluded`` does not produce."""
    return CompoundIterator([included], [excluded])


def create_recurrence_iterator(
    dtstart: date,
    tz: str | tzinfo | None = None,
    *,
    rrules: Iterable[RecurrenceRule] = (),
    rdates: Iterable[date] = (),
    exrules: Iterable[RecurrenceRule] = (),
    exdates: Iterable[date] = (),
    settings: EngineSettings | None = None,
) -> CompoundIterator:
    """Iterator over a whole recurrence set.

    ``dtstart`` is always an instance. RRULE and RDATE instances are added
    to it, then EXRULE and EXDATE instances are removed.
    """
    zone = resolve_zone(tz)
    inclusions: list[RecurrenceIterator] = [create_rdate_iterator([dtstart], zone)]
    inclusions.extend(
        create_rrule_iterator(r, dtstart, zone, settings=settings) for r in rrules
    )
    rdates = list(rdates)
    if rdates:
        inclusions.append(create_rdate_iterator(rdates, zone))

    exclusions: list[RecurrenceIterator] = [
        create_rrule_iterator(r, dtstart, zone, settings=settings) for r in exrules
    ]
    exdates = list(exdates)
    if exdates:
        exclusions.append(create_rdate_iterator(exdates, zone))
    return CompoundIterator(inclusions, exclusions)
