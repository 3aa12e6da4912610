"""Tests for single-rule expansion."""

import logging
from datetime import date, datetime, timedelta, timezone
from itertools import islice

import pytest
from dateutil import rrule as du

from calrecur import EngineSettings, RecurrenceRule, create_rrule_iterator


def _take(it, n):
    return list(islice(it, n))


def test_daily_count():
    rule = RecurrenceRule(freq="daily", count=3)
    it = create_rrule_iterator(rule, date(2006, 1, 1))
    assert list(it) == [date(2006, 1, 1), date(2006, 1, 2), date(2006, 1, 3)]
    assert not it.has_next()
    with pytest.raises(StopIteration):
        it.next()


def test_until_is_inclusive():
    rule = RecurrenceRule(freq="daily", until=date(2006, 1, 5))
    assert list(create_rrule_iterator(rule, date(2006, 1, 1))) == [
        date(2006, 1, d) for d in range(1, 6)
    ]


def test_until_kind_mismatch_logs_warning(caplog):
    """A date UNTIL on a timed rule is taken as midnight of that day."""
    rule = RecurrenceRule(freq="daily", until=date(2025, 1, 3))
    with caplog.at_level(logging.WARNING, logger="calrecur.factory"):
        values = list(create_rrule_iterator(rule, datetime(2025, 1, 1, 9)))
    assert values == [datetime(2025, 1, 1, 9), datetime(2025, 1, 2, 9)]
    assert "differ in kind" in caplog.text


def test_weekly_interval_from_wednesday():
    """Every other Monday, counting weeks from the week containing dtstart."""
    rule = RecurrenceRule(freq="weekly", interval=2, by_day="MO")
    values = _take(create_rrule_iterator(rule, date(2006, 1, 4)), 4)
    assert values[0] == date(2006, 1, 16)
    assert values == [date(2006, 1, 16) + timedelta(days=14 * i) for i in range(4)]


def test_first_weekday_of_month():
    rule = RecurrenceRule(
        freq="monthly", by_day=["MO", "TU", "WE", "TH", "FR"], by_set_pos=1, count=4
    )
    assert list(create_rrule_iterator(rule, date(2021, 1, 1))) == [
        date(2021, 1, 1),
        date(2021, 2, 1),
        date(2021, 3, 1),
        date(2021, 4, 1),
    ]


def test_last_weekday_of_month():
    rule = RecurrenceRule(
        freq="monthly", by_day=["MO", "TU", "WE", "TH", "FR"], by_set_pos=-1, count=3
    )
    assert list(create_rrule_iterator(rule, date(2021, 1, 1))) == [
        date(2021, 1, 29),
        date(2021, 2, 26),
        date(2021, 3, 31),
    ]


def test_hourly_set_pos_picks_from_hour_list():
    rule = RecurrenceRule(freq="hourly", by_hour=[9, 12, 17], by_set_pos=-1, count=2)
    assert list(create_rrule_iterator(rule, datetime(2025, 1, 1))) == [
        datetime(2025, 1, 1, 17),
        datetime(2025, 1, 2, 17),
    ]


def test_impossible_rule_terminates():
    """February 30th never happens; the year throttle ends the search."""
    rule = RecurrenceRule(freq="yearly", by_month=2, by_month_day=30)
    it = create_rrule_iterator(rule, date(2006, 2, 1))
    assert not it.has_next()
    assert list(it) == []


def test_year_throttle_is_configurable():
    rule = RecurrenceRule(freq="yearly", by_month=2, by_month_day=29)
    settings = EngineSettings(max_years_between_instances=2)
    # 2001 to 2003 have no Feb 29th
    assert list(create_rrule_iterator(rule, date(2001, 1, 1), settings=settings)) == []
    settings = EngineSettings(max_years_between_instances=4)
    it = create_rrule_iterator(rule, date(2001, 1, 1), settings=settings)
    assert it.next() == date(2004, 2, 29)


def test_by_month_list_out_of_order():
    rule = RecurrenceRule(freq="monthly", by_month=[9, 5, 3])
    assert _take(create_rrule_iterator(rule, date(2006, 5, 3)), 3) == [
        date(2006, 5, 3),
        date(2006, 9, 3),
        date(2007, 3, 3),
    ]


def test_zone_conversion():
    """Local wall-clock times are reported in UTC."""
    rule = RecurrenceRule(freq="daily", count=2)
    it = create_rrule_iterator(rule, datetime(2006, 1, 1, 12, 30, 1), "America/Los_Angeles")
    assert list(it) == [datetime(2006, 1, 1, 20, 30, 1), datetime(2006, 1, 2, 20, 30, 1)]


def test_aware_dtstart_is_converted_to_zone():
    rule = RecurrenceRule(freq="daily", count=1)
    start = datetime(2006, 1, 1, 20, 30, tzinfo=timezone.utc)
    assert list(create_rrule_iterator(rule, start, "America/Los_Angeles")) == [
        datetime(2006, 1, 1, 20, 30)
    ]


def test_spring_forward_skips_repeated_utc_instant():
    """2:30 does not exist on 2006-04-02; it and 3:30 map to the same instant."""
    rule = RecurrenceRule(freq="hourly", count=3)
    it = create_rrule_iterator(rule, datetime(2006, 4, 2, 1, 30), "America/Los_Angeles")
    assert list(it) == [
        datetime(2006, 4, 2, 9, 30),
        datetime(2006, 4, 2, 10, 30),
        datetime(2006, 4, 2, 11, 30),
    ]


def test_fall_back_stays_increasing():
    rule = RecurrenceRule(freq="hourly", count=3)
    it = create_rrule_iterator(rule, datetime(2006, 10, 29, 0, 30), "America/Los_Angeles")
    values = list(it)
    assert values == [
        datetime(2006, 10, 29, 7, 30),
        datetime(2006, 10, 29, 8, 30),
        datetime(2006, 10, 29, 10, 30),
    ]


def test_advance_to_skips_months_on_sub_daily_rule():
    """Skipping ahead keeps the five-hour cadence from dtstart."""
    start = datetime(2025, 1, 31, 23)
    target = datetime(2025, 3, 15)
    rule = RecurrenceRule(freq="hourly", interval=5)
    it = create_rrule_iterator(rule, start)
    it.advance_to(target)
    expected = du.rrule(du.HOURLY, interval=5, dtstart=start).xafter(target, count=3, inc=True)
    assert _take(it, 3) == list(expected)


def test_advance_to_is_idempotent_and_ignores_past_targets():
    rule = RecurrenceRule(freq="daily")
    it = create_rrule_iterator(rule, date(2006, 1, 1))
    it.advance_to(date(2006, 1, 10))
    it.advance_to(date(2006, 1, 10))
    it.advance_to(date(2005, 6, 1))
    assert it.next() == date(2006, 1, 10)


def test_advance_to_respects_count():
    """Instances skipped by advance_to still use up the count."""
    rule = RecurrenceRule(freq="daily", count=5)
    it = create_rrule_iterator(rule, date(2006, 1, 1))
    it.advance_to(date(2006, 1, 4))
    assert list(it) == [date(2006, 1, 4), date(2006, 1, 5)]


def test_remove_is_not_supported():
    it = create_rrule_iterator(RecurrenceRule(freq="daily"), date(2006, 1, 1))
    with pytest.raises(NotImplementedError):
        it.remove()


def test_rule_string():
    rule = RecurrenceRule(freq="monthly", interval=2, by_day=du.FR(-1), count=6)
    assert str(rule) == "FREQ=MONTHLY;INTERVAL=2;COUNT=6;BYDAY=-1FR"


def test_non_positive_interval_means_one():
    assert RecurrenceRule(freq="daily", interval=0).interval == 1


def test_until_must_be_a_date():
    with pytest.raises(TypeError):
        RecurrenceRule(freq="daily", until="20060101")


@pytest.mark.parametrize(
    "rule, expected",
    [
        (
            RecurrenceRule(freq="monthly", by_day=du.FR(-1), count=6),
            du.rrule(du.MONTHLY, byweekday=du.FR(-1), count=6, dtstart=datetime(2025, 1, 1, 9)),
        ),
        (
            RecurrenceRule(freq="weekly", interval=2, by_day=[du.MO, du.TH], count=6),
            du.rrule(
                du.WEEKLY, interval=2, byweekday=(du.MO, du.TH), count=6,
                dtstart=datetime(2025, 1, 1, 9),
            ),
        ),
        (
            RecurrenceRule(freq="daily", by_hour=[9, 17], count=5),
            du.rrule(du.DAILY, byhour=(9, 17), count=5, dtstart=datetime(2025, 1, 1, 9)),
        ),
        (
            RecurrenceRule(freq="monthly", count=4),
            du.rrule(du.MONTHLY, count=4, dtstart=datetime(2025, 1, 1, 9)),
        ),
        (
            RecurrenceRule(freq="yearly", by_week_no=20, by_day=du.MO, count=3),
            du.rrule(du.YEARLY, byweekno=20, byweekday=du.MO, count=3, dtstart=datetime(2025, 1, 1, 9)),
        ),
        (
            RecurrenceRule(freq="yearly", by_day=du.MO(20), count=2),
            du.rrule(du.YEARLY, byweekday=du.MO(20), count=2, dtstart=datetime(2025, 1, 1, 9)),
        ),
        (
            RecurrenceRule(freq="yearly", by_year_day=[1, 100, -1], count=4),
            du.rrule(du.YEARLY, byyearday=(1, 100, -1), count=4, dtstart=datetime(2025, 1, 1, 9)),
        ),
        (
            RecurrenceRule(
                freq="monthly", by_day=["MO", "TU", "WE", "TH", "FR"], by_set_pos=-1, count=3
            ),
            du.rrule(
                du.MONTHLY, byweekday=(du.MO, du.TU, du.WE, du.TH, du.FR), bysetpos=-1,
                count=3, dtstart=datetime(2025, 1, 1, 9),
            ),
        ),
    ],
    ids=[
        "last-friday",
        "biweekly-mon-thu",
        "twice-daily",
        "monthly",
        "week-20",
        "20th-monday",
        "year-days",
        "last-weekday",
    ],
)
def test_matches_dateutil(rule, expected):
    """Expansion agrees with dateutil for rules both understand."""
    assert list(create_rrule_iterator(rule, datetime(2025, 1, 1, 9))) == list(expected)


def test_minutely_interval_matches_dateutil():
    start = datetime(2025, 1, 1, 23, 30)
    rule = RecurrenceRule(freq="minutely", interval=20, count=5)
    expected = du.rrule(du.MINUTELY, interval=20, count=5, dtstart=start)
    assert list(create_rrule_iterator(rule, start)) == list(expected)


def test_monthly_on_the_31st_matches_dateutil():
    """Months without a 31st are skipped rather than clamped."""
    start = datetime(2025, 1, 31)
    rule = RecurrenceRule(freq="monthly", count=4)
    expected = du.rrule(du.MONTHLY, count=4, dtstart=start)
    assert list(create_rrule_iterator(rule, start)) == list(expected)


@pytest.mark.parametrize(
    "rule",
    [
        RecurrenceRule(freq="hourly", interval=7),
        RecurrenceRule(freq="daily", by_hour=[1, 2, 3], by_minute=[0, 30]),
        RecurrenceRule(freq="weekly", by_day=["SU", "SA"], by_hour=[1, 2]),
        RecurrenceRule(freq="monthly", by_month_day=[-1, 1, 15], by_set_pos=[2, -1]),
        RecurrenceRule(freq="yearly", by_month=[3, 11], by_day=du.SU(1)),
    ],
    ids=["hourly", "daily-times", "weekends", "monthly-set-pos", "first-sundays"],
)
def test_values_strictly_increase_across_dst(rule):
    """Output stays strictly increasing in UTC through several DST changes."""
    it = create_rrule_iterator(rule, datetime(2025, 1, 1, 1, 30), "America/New_York")
    values = _take(it, 300)
    assert len(values) == 300
    assert all(a < b for a, b in zip(values, values[1:]))


WEEKDAY_NAMES = ["MO", "TU", "WE", "TH", "FR"]
WEEKDAYS = (du.MO, du.TU, du.WE, du.TH, du.FR)


@pytest.mark.parametrize(
    "start, rule, expected",
    [
        (
            datetime(2021, 2, 1, 12),
            RecurrenceRule(
                freq="monthly", by_day="MO", by_hour=[9, 17], by_set_pos=[1, -1], count=4
            ),
            du.rrule(
                du.MONTHLY, byweekday=du.MO, byhour=(9, 17), bysetpos=(1, -1), count=4,
                dtstart=datetime(2021, 2, 1, 12),
            ),
        ),
        (
            datetime(2021, 1, 4, 9),
            RecurrenceRule(freq="monthly", by_day="MO", by_hour=[9, 17], by_set_pos=1, count=4),
            du.rrule(
                du.MONTHLY, byweekday=du.MO, byhour=(9, 17), bysetpos=1, count=4,
                dtstart=datetime(2021, 1, 4, 9),
            ),
        ),
        (
            datetime(2025, 1, 6, 9),
            RecurrenceRule(freq="weekly", by_day=["MO", "TH"], by_set_pos=1, count=4),
            du.rrule(
                du.WEEKLY, byweekday=(du.MO, du.TH), bysetpos=1, count=4,
                dtstart=datetime(2025, 1, 6, 9),
            ),
        ),
        (
            datetime(2025, 1, 6, 9),
            RecurrenceRule(
                freq="weekly", by_day=["MO", "TH"], by_hour=[9, 17], by_set_pos=[1, 3], count=6
            ),
            du.rrule(
                du.WEEKLY, byweekday=(du.MO, du.TH), byhour=(9, 17), bysetpos=(1, 3), count=6,
                dtstart=datetime(2025, 1, 6, 9),
            ),
        ),
        (
            datetime(2025, 1, 1, 9),
            RecurrenceRule(freq="yearly", by_day=WEEKDAY_NAMES, by_set_pos=[1, -1], count=6),
            du.rrule(
                du.YEARLY, byweekday=WEEKDAYS, bysetpos=(1, -1), count=6,
                dtstart=datetime(2025, 1, 1, 9),
            ),
        ),
        (
            datetime(2025, 6, 15, 9),
            RecurrenceRule(freq="yearly", by_day=WEEKDAY_NAMES, by_set_pos=[1, -1], count=4),
            du.rrule(
                du.YEARLY, byweekday=WEEKDAYS, bysetpos=(1, -1), count=4,
                dtstart=datetime(2025, 6, 15, 9),
            ),
        ),
        (
            datetime(2025, 1, 1, 9),
            RecurrenceRule(freq="yearly", by_day="MO", by_hour=[9, 17], by_set_pos=1, count=3),
            du.rrule(
                du.YEARLY, byweekday=du.MO, byhour=(9, 17), bysetpos=1, count=3,
                dtstart=datetime(2025, 1, 1, 9),
            ),
        ),
        (
            datetime(2025, 1, 1, 9),
            RecurrenceRule(freq="daily", by_hour=[9, 17], by_set_pos=1, count=3),
            du.rrule(
                du.DAILY, byhour=(9, 17), bysetpos=1, count=3, dtstart=datetime(2025, 1, 1, 9)
            ),
        ),
        (
            datetime(2025, 1, 1, 9),
            RecurrenceRule(freq="daily", by_set_pos=1, count=3),
            du.rrule(du.DAILY, bysetpos=1, count=3, dtstart=datetime(2025, 1, 1, 9)),
        ),
    ],
    ids=[
        "monthly-hours-before-start",
        "monthly-first-monday-morning",
        "weekly-first-of-mon-thu",
        "weekly-hours",
        "yearly-first-last-weekday",
        "yearly-from-mid-year",
        "yearly-first-monday-morning",
        "daily-first-hour",
        "daily-single-time",
    ],
)
def test_set_pos_matches_dateutil(start, rule, expected):
    """Positions count every candidate of the period, whatever dtstart's time."""
    assert list(create_rrule_iterator(rule, start)) == list(expected)
