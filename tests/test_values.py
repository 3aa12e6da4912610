"""Tests for value types and the total order over dates and datetimes."""

from datetime import date, datetime

import pytest
from dateutil.rrule import FR, MO, WEEKLY

from calrecur import Frequency, Weekday, WeekdayNum, compare, comparable


def test_comparable_orders_dates_before_same_day_datetimes():
    """A date sorts before midnight of the same day and after the previous day."""
    values = [
        date(2006, 4, 11),
        datetime(2006, 4, 11, 0, 0, 0),
        datetime(2006, 4, 11, 0, 0, 1),
        datetime(2006, 4, 11, 12, 30, 15),
        datetime(2006, 4, 11, 23, 59, 59),
        date(2006, 4, 12),
        date(2006, 4, 13),
        datetime(2006, 4, 14, 12, 0, 0),
        datetime(2006, 4, 14, 15, 0, 0),
    ]
    keys = [comparable(v) for v in values]
    assert keys == sorted(keys)
    assert len(set(keys)) == len(keys)


def test_compare_is_antisymmetric():
    """compare returns -1, 0 or 1 consistently in both directions."""
    d = date(2006, 4, 11)
    dt = datetime(2006, 4, 11)
    assert compare(d, dt) == -1
    assert compare(dt, d) == 1
    assert compare(d, date(2006, 4, 11)) == 0


def test_date_never_equals_datetime():
    """Dates and datetimes have distinct keys even at midnight."""
    assert comparable(date(2020, 2, 29)) != comparable(datetime(2020, 2, 29))


def test_weekday_of_uses_sunday_zero():
    """Weekday numbers start at Sunday."""
    assert Weekday.of(date(2006, 1, 1)) is Weekday.SU
    assert Weekday.of(date(2006, 1, 2)) is Weekday.MO
    assert Weekday.first_in_month(2006, 2) is Weekday.WE
    assert Weekday.SU.value == 0
    assert Weekday.SA.value == 6


def test_weekday_coerce_accepts_names_and_dateutil():
    """Weekdays can be given by name, short code or dateutil constant."""
    assert Weekday.coerce("monday") is Weekday.MO
    assert Weekday.coerce("FR") is Weekday.FR
    assert Weekday.coerce(MO) is Weekday.MO
    assert Weekday.coerce(FR(-1)) is Weekday.FR


def test_weekday_coerce_rejects_bad_input():
    """Unknown names raise ValueError, other types TypeError."""
    with pytest.raises(ValueError, match="Invalid day name"):
        Weekday.coerce("funday")
    with pytest.raises(TypeError):
        Weekday.coerce(3.5)


def test_weekday_num_keeps_dateutil_ordinal():
    """A dateutil weekday with n carries its ordinal over."""
    assert WeekdayNum.coerce(FR(-1)) == WeekdayNum(-1, Weekday.FR)
    assert WeekdayNum.coerce("tuesday") == WeekdayNum(0, Weekday.TU)
    assert str(WeekdayNum(2, Weekday.MO)) == "2MO"
    assert str(WeekdayNum(0, Weekday.SA)) == "SA"


def test_frequency_order_and_coercion():
    """Frequencies order from most to least frequent and accept several spellings."""
    assert Frequency.SECONDLY < Frequency.DAILY < Frequency.YEARLY
    assert Frequency.coerce("weekly") is Frequency.WEEKLY
    assert Frequency.coerce(WEEKLY) is Frequency.WEEKLY
    with pytest.raises(ValueError, match="Invalid frequency"):
        Frequency.coerce("fortnightly")
