"""Tests for calendar arithmetic and zone conversion."""

from datetime import date, datetime, timedelta, timezone

import pytest

from calrecur.timeutil import (
    day_of_year,
    days_between,
    fixed_from_gregorian,
    from_utc,
    month_length,
    naive_utc,
    resolve_zone,
    to_utc,
    trunc_div,
    year_length,
)


def test_leap_years():
    assert year_length(2000) == 366
    assert year_length(1900) == 365
    assert year_length(2004) == 366
    assert month_length(2006, 2) == 28
    assert month_length(2008, 2) == 29


def test_day_of_year_is_zero_based():
    assert day_of_year(2006, 1, 1) == 0
    assert day_of_year(2006, 3, 1) == 59
    assert day_of_year(2008, 3, 1) == 60
    assert day_of_year(2006, 12, 31) == 364


def test_fixed_from_gregorian_matches_ordinal():
    """Fixed days agree with date.toordinal."""
    for d in (date(1, 1, 1), date(1970, 1, 1), date(2000, 2, 29), date(2006, 12, 31)):
        assert fixed_from_gregorian(d.year, d.month, d.day) == d.toordinal()


def test_days_between_ignores_time():
    assert days_between(date(2006, 3, 1), date(2006, 2, 1)) == 28
    assert days_between(datetime(2006, 1, 2, 1), datetime(2006, 1, 1, 23)) == 1
    assert days_between(date(2005, 12, 31), date(2006, 1, 1)) == -1


def test_trunc_div_rounds_toward_zero():
    assert trunc_div(7, 2) == 3
    assert trunc_div(-7, 2) == -3
    assert trunc_div(-1, 7) == 0


def test_zone_round_trip():
    """Local to UTC and back restores the local time; dates pass through."""
    zone = resolve_zone("America/Los_Angeles")
    local = datetime(2006, 1, 1, 12, 30, 1)
    utc = to_utc(local, zone)
    assert utc == datetime(2006, 1, 1, 20, 30, 1)
    assert from_utc(utc, zone) == local
    assert to_utc(date(2006, 1, 1), zone) == date(2006, 1, 1)


def test_naive_utc_converts_aware_values():
    aware = datetime(2006, 1, 1, 12, tzinfo=timezone(timedelta(hours=-5)))
    assert naive_utc(aware) == datetime(2006, 1, 1, 17)
    assert naive_utc(date(2006, 1, 1)) == date(2006, 1, 1)


def test_resolve_zone():
    """UTC aliases map to timezone.utc and unknown names raise."""
    assert resolve_zone(None) is timezone.utc
    assert resolve_zone("utc") is timezone.utc
    assert resolve_zone(timezone.utc) is timezone.utc
    with pytest.raises(ValueError, match="Unknown timezone"):
        resolve_zone("Not/A_Zone")
