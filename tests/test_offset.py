from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from labelsync.errors import ConfigurationError, ParseError
from labelsync.offset import (
    Duration,
    DurationUnit,
    compute_offset_instant,
    parse_duration,
    parse_offset,
)

NOW = datetime(2020, 10, 10, 10, 10, 10, tzinfo=timezone.utc)


def test_parse_duration_valid():
    assert parse_duration("1M") == Duration(1, DurationUnit.MONTH)
    assert parse_duration("12M") == Duration(12, DurationUnit.MONTH)
    assert parse_duration("12d") == Duration(12, DurationUnit.DAY)
    assert parse_duration("3H") == Duration(3, DurationUnit.HOUR)
    assert parse_duration("007D") == Duration(7, DurationUnit.DAY)


@pytest.mark.parametrize("token", ["M", "12", "1MM", "M1M", "1M1", "", " 1D", "1D ", "-1D", "1.5D", "d12d"])
def test_parse_duration_rejects_malformed(token):
    with pytest.raises(ParseError):
        parse_duration(token)


def test_parse_duration_rejects_zero():
    with pytest.raises(ParseError, match="positive"):
        parse_duration("0D")


def test_parse_duration_unknown_unit_lists_valid_units():
    with pytest.raises(ParseError) as exc:
        parse_duration("5W")
    assert str(exc.value) == "duration unit must be one of ['H', 'D', 'M'], but got 'W'"


def test_parse_error_is_configuration_error():
    with pytest.raises(ConfigurationError):
        parse_duration("nope")


def test_duration_str():
    assert str(Duration(2, DurationUnit.DAY)) == "2D"


def test_compute_offset_instant_examples():
    assert compute_offset_instant(NOW, Duration(1, DurationUnit.HOUR)) == datetime(
        2020, 10, 10, 9, 10, 10, tzinfo=timezone.utc
    )
    assert compute_offset_instant(NOW, Duration(1, DurationUnit.DAY)) == datetime(
        2020, 10, 9, 10, 10, 10, tzinfo=timezone.utc
    )
    assert compute_offset_instant(NOW, Duration(1, DurationUnit.MONTH)) == datetime(
        2020, 9, 10, 10, 10, 10, tzinfo=timezone.utc
    )


def test_months_cross_year_boundary():
    start = datetime(2021, 2, 15, tzinfo=timezone.utc)
    assert compute_offset_instant(start, Duration(14, DurationUnit.MONTH)) == datetime(
        2019, 12, 15, tzinfo=timezone.utc
    )


def test_months_clamp_to_end_of_shorter_month():
    start = datetime(2021, 3, 31, 8, 0, tzinfo=timezone.utc)
    assert compute_offset_instant(start, Duration(1, DurationUnit.MONTH)) == datetime(
        2021, 2, 28, 8, 0, tzinfo=timezone.utc
    )
    leap = datetime(2020, 3, 31, tzinfo=timezone.utc)
    assert compute_offset_instant(leap, Duration(1, DurationUnit.MONTH)).day == 29


def test_month_subtraction_is_not_thirty_days():
    start = datetime(2021, 3, 1, tzinfo=timezone.utc)
    result = compute_offset_instant(start, Duration(1, DurationUnit.MONTH))
    assert result == datetime(2021, 2, 1, tzinfo=timezone.utc)
    assert start - result == timedelta(days=28)


def test_offset_before_year_one():
    with pytest.raises(ConfigurationError):
        compute_offset_instant(datetime(1, 2, 1), Duration(2, DurationUnit.MONTH))
    with pytest.raises(ConfigurationError):
        compute_offset_instant(datetime(1, 1, 1, 5), Duration(1, DurationUnit.DAY))


def test_parse_offset():
    assert parse_offset("48H", NOW) == NOW - timedelta(days=2)
