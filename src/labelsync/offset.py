"""Compact duration tokens (``12H``, ``3d``, ``1M``) and "since" instants.

Scheduled runs only revisit issues updated after ``now - offset``; this module
parses the offset token and performs the subtraction. Hours and days are
exact ``timedelta`` arithmetic; months follow the calendar and keep the
day-of-month, clamped to the last day of shorter months.
"""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from .errors import ConfigurationError, ParseError

_TOKEN_RE = re.compile(r"([0-9]+)([A-Za-z])")
_MONTHS_PER_YEAR = 12


class DurationUnit(str, Enum):
    HOUR = "H"
    DAY = "D"
    MONTH = "M"

    @classmethod
    def parse(cls, letter: str) -> DurationUnit:
        for unit in cls:
            if unit.value == letter.upper():
                return unit
        joined = ", ".join(f"'{u.value}'" for u in cls)
        raise ParseError(f"duration unit must be one of [{joined}], but got '{letter}'")


@dataclass(frozen=True)
class Duration:
    magnitude: int
    unit: DurationUnit

    def __str__(self) -> str:
        return f"{self.magnitude}{self.unit.value}"


def parse_duration(token: str) -> Duration:
    """Parse ``<digits><unit letter>`` with nothing before or after."""
    m = _TOKEN_RE.fullmatch(token or "")
    if m is None:
        raise ParseError(f"invalid duration {token!r}: expected <number><unit>, e.g. '1D'")
    magnitude = int(m.group(1))
    if magnitude <= 0:
        raise ParseError(f"invalid duration {token!r}: magnitude must be positive")
    return Duration(magnitude=magnitude, unit=DurationUnit.parse(m.group(2)))


def _subtract_months(moment: datetime, months: int) -> datetime:
    total = moment.year * _MONTHS_PER_YEAR + (moment.month - 1) - months
    year, month_index = divmod(total, _MONTHS_PER_YEAR)
    month = month_index + 1
    if year < 1:
        raise ConfigurationError(f"offset of {months} months reaches before year 1")
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def compute_offset_instant(now: datetime, duration: Duration) -> datetime:
    if duration.unit is DurationUnit.MONTH:
        return _subtract_months(now, duration.magnitude)
    delta = (
        timedelta(hours=duration.magnitude)
        if duration.unit is DurationUnit.HOUR
        else timedelta(days=duration.magnitude)
    )
    try:
        return now - delta
    except OverflowError as exc:
        raise ConfigurationError(f"offset {duration} reaches before year 1") from exc


def parse_offset(token: str, now: datetime) -> datetime:
    return compute_offset_instant(now, parse_duration(token))


__all__ = [
    "Duration",
    "DurationUnit",
    "parse_duration",
    "compute_offset_instant",
    "parse_offset",
]
