"""Calendar and clock arithmetic helpers."""

from datetime import date as _date
from math import fmod

SECS_PER_DAY = 86_400
SECS_PER_HOUR = 3_600
MICROS_PER_SEC = 1_000_000

# date(1970, 1, 1).toordinal()
_EPOCH_ORDINAL = 719_163


def is_leap(year: int) -> bool:
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


# 1-indexed days per month
_MONTHDAYS = [0, 31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31]


def days_in_month(year: int, month: int) -> int:
    return _MONTHDAYS[month] + (month == 2 and is_leap(year))


def epoch_days(year: int, month: int, day: int) -> int:
    """Days since 1970-01-01 of a (valid) proleptic Gregorian date"""
    try:
        return _date(year, month, day).toordinal() - _EPOCH_ORDINAL
    except OverflowError:
        raise ValueError("Date out of range")


def date_from_epoch_days(days: int) -> tuple[int, int, int]:
    try:
        d = _date.fromordinal(days + _EPOCH_ORDINAL)
    except (ValueError, OverflowError):
        raise ValueError("Date out of range")
    return d.year, d.month, d.day


def hms_to_seconds(hour: int, minute: int, second: int) -> int:
    return hour * SECS_PER_HOUR + minute * 60 + second


def hmsf_to_decimal_hour(
    hour: int, minute: int, second: int, microsecond: int
) -> float:
    return (
        hour
        + minute / 60
        + second / SECS_PER_HOUR
        + microsecond / (SECS_PER_HOUR * MICROS_PER_SEC)
    )


def range_limit(
    start: int, end: int, value: int, carry: int
) -> tuple[int, int]:
    """Bring ``value`` into ``[start, end)``, moving whole units
    into (or out of) ``carry``. Floors for negative values."""
    shift, value = divmod(value - start, end - start)
    return value + start, carry + shift


def reduce_microseconds(microsecond: int, second: int) -> tuple[int, int]:
    """Bring a microsecond value into ``[0, 1_000_000)``, carrying
    whole seconds into ``second``. The total time is unchanged.

    >>> reduce_microseconds(-500_000, 10)
    (500000, 9)
    """
    return range_limit(0, MICROS_PER_SEC, microsecond, second)


def trunc_divmod(a: int, b: int) -> tuple[int, int]:
    """Division rounding towards zero, with the remainder taking the sign
    of the dividend (C semantics)."""
    rem = int(fmod(a, b))
    return (a - rem) // b, rem
