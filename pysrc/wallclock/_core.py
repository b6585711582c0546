# The MIT License (MIT)
#
# Copyright (c) the wallclock authors
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.

# Maintainer's notes:
#
# - Calendar fields and the epoch value of an instant are kept side by side.
#   Every public instant has both consistent with each other. Internally,
#   `epoch_from_calendar` may produce an instant whose fields describe a
#   skipped local time; `calendar_from_epoch` always repairs that.
# - The offset of an instant is stored the way the zone kind defines it:
#   the full offset for named zones, the standard offset for fixed offsets
#   and abbreviations (with the DST hour kept separately in `_dst`).
# - The DST corrections in `_diff_same_zone` are subtle and covered by
#   tests for each branch. Change them with care.
from __future__ import annotations

__version__ = "0.1.0"

import enum
import logging
from datetime import date as _date
from math import fmod
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Literal,
    Optional,
    Union,
    no_type_check,
    overload,
)

from ._math import (
    MICROS_PER_SEC,
    SECS_PER_DAY,
    SECS_PER_HOUR,
    date_from_epoch_days,
    days_in_month,
    epoch_days,
    hms_to_seconds,
    hmsf_to_decimal_hour,
    range_limit,
    reduce_microseconds,
    trunc_divmod,
)
from ._tz import Fold, Gap, TimeZone, Unambiguous, get_tz

__all__ = [
    # Instants and zones
    "CivilInstant",
    "FixedOffset",
    "Abbreviation",
    "NamedZone",
    # Deltas
    "Interval",
    "WeekdayRelative",
    "SpecialRelative",
    # Operations
    "diff",
    "add",
    "sub",
    "add_wall",
    "sub_wall",
    "apply",
    "reduce_microseconds",
    # Enums
    "Weekday",
    "MONDAY",
    "TUESDAY",
    "WEDNESDAY",
    "THURSDAY",
    "FRIDAY",
    "SATURDAY",
    "SUNDAY",
    # Exceptions
    "SkippedTime",
    "RepeatedTime",
]

logger = logging.getLogger(__name__)


class Weekday(enum.Enum):
    """The days of the week; ``.value`` corresponds with ISO numbering."""

    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6
    SUNDAY = 7


MONDAY = Weekday.MONDAY
TUESDAY = Weekday.TUESDAY
WEDNESDAY = Weekday.WEDNESDAY
THURSDAY = Weekday.THURSDAY
FRIDAY = Weekday.FRIDAY
SATURDAY = Weekday.SATURDAY
SUNDAY = Weekday.SUNDAY

_object_new = object.__new__
# The largest UTC offset magnitude accepted for fixed offsets and abbreviations
_MAX_OFFSET = SECS_PER_DAY - 1

# (years, months, days, hours, minutes, seconds, microseconds)
_Fields = tuple[int, int, int, int, int, int, int]
_FIELD_NAMES = (
    "years",
    "months",
    "days",
    "hours",
    "minutes",
    "seconds",
    "microseconds",
)

Disambiguate = Literal["compatible", "earlier", "later", "raise"]


class _ImmutableBase:
    __slots__ = ()

    # Immutable classes don't need to be copied
    @no_type_check
    def __copy__(self):
        return self

    @no_type_check
    def __deepcopy__(self, _):
        return self


if TYPE_CHECKING:
    from typing import final
else:

    def final(cls):

        def init_subclass_not_allowed(cls, **kwargs):  # pragma: no cover
            raise TypeError("Subclassing not allowed")

        cls.__init_subclass__ = init_subclass_not_allowed
        return cls


def _format_offset(secs: int) -> str:
    sign = "-" if secs < 0 else "+"
    hrs, rest = divmod(abs(secs), SECS_PER_HOUR)
    mins, secs = divmod(rest, 60)
    return f"{sign}{hrs:02}:{mins:02}" + (f":{secs:02}" if secs else "")


def _check_offset(offset: int) -> int:
    if type(offset) is not int:
        raise TypeError("offset must be an integer number of seconds")
    if abs(offset) > _MAX_OFFSET:
        raise ValueError(f"offset out of range: {offset}")
    return offset


# ==================================================================
# Zones
# ==================================================================


@final
class FixedOffset(_ImmutableBase):
    """A constant UTC offset, without any DST

    >>> FixedOffset(2 * 3600)
    FixedOffset(+02:00)
    """

    __slots__ = ("_offset",)

    def __init__(self, offset: int) -> None:
        self._offset = _check_offset(offset)

    @property
    def offset(self) -> int:
        """The offset from UTC in seconds"""
        return self._offset

    def __eq__(self, other: object) -> bool:
        if type(other) is not FixedOffset:
            return NotImplemented
        return self._offset == other._offset

    def __hash__(self) -> int:
        return hash((FixedOffset, self._offset))

    def __repr__(self) -> str:
        return f"FixedOffset({_format_offset(self._offset)})"


@final
class Abbreviation(_ImmutableBase):
    """A zone abbreviation like ``EDT``: a standard offset, plus whether
    daylight saving time (one extra hour) is in effect.

    >>> Abbreviation("EDT", -5 * 3600, dst=True)
    Abbreviation('EDT', -05:00, dst=True)
    """

    __slots__ = ("_abbr", "_offset", "_dst")

    def __init__(self, abbr: str, offset: int, dst: bool = False) -> None:
        if not isinstance(abbr, str) or not abbr:
            raise ValueError("abbreviation must be a non-empty string")
        self._abbr = abbr
        self._offset = _check_offset(offset)
        self._dst = bool(dst)

    @property
    def abbr(self) -> str:
        return self._abbr

    @property
    def offset(self) -> int:
        """The standard offset from UTC in seconds, excluding DST"""
        return self._offset

    @property
    def dst(self) -> bool:
        return self._dst

    def __eq__(self, other: object) -> bool:
        if type(other) is not Abbreviation:
            return NotImplemented
        return (self._abbr, self._offset, self._dst) == (
            other._abbr,
            other._offset,
            other._dst,
        )

    def __hash__(self) -> int:
        return hash((Abbreviation, self._abbr, self._offset, self._dst))

    def __repr__(self) -> str:
        return (
            f"Abbreviation({self._abbr!r}, {_format_offset(self._offset)}, "
            f"dst={self._dst})"
        )


@final
class NamedZone(_ImmutableBase):
    """A zone with a full transition history, such as ``Europe/Amsterdam``

    >>> NamedZone("America/New_York")
    NamedZone('America/New_York')

    Raises
    ------
    TimeZoneNotFoundError
        If no data can be found for the given key.
    """

    __slots__ = ("_tz",)

    def __init__(self, tz: Union[str, TimeZone]) -> None:
        if isinstance(tz, str):
            tz = get_tz(tz)
        elif not isinstance(tz, TimeZone):
            raise TypeError("tz must be a string key or a TimeZone")
        self._tz = tz

    @property
    def key(self) -> Optional[str]:
        return self._tz.key

    @property
    def tz(self) -> TimeZone:
        """The loaded zone data"""
        return self._tz

    def __eq__(self, other: object) -> bool:
        if type(other) is not NamedZone:
            return NotImplemented
        return self._tz == other._tz

    def __hash__(self) -> int:
        return hash((NamedZone, self._tz))

    def __repr__(self) -> str:
        return f"NamedZone({self._tz.key!r})"


Zone = Union[FixedOffset, Abbreviation, NamedZone]


def _to_zone(tz: Union[str, Zone]) -> Zone:
    if isinstance(tz, str):
        return NamedZone(tz)
    elif isinstance(tz, (FixedOffset, Abbreviation, NamedZone)):
        return tz
    raise TypeError(f"Expected a zone or a zone key, got {tz!r}")


# ==================================================================
# Deltas
# ==================================================================


@final
class Interval(_ImmutableBase):
    """A calendar interval: a set of signed components plus a direction.

    The components are added as-is, and ``invert=True`` negates all of them.
    Intervals returned from :func:`diff` are normalized and carry
    ``total_days``: the number of whole days between the two instants.
    Equality ignores ``total_days``.

    >>> Interval(months=1, days=2, hours=3)
    Interval(months=1, days=2, hours=3)
    >>> -Interval(hours=1)
    Interval(hours=1, invert=True)
    """

    __slots__ = (
        "_years",
        "_months",
        "_days",
        "_hours",
        "_minutes",
        "_seconds",
        "_microseconds",
        "_invert",
        "_total_days",
    )

    def __init__(
        self,
        *,
        years: int = 0,
        months: int = 0,
        days: int = 0,
        hours: int = 0,
        minutes: int = 0,
        seconds: int = 0,
        microseconds: int = 0,
        invert: bool = False,
    ) -> None:
        fields = (years, months, days, hours, minutes, seconds, microseconds)
        if not all(type(f) is int for f in fields):
            raise TypeError("interval components must be integers")
        (
            self._years,
            self._months,
            self._days,
            self._hours,
            self._minutes,
            self._seconds,
            self._microseconds,
        ) = fields
        self._invert = bool(invert)
        self._total_days: Optional[int] = None

    @classmethod
    def _from_diff(
        cls, fields: _Fields, invert: bool, total_days: int
    ) -> Interval:
        self = _object_new(cls)
        (
            self._years,
            self._months,
            self._days,
            self._hours,
            self._minutes,
            self._seconds,
            self._microseconds,
        ) = fields
        self._invert = invert
        self._total_days = total_days
        return self

    @property
    def years(self) -> int:
        return self._years

    @property
    def months(self) -> int:
        return self._months

    @property
    def days(self) -> int:
        return self._days

    @property
    def hours(self) -> int:
        return self._hours

    @property
    def minutes(self) -> int:
        return self._minutes

    @property
    def seconds(self) -> int:
        return self._seconds

    @property
    def microseconds(self) -> int:
        return self._microseconds

    @property
    def invert(self) -> bool:
        return self._invert

    @property
    def total_days(self) -> Optional[int]:
        """Whole days between the instants this interval was computed from.
        ``None`` for intervals created directly."""
        return self._total_days

    def _fields(self) -> _Fields:
        return (
            self._years,
            self._months,
            self._days,
            self._hours,
            self._minutes,
            self._seconds,
            self._microseconds,
        )

    def _signed(self, bias: int) -> _Fields:
        # The components as they should be added, given the direction
        sign = -bias if self._invert else bias
        y, m, d, h, i, s, us = self._fields()
        return (
            sign * y,
            sign * m,
            sign * d,
            sign * h,
            sign * i,
            sign * s,
            sign * us,
        )

    def __neg__(self) -> Interval:
        new = _object_new(Interval)
        for name in Interval.__slots__:
            setattr(new, name, getattr(self, name))
        new._invert = not self._invert
        return new

    def __eq__(self, other: object) -> bool:
        if type(other) is not Interval:
            return NotImplemented
        return (self._fields(), self._invert) == (
            other._fields(),
            other._invert,
        )

    def __hash__(self) -> int:
        return hash((self._fields(), self._invert))

    def __repr__(self) -> str:
        parts = [
            f"{name}={value}"
            for name, value in zip(_FIELD_NAMES, self._fields())
            if value
        ]
        if self._invert:
            parts.append("invert=True")
        if self._total_days is not None:
            parts.append(f"total_days={self._total_days}")
        return f"Interval({', '.join(parts)})"


@final
class WeekdayRelative(_ImmutableBase):
    """Move to a weekday, keeping the time of day.

    - ``count > 0``: the ``count``-th such weekday after the date
    - ``count == 0``: the date itself if it falls on the weekday,
      otherwise the next such weekday
    - ``count < 0``: the ``-count``-th such weekday before the date

    >>> WeekdayRelative(Weekday.FRIDAY, 2)
    WeekdayRelative(FRIDAY, 2)
    """

    __slots__ = ("_weekday", "_count")

    def __init__(self, weekday: Weekday, count: int = 1) -> None:
        if not isinstance(weekday, Weekday):
            raise TypeError("weekday must be a Weekday")
        if type(count) is not int:
            raise TypeError("count must be an integer")
        self._weekday = weekday
        self._count = count

    @property
    def weekday(self) -> Weekday:
        return self._weekday

    @property
    def count(self) -> int:
        return self._count

    def __neg__(self) -> WeekdayRelative:
        return WeekdayRelative(self._weekday, -self._count)

    def __eq__(self, other: object) -> bool:
        if type(other) is not WeekdayRelative:
            return NotImplemented
        return (self._weekday, self._count) == (other._weekday, other._count)

    def __hash__(self) -> int:
        return hash((self._weekday, self._count))

    def __repr__(self) -> str:
        return f"WeekdayRelative({self._weekday.name}, {self._count})"


SpecialKind = Literal["weekdays", "first_day_of", "last_day_of"]
_SPECIAL_KINDS = ("weekdays", "first_day_of", "last_day_of")


@final
class SpecialRelative(_ImmutableBase):
    """A relative movement that doesn't fit calendar fields:
    a number of business days, or a jump to the first or last day of a
    month. Use the classmethods to create one.

    >>> SpecialRelative.weekdays(3)
    SpecialRelative('weekdays', 3)
    >>> SpecialRelative.last_day_of(months=1)
    SpecialRelative('last_day_of', 1)
    """

    __slots__ = ("_kind", "_amount")

    def __init__(self, kind: SpecialKind, amount: int) -> None:
        if kind not in _SPECIAL_KINDS:
            raise ValueError(f"Invalid relative kind: {kind!r}")
        if type(amount) is not int:
            raise TypeError("amount must be an integer")
        self._kind = kind
        self._amount = amount

    @classmethod
    def weekdays(cls, n: int) -> SpecialRelative:
        """Move ``n`` business days (Monday to Friday), skipping weekends"""
        return cls("weekdays", n)

    @classmethod
    def first_day_of(cls, months: int = 0) -> SpecialRelative:
        """Move ``months`` months, then to the first day of that month"""
        return cls("first_day_of", months)

    @classmethod
    def last_day_of(cls, months: int = 0) -> SpecialRelative:
        """Move ``months`` months, then to the last day of that month"""
        return cls("last_day_of", months)

    @property
    def kind(self) -> SpecialKind:
        return self._kind

    @property
    def amount(self) -> int:
        return self._amount

    def __neg__(self) -> SpecialRelative:
        return SpecialRelative(self._kind, -self._amount)

    def __eq__(self, other: object) -> bool:
        if type(other) is not SpecialRelative:
            return NotImplemented
        return (self._kind, self._amount) == (other._kind, other._amount)

    def __hash__(self) -> int:
        return hash((self._kind, self._amount))

    def __repr__(self) -> str:
        return f"SpecialRelative({self._kind!r}, {self._amount})"


Delta = Union[Interval, WeekdayRelative, SpecialRelative]
_Relative = Union[_Fields, WeekdayRelative, SpecialRelative]


# ==================================================================
# Instants
# ==================================================================


@final
class CivilInstant(_ImmutableBase):
    """An exact moment in time, together with its calendar representation
    in a zone.

    >>> CivilInstant(2023, 3, 12, 1, 30, tz="America/New_York")
    CivilInstant(2023-03-12 01:30:00-05:00[America/New_York])

    Local times that don't exist or are ambiguous in the zone are resolved
    according to ``disambiguate``. The default (``"compatible"``) picks the
    earlier offset in a fold, and moves skipped times forward by the size
    of the gap.

    Comparison and equality are based on the exact moment only.
    Use :meth:`exact_eq` to also compare the zone and fields.
    """

    __slots__ = (
        "_year",
        "_month",
        "_day",
        "_hour",
        "_minute",
        "_second",
        "_microsecond",
        "_sse",
        "_z",
        "_dst",
        "_zone",
    )

    def __init__(
        self,
        year: int,
        month: int,
        day: int,
        hour: int = 0,
        minute: int = 0,
        second: int = 0,
        *,
        microsecond: int = 0,
        tz: Union[str, Zone],
        disambiguate: Disambiguate = "compatible",
    ) -> None:
        # the stdlib checks the date and time fields for us
        _date(year, month, day)
        if not (
            0 <= hour < 24
            and 0 <= minute < 60
            and 0 <= second < 60
            and 0 <= microsecond < MICROS_PER_SEC
        ):
            raise ValueError("time field out of range")
        draft = CivilInstant._unchecked(
            (year, month, day, hour, minute, second, microsecond),
            0,
            0,
            False,
            _to_zone(tz),
        )
        resolved = calendar_from_epoch(
            epoch_from_calendar(draft, disambiguate=disambiguate)
        )
        for name in CivilInstant.__slots__:
            setattr(self, name, getattr(resolved, name))

    @classmethod
    def _unchecked(
        cls, fields: _Fields, sse: int, z: int, dst: bool, zone: Zone
    ) -> CivilInstant:
        self = _object_new(cls)
        (
            self._year,
            self._month,
            self._day,
            self._hour,
            self._minute,
            self._second,
            self._microsecond,
        ) = fields
        self._sse = sse
        self._z = z
        self._dst = dst
        self._zone = zone
        return self

    @classmethod
    def from_timestamp(
        cls,
        sse: int,
        /,
        *,
        tz: Union[str, Zone],
        microsecond: int = 0,
    ) -> CivilInstant:
        """Create an instant from seconds since the Unix epoch

        >>> CivilInstant.from_timestamp(0, tz="Europe/Amsterdam")
        CivilInstant(1970-01-01 01:00:00+01:00[Europe/Amsterdam])
        """
        if type(sse) is not int or type(microsecond) is not int:
            raise TypeError("timestamp and microsecond must be integers")
        if not 0 <= microsecond < MICROS_PER_SEC:
            raise ValueError("microsecond out of range")
        return calendar_from_epoch(
            cls._unchecked(
                (0, 0, 0, 0, 0, 0, microsecond), sse, 0, False, _to_zone(tz)
            )
        )

    @property
    def year(self) -> int:
        return self._year

    @property
    def month(self) -> int:
        return self._month

    @property
    def day(self) -> int:
        return self._day

    @property
    def hour(self) -> int:
        return self._hour

    @property
    def minute(self) -> int:
        return self._minute

    @property
    def second(self) -> int:
        return self._second

    @property
    def microsecond(self) -> int:
        return self._microsecond

    @property
    def zone(self) -> Zone:
        return self._zone

    @property
    def dst(self) -> bool:
        return self._dst

    @property
    def offset(self) -> int:
        """The effective UTC offset in seconds, including any DST"""
        if isinstance(self._zone, NamedZone):
            return self._z
        return self._z + SECS_PER_HOUR * self._dst

    def timestamp(self) -> int:
        """Seconds since the Unix epoch"""
        return self._sse

    def _fields(self) -> _Fields:
        return (
            self._year,
            self._month,
            self._day,
            self._hour,
            self._minute,
            self._second,
            self._microsecond,
        )

    def _with_epoch(self, sse: int, microsecond: int) -> CivilInstant:
        # The calendar fields are stale until passed to calendar_from_epoch
        fields = (*self._fields()[:6], microsecond)
        return CivilInstant._unchecked(
            fields, sse, self._z, self._dst, self._zone
        )

    def to_tz(self, tz: Union[str, Zone]) -> CivilInstant:
        """The same moment, expressed in another zone"""
        return calendar_from_epoch(
            CivilInstant._unchecked(
                self._fields(), self._sse, 0, False, _to_zone(tz)
            )
        )

    def replace(
        self,
        *,
        disambiguate: Disambiguate = "compatible",
        **kwargs: Any,
    ) -> CivilInstant:
        """Construct a new instant with some fields replaced.
        Accepts the same keywords as the constructor.

        >>> d = CivilInstant(2023, 3, 12, 1, 30, tz="America/New_York")
        >>> d.replace(hour=2)
        CivilInstant(2023-03-12 03:30:00-04:00[America/New_York])
        """
        args = {
            "year": self._year,
            "month": self._month,
            "day": self._day,
            "hour": self._hour,
            "minute": self._minute,
            "second": self._second,
            "microsecond": self._microsecond,
            "tz": self._zone,
        }
        unknown = kwargs.keys() - args.keys()
        if unknown:
            raise TypeError(f"Unknown field(s): {', '.join(sorted(unknown))}")
        args.update(kwargs)
        return CivilInstant(**args, disambiguate=disambiguate)

    def exact_eq(self, other: CivilInstant, /) -> bool:
        """Equality check that also compares the zone and local fields"""
        return (
            self._sse == other._sse
            and self._fields() == other._fields()
            and self._z == other._z
            and self._dst == other._dst
            and self._zone == other._zone
        )

    def diff(self, other: CivilInstant, /) -> Interval:
        """The interval from this instant until ``other``.
        See :func:`diff`."""
        return diff(self, other)

    def add(self, delta: Delta, /) -> CivilInstant:
        """See :func:`add`"""
        return add(self, delta)

    def subtract(self, delta: Delta, /) -> CivilInstant:
        """See :func:`sub`"""
        return sub(self, delta)

    def add_wall(self, delta: Delta, /) -> CivilInstant:
        """See :func:`add_wall`"""
        return add_wall(self, delta)

    def subtract_wall(self, delta: Delta, /) -> CivilInstant:
        """See :func:`sub_wall`"""
        return sub_wall(self, delta)

    def __add__(self, delta: Delta) -> CivilInstant:
        if isinstance(delta, (Interval, WeekdayRelative, SpecialRelative)):
            return add(self, delta)
        return NotImplemented

    @overload
    def __sub__(self, other: CivilInstant) -> Interval: ...

    @overload
    def __sub__(self, other: Delta) -> CivilInstant: ...

    def __sub__(
        self, other: Union[CivilInstant, Delta]
    ) -> Union[Interval, CivilInstant]:
        """Subtract a delta, or get the interval between two instants

        >>> a = CivilInstant(2023, 1, 1, tz="Europe/Amsterdam")
        >>> b = CivilInstant(2023, 1, 2, 6, tz="Europe/Amsterdam")
        >>> b - a
        Interval(days=1, hours=6, total_days=1)
        """
        if isinstance(other, CivilInstant):
            return diff(other, self)
        elif isinstance(other, (Interval, WeekdayRelative, SpecialRelative)):
            return sub(self, other)
        return NotImplemented

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CivilInstant):
            return NotImplemented
        return (self._sse, self._microsecond) == (
            other._sse,
            other._microsecond,
        )

    def __hash__(self) -> int:
        return hash((self._sse, self._microsecond))

    def __lt__(self, other: CivilInstant) -> bool:
        if not isinstance(other, CivilInstant):
            return NotImplemented
        return (self._sse, self._microsecond) < (
            other._sse,
            other._microsecond,
        )

    def __le__(self, other: CivilInstant) -> bool:
        if not isinstance(other, CivilInstant):
            return NotImplemented
        return (self._sse, self._microsecond) <= (
            other._sse,
            other._microsecond,
        )

    def __gt__(self, other: CivilInstant) -> bool:
        if not isinstance(other, CivilInstant):
            return NotImplemented
        return (self._sse, self._microsecond) > (
            other._sse,
            other._microsecond,
        )

    def __ge__(self, other: CivilInstant) -> bool:
        if not isinstance(other, CivilInstant):
            return NotImplemented
        return (self._sse, self._microsecond) >= (
            other._sse,
            other._microsecond,
        )

    def __repr__(self) -> str:
        frac = f".{self._microsecond:06}" if self._microsecond else ""
        zone = self._zone
        if isinstance(zone, NamedZone):
            suffix = f"[{zone.key}]"
        elif isinstance(zone, Abbreviation):
            suffix = f"[{zone.abbr}]"
        else:
            suffix = ""
        return (
            f"CivilInstant({self._year:04}-{self._month:02}-{self._day:02} "
            f"{self._hour:02}:{self._minute:02}:{self._second:02}{frac}"
            f"{_format_offset(self.offset)}{suffix})"
        )


class RepeatedTime(ValueError):
    """A local time occurs twice in a zone, e.g. because of DST"""

    @classmethod
    def _for_zone(cls, fields: _Fields, zone: NamedZone) -> RepeatedTime:
        return cls(f"{_format_fields(fields)} is repeated in {zone.key!r}")


class SkippedTime(ValueError):
    """A local time doesn't exist in a zone, e.g. because of DST"""

    @classmethod
    def _for_zone(cls, fields: _Fields, zone: NamedZone) -> SkippedTime:
        return cls(f"{_format_fields(fields)} is skipped in {zone.key!r}")


def _format_fields(fields: _Fields) -> str:
    y, m, d, h, i, s, _ = fields
    return f"{y:04}-{m:02}-{d:02} {h:02}:{i:02}:{s:02}"


# ==================================================================
# Conversions between calendar fields and epoch seconds
# ==================================================================


def normalize_fields(
    year: int,
    month: int,
    day: int,
    hour: int,
    minute: int,
    second: int,
    microsecond: int,
) -> _Fields:
    """Carry out-of-range calendar fields into the larger units,
    so that e.g. January 32nd becomes February 1st.
    The day overflows across months, so 2023-01-31 plus one month
    (February 31st) becomes March 3rd.

    >>> normalize_fields(2023, 2, 31, 25, 0, 0, -1)
    (2023, 3, 4, 0, 59, 59, 999999)
    """
    microsecond, second = reduce_microseconds(microsecond, second)
    second, minute = range_limit(0, 60, second, minute)
    minute, hour = range_limit(0, 60, minute, hour)
    hour, day = range_limit(0, 24, hour, day)
    month, year = range_limit(1, 13, month, year)
    year, month, day = date_from_epoch_days(
        epoch_days(year, month, 1) + day - 1
    )
    return (year, month, day, hour, minute, second, microsecond)


def _resolve_local(
    local: int, zone: Zone, fields: _Fields, disambiguate: Disambiguate
) -> tuple[int, int, bool]:
    # Local time (as epoch seconds) to (sse, z, dst)
    if isinstance(zone, FixedOffset):
        return local - zone.offset, zone.offset, False
    elif isinstance(zone, Abbreviation):
        return (
            local - zone.offset - SECS_PER_HOUR * zone.dst,
            zone.offset,
            zone.dst,
        )

    ambiguity = zone.tz.ambiguity_for_local(local)
    if isinstance(ambiguity, Unambiguous):
        offset = ambiguity.offset
    elif isinstance(ambiguity, Fold):
        if disambiguate == "raise":
            raise RepeatedTime._for_zone(fields, zone)
        offset = (
            ambiguity.after if disambiguate == "later" else ambiguity.before
        )
    else:
        assert isinstance(ambiguity, Gap)
        if disambiguate == "raise":
            raise SkippedTime._for_zone(fields, zone)
        # "earlier" lands before the gap, otherwise we land after it
        offset = (
            ambiguity.before if disambiguate == "earlier" else ambiguity.after
        )
    sse = local - offset
    z, dst = zone.tz.offset_for_instant(sse)
    return sse, z, dst


def _move_to_weekday(days: int, relative: WeekdayRelative) -> int:
    current = (days + 3) % 7 + 1  # 1970-01-01 was a Thursday
    target = relative.weekday.value
    count = relative.count
    if count >= 0:
        ahead = (target - current) % 7
        if count == 0:
            return days + ahead
        return days + (ahead or 7) + 7 * (count - 1)
    behind = (current - target) % 7
    return days - (behind or 7) - 7 * (-count - 1)


def _is_business_day(days: int) -> bool:
    return (days + 3) % 7 < 5


def _add_business_days(days: int, n: int) -> int:
    if n == 0:
        return days
    step = 1 if n > 0 else -1
    weekday = (days + 3) % 7  # Monday=0
    if weekday >= 5:
        # Count from the adjacent business day behind us:
        # Friday when moving forward, Monday when moving back.
        days += (4 - weekday) if step > 0 else (7 - weekday)
    weeks, remaining = divmod(abs(n), 5)
    days += 7 * weeks * step
    while remaining:
        days += step
        if _is_business_day(days):
            remaining -= 1
    return days


def _apply_special(
    year: int, month: int, day: int, relative: SpecialRelative
) -> tuple[int, int, int]:
    if relative.kind == "weekdays":
        return date_from_epoch_days(
            _add_business_days(epoch_days(year, month, day), relative.amount)
        )
    month, year = range_limit(1, 13, month + relative.amount, year)
    if relative.kind == "first_day_of":
        return year, month, 1
    return year, month, days_in_month(year, month)


def epoch_from_calendar(
    t: CivilInstant,
    relative: Optional[_Relative] = None,
    *,
    disambiguate: Disambiguate = "compatible",
) -> CivilInstant:
    """Compute the epoch seconds for the calendar fields of ``t``,
    optionally after applying a relative movement first.

    A plain movement is given as already-signed field deltas.
    The result has normalized fields and a fresh epoch value,
    but its fields are *not* re-derived from that epoch value:
    a skipped local time stays as-is. Pass the result to
    :func:`calendar_from_epoch` to get the canonical representation.
    """
    y, m, d, h, i, s, us = t._fields()
    if isinstance(relative, tuple):
        dy, dm, dd, dh, di, ds, dus = relative
        y, m, d, h, i, s, us = normalize_fields(
            y + dy, m + dm, d + dd, h + dh, i + di, s + ds, us + dus
        )
    elif isinstance(relative, WeekdayRelative):
        y, m, d = date_from_epoch_days(
            _move_to_weekday(epoch_days(y, m, d), relative)
        )
    elif isinstance(relative, SpecialRelative):
        y, m, d = _apply_special(y, m, d, relative)
    elif relative is not None:
        raise TypeError(f"Unsupported relative movement: {relative!r}")

    fields = (y, m, d, h, i, s, us)
    local = epoch_days(y, m, d) * SECS_PER_DAY + hms_to_seconds(h, i, s)
    sse, z, dst = _resolve_local(local, t._zone, fields, disambiguate)
    return CivilInstant._unchecked(fields, sse, z, dst, t._zone)


def calendar_from_epoch(t: CivilInstant) -> CivilInstant:
    """Derive the calendar fields (and for named zones, the offset and
    DST flag) from the epoch value of ``t``. The microsecond is kept."""
    zone = t._zone
    if isinstance(zone, NamedZone):
        z, dst = zone.tz.offset_for_instant(t._sse)
        local = t._sse + z
    elif isinstance(zone, Abbreviation):
        z, dst = zone.offset, zone.dst
        local = t._sse + z + SECS_PER_HOUR * dst
    else:
        z, dst = zone.offset, False
        local = t._sse + z
    days, secs = divmod(local, SECS_PER_DAY)
    y, m, d = date_from_epoch_days(days)
    h, rest = divmod(secs, SECS_PER_HOUR)
    i, s = divmod(rest, 60)
    return CivilInstant._unchecked(
        (y, m, d, h, i, s, t._microsecond), t._sse, z, dst, zone
    )


def normalize_interval(base: CivilInstant, *fields: int) -> _Fields:
    """Bring raw field differences into their canonical ranges.

    Negative days are made up by borrowing whole months, using the lengths
    of the months preceding ``base`` (the later of the two instants).

    >>> base = CivilInstant(2023, 3, 1, tz=FixedOffset(0))
    >>> normalize_interval(base, 0, 1, -3, 0, 0, 0, 0)
    (0, 0, 25, 0, 0, 0, 0)
    """
    y, m, d, h, i, s, us = fields
    us, s = reduce_microseconds(us, s)
    s, i = range_limit(0, 60, s, i)
    i, h = range_limit(0, 60, i, h)
    h, d = range_limit(0, 24, h, d)
    m, y = range_limit(0, 12, m, y)

    year, month = base._year, base._month
    while d < 0:
        month -= 1
        if month < 1:
            month += 12
            year -= 1
        d += days_in_month(year, month)
        m -= 1
    m, y = range_limit(0, 12, m, y)
    return (y, m, d, h, i, s, us)


# ==================================================================
# Differences
# ==================================================================


def _same_named_zone(a: CivilInstant, b: CivilInstant) -> bool:
    return (
        isinstance(a._zone, NamedZone)
        and isinstance(b._zone, NamedZone)
        and a._zone == b._zone
    )


def _same_timezone(a: CivilInstant, b: CivilInstant) -> bool:
    # Whether local dates can be compared directly to count days
    if type(a._zone) is not type(b._zone):
        return False
    elif isinstance(a._zone, NamedZone):
        return a._zone == b._zone
    return a.offset == b.offset


def _order(
    a: CivilInstant, b: CivilInstant
) -> tuple[CivilInstant, CivilInstant, bool]:
    """Sort two instants, returning whether they were swapped.
    Within one named zone, the local fields decide. Otherwise the
    exact time does."""
    if _same_named_zone(a, b):
        swap = a._fields() > b._fields()
    else:
        swap = (a._sse, a._microsecond) > (b._sse, b._microsecond)
    return (b, a, True) if swap else (a, b, False)


def _diff_days(one: CivilInstant, two: CivilInstant) -> int:
    if not _same_timezone(one, two):
        return abs(one._sse - two._sse) // SECS_PER_DAY

    if (one._sse, one._microsecond) < (two._sse, two._microsecond):
        earliest, latest = one, two
    else:
        earliest, latest = two, one
    days = abs(
        epoch_days(one._year, one._month, one._day)
        - epoch_days(two._year, two._month, two._day)
    )
    # The last day isn't complete if the time of day hasn't been reached
    if days and hmsf_to_decimal_hour(
        latest._hour, latest._minute, latest._second, latest._microsecond
    ) < hmsf_to_decimal_hour(
        earliest._hour,
        earliest._minute,
        earliest._second,
        earliest._microsecond,
    ):
        days -= 1
    return days


def _raw_difference(one: CivilInstant, two: CivilInstant) -> list[int]:
    return [b - a for a, b in zip(one._fields(), two._fields())]


def _diff_same_zone(a: CivilInstant, b: CivilInstant) -> Interval:
    one, two, invert = _order(a, b)
    assert isinstance(two._zone, NamedZone)
    tz = two._zone.tz

    dst_corr = two._z - one._z
    dst_h_corr, rest = trunc_divmod(dst_corr, SECS_PER_HOUR)
    dst_m_corr, _ = trunc_divmod(rest, 60)

    y, m, d, h, i, s, us = _raw_difference(one, two)
    total_days = _diff_days(one, two)

    # Ordered by local time, but reversed in exact time. This only happens
    # within a fold, where the difference is the offset change.
    if two._sse < one._sse:
        flipped = abs(i * 60 + s - dst_corr)
        h = flipped // SECS_PER_HOUR
        i = (flipped - h * SECS_PER_HOUR) // 60
        s = flipped % 60
        invert = not invert

    y, m, d, h, i, s, us = normalize_interval(two, y, m, d, h, i, s, us)

    if one._dst and not two._dst:
        # Fall back: for spans shorter than a day, count elapsed hours
        if two._sse - one._sse + dst_corr < SECS_PER_DAY:
            logger.debug(
                "Backward transition correction of %+d:%02d",
                -dst_h_corr,
                abs(dst_m_corr),
            )
            h -= dst_h_corr
            i -= dst_m_corr
    elif not one._dst and two._dst:
        # Spring forward: remove the skipped hour if it's counted
        info = tz.offset_info(two._sse)
        if (
            info is not None
            and info.transition is not None
            and not (
                info.transition
                < one._sse + SECS_PER_DAY
                <= info.transition + dst_corr
            )
            and two._sse >= info.transition
            and int(fmod(two._sse - one._sse + dst_corr, SECS_PER_DAY))
            > two._sse - info.transition
        ):
            logger.debug(
                "Forward transition correction of %+d:%02d",
                -dst_h_corr,
                abs(dst_m_corr),
            )
            h -= dst_h_corr
            i -= dst_m_corr
    elif two._sse - one._sse >= SECS_PER_DAY:
        # Multi-day spans ending just before a transition
        info = tz.offset_info(two._sse - two._z)
        if info is not None and info.transition is not None:
            dst_corr = one._z - info.offset
            if info.transition - dst_corr <= two._sse < info.transition:
                logger.debug(
                    "Span ends %ds before a transition; counting 24 hours",
                    info.transition - two._sse,
                )
                d -= 1
                h = 24

    return Interval._from_diff((y, m, d, h, i, s, us), invert, total_days)


def _diff_across_zones(a: CivilInstant, b: CivilInstant) -> Interval:
    one, two, invert = _order(a, b)
    total_days = _diff_days(one, two)
    # Read the later instant on the clock of the earlier one
    zone = (
        FixedOffset(one._z) if isinstance(one._zone, NamedZone) else one._zone
    )
    two = calendar_from_epoch(
        CivilInstant._unchecked(two._fields(), two._sse, 0, False, zone)
    )
    fields = normalize_interval(two, *_raw_difference(one, two))
    return Interval._from_diff(fields, invert, total_days)


def diff(a: CivilInstant, b: CivilInstant, /) -> Interval:
    """The calendar interval from ``a`` until ``b``.

    The result is normalized, with ``invert=True`` if ``b`` comes first.
    For two instants in the same named zone, the result counts wall-clock
    differences, corrected for any DST transition between the two.

    >>> a = CivilInstant(2023, 3, 12, 1, 30, tz="America/New_York")
    >>> b = CivilInstant(2023, 3, 12, 3, 30, tz="America/New_York")
    >>> diff(a, b)
    Interval(hours=1, total_days=0)
    """
    if not (isinstance(a, CivilInstant) and isinstance(b, CivilInstant)):
        raise TypeError("diff() requires two CivilInstant arguments")
    if _same_named_zone(a, b):
        return _diff_same_zone(a, b)
    return _diff_across_zones(a, b)


# ==================================================================
# Shifting
# ==================================================================


def _relative_for(delta: Delta, bias: int) -> _Relative:
    if isinstance(delta, Interval):
        return delta._signed(bias)
    elif isinstance(delta, (WeekdayRelative, SpecialRelative)):
        return delta if bias > 0 else -delta
    raise TypeError(f"Expected an Interval or relative, got {delta!r}")


def add(t: CivilInstant, delta: Delta, /) -> CivilInstant:
    """Add a delta by calendar field arithmetic, then resolve the result
    in the zone of ``t``. The wall-clock time is kept where it exists, so
    adding 24 hours across a DST change may take 23 or 25 hours.

    >>> t = CivilInstant(2023, 1, 31, 12, tz="Europe/Amsterdam")
    >>> add(t, Interval(months=1))
    CivilInstant(2023-03-03 12:00:00+01:00[Europe/Amsterdam])
    """
    return calendar_from_epoch(
        epoch_from_calendar(t, _relative_for(delta, 1))
    )


def sub(t: CivilInstant, delta: Delta, /) -> CivilInstant:
    """Subtract a delta the way :func:`add` adds it"""
    return calendar_from_epoch(
        epoch_from_calendar(t, _relative_for(delta, -1))
    )


def _shift_wall(t: CivilInstant, delta: Delta, bias: int) -> CivilInstant:
    if not isinstance(delta, Interval):
        return calendar_from_epoch(
            epoch_from_calendar(t, _relative_for(delta, bias))
        )

    y, m, d, h, i, s, us = delta._signed(bias)
    if y or m or d:
        t = epoch_from_calendar(t, (y, m, d, 0, 0, 0, 0))

    us, s = reduce_microseconds(us, s)
    us, carry = reduce_microseconds(t._microsecond + us, 0)
    sse = t._sse + hms_to_seconds(h, i, s) + carry
    return calendar_from_epoch(t._with_epoch(sse, us))


def add_wall(t: CivilInstant, delta: Delta, /) -> CivilInstant:
    """Add the date part of a delta on the calendar, and the time part as
    elapsed seconds. Adding 24 hours always takes exactly 24 hours.

    >>> t = CivilInstant(2023, 3, 11, 12, tz="America/New_York")
    >>> add_wall(t, Interval(hours=24))
    CivilInstant(2023-03-12 13:00:00-04:00[America/New_York])
    """
    return _shift_wall(t, delta, 1)


def sub_wall(t: CivilInstant, delta: Delta, /) -> CivilInstant:
    """Subtract a delta the way :func:`add_wall` adds it"""
    return _shift_wall(t, delta, -1)


_SHIFTS: dict[
    tuple[str, str], Callable[[CivilInstant, Delta], CivilInstant]
] = {
    ("absolute", "add"): add,
    ("absolute", "sub"): sub,
    ("wall", "add"): add_wall,
    ("wall", "sub"): sub_wall,
}


def apply(
    t: CivilInstant,
    delta: Delta,
    /,
    mode: Literal["absolute", "wall"] = "absolute",
    direction: Literal["add", "sub"] = "add",
) -> CivilInstant:
    """Shift an instant by a delta, choosing the mode and direction
    by name. Mostly useful when these are configuration values."""
    try:
        shift = _SHIFTS[mode, direction]
    except KeyError:
        raise ValueError(
            f"Invalid mode or direction: {mode!r}, {direction!r}"
        ) from None
    return shift(t, delta)


# We expose the public members in the root of the module.
# For clarity, we remove the "_core" part from the names,
# since this is an implementation detail.
for name in __all__:
    member = locals()[name]
    if getattr(member, "__module__", None) == __name__:  # pragma: no branch
        member.__module__ = "wallclock"

# clear up loop variables so they don't leak into the namespace
del name
del member

# disable further subclassing
final(_ImmutableBase)
