"""POSIX TZ strings, as found in the footer of TZif files.

They describe the rule that applies after the last explicit transition,
e.g. ``EST5EDT,M3.2.0,M11.1.0``.
"""

from __future__ import annotations

import calendar
from datetime import date, timedelta
from typing import Optional, Union

from .common import Ambiguity, Fold, Gap, OffsetInfo, Unambiguous

DEFAULT_DST = 3600
DEFAULT_RULE_TIME = 2 * 3600
MAX_OFFSET = 24 * 3600
Weekday = int  # Different than usual! Sunday=0, Saturday=6

_EPOCH_ORDINAL = 719163  # date(1970, 1, 1).toordinal()


def year_for_epoch(ts: int) -> int:
    # fromtimestamp() fails on extreme values on some platforms,
    # the ordinal doesn't.
    return date.fromordinal(ts // 86400 + _EPOCH_ORDINAL).year


def epoch_for_date(d: date) -> int:
    return (d.toordinal() - _EPOCH_ORDINAL) * 86400


def _sunday_based(d: date) -> Weekday:
    return d.isoweekday() % 7


class LastWeekday:
    """``Mm.5.d``: the last given weekday of the month"""

    month: int
    weekday: Weekday

    __slots__ = ("month", "weekday")

    def __init__(self, month: int, weekday: Weekday):
        self.month = month
        self.weekday = weekday

    def apply(self, year: int) -> date:
        last = date(year, self.month, calendar.monthrange(year, self.month)[1])
        return last - timedelta((_sunday_based(last) - self.weekday) % 7)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LastWeekday):
            return NotImplemented  # pragma: no cover
        return self.month == other.month and self.weekday == other.weekday

    def __repr__(self) -> str:
        return f"LastWeekday({self.month}, {self.weekday})"


class NthWeekday:
    """``Mm.n.d``: the n-th (1-4) given weekday of the month"""

    month: int
    nth: int
    weekday: Weekday

    __slots__ = ("month", "nth", "weekday")

    def __init__(self, month: int, nth: int, weekday: Weekday):
        self.month = month
        self.nth = nth
        self.weekday = weekday

    def apply(self, year: int) -> date:
        first = date(year, self.month, 1)
        return first + timedelta(
            (self.weekday - _sunday_based(first)) % 7 + 7 * (self.nth - 1)
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NthWeekday):
            return NotImplemented  # pragma: no cover
        return (
            self.month == other.month
            and self.nth == other.nth
            and self.weekday == other.weekday
        )

    def __repr__(self) -> str:
        return f"NthWeekday({self.month}, {self.nth}, {self.weekday})"


class DayOfYear:
    """``n``: zero-based day of year, counting Feb 29. Stored one-based."""

    nth: int  # 1-366

    __slots__ = ("nth",)

    def __init__(self, nth: int):
        self.nth = nth

    def apply(self, year: int) -> date:
        return date(year, 1, 1) + timedelta(
            min(self.nth, 365 + calendar.isleap(year)) - 1
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DayOfYear):
            return NotImplemented  # pragma: no cover
        return self.nth == other.nth

    def __repr__(self) -> str:
        return f"DayOfYear({self.nth})"


class JulianDayOfYear:
    """``Jn``: one-based day of year, never counting Feb 29"""

    nth: int  # 1-365

    __slots__ = ("nth",)

    def __init__(self, nth: int):
        self.nth = nth

    def apply(self, year: int) -> date:
        skip_leap_day = calendar.isleap(year) and self.nth > 59
        return date(year, 1, 1) + timedelta(self.nth - 1 + skip_leap_day)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, JulianDayOfYear):
            return NotImplemented  # pragma: no cover
        return self.nth == other.nth

    def __repr__(self) -> str:
        return f"JulianDayOfYear({self.nth})"


Rule = Union[LastWeekday, NthWeekday, DayOfYear, JulianDayOfYear]


class Dst:
    offset: int
    start: tuple[Rule, int]
    end: tuple[Rule, int]

    __slots__ = ("offset", "start", "end")

    def __init__(
        self, offset: int, start: tuple[Rule, int], end: tuple[Rule, int]
    ):
        self.offset = offset
        self.start = start
        self.end = end

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Dst):
            return NotImplemented  # pragma: no cover
        return (
            self.offset == other.offset
            and self.start == other.start
            and self.end == other.end
        )

    def __repr__(self) -> str:
        return f"Dst(offset={self.offset}, start={self.start}, end={self.end})"


class TzStr:
    std: int
    dst: Optional[Dst]

    __slots__ = ("std", "dst")

    def __init__(self, std: int, dst: Optional[Dst] = None):
        self.std = std
        self.dst = dst

    def _local_bounds(self, year: int) -> tuple[int, int]:
        """Start and end of DST in the given year, in local epoch seconds
        (each expressed in the offset in effect just before it)"""
        assert self.dst is not None
        (start_rule, start_time), (end_rule, end_time) = (
            self.dst.start,
            self.dst.end,
        )
        return (
            epoch_for_date(start_rule.apply(year)) + start_time,
            epoch_for_date(end_rule.apply(year)) + end_time,
        )

    def _utc_bounds(self, year: int) -> tuple[int, int]:
        assert self.dst is not None
        start, end = self._local_bounds(year)
        return start - self.std, end - self.dst.offset

    def offset_info(self, epoch: int) -> OffsetInfo:
        """The offset period at the given exact time.
        The transition is unknown (``None``) for a rule without DST."""
        if self.dst is None:
            return OffsetInfo(self.std, None, False)

        std, dst = self.std, self.dst.offset
        # In theory the UTC year can differ from the local year here.
        # Transitions never happen around new year, so this is fine.
        year = year_for_epoch(epoch + std)
        start, end = self._utc_bounds(year)

        if start < end:  # northern hemisphere: DST within one year
            if start <= epoch < end:
                return OffsetInfo(dst, start, True)
            elif epoch >= end:
                return OffsetInfo(std, end, False)
            return OffsetInfo(std, self._prev_bound(year, 1), False)
        else:  # southern hemisphere: DST spans the new year
            if end <= epoch < start:
                return OffsetInfo(std, end, False)
            elif epoch >= start:
                return OffsetInfo(dst, start, True)
            return OffsetInfo(dst, self._prev_bound(year, 0), True)

    def _prev_bound(self, year: int, index: int) -> Optional[int]:
        if year <= 1:
            return None
        return self._utc_bounds(year - 1)[index]

    def offset_for_instant(self, epoch: int) -> int:
        return self.offset_info(epoch).offset

    # NOTE: `epoch` is the datetime in seconds since the LOCAL epoch.
    def ambiguity_for_local(self, epoch: int) -> Ambiguity:
        if self.dst is None:
            return Unambiguous(self.std)

        start, end = self._local_bounds(year_for_epoch(epoch))
        dst_offset = self.dst.offset

        if start < end:
            t1, t2 = start, end
            off1, off2 = self.std, dst_offset
        else:
            t1, t2 = end, start
            off1, off2 = dst_offset, self.std
        shift = off2 - off1

        if shift >= 0:
            if epoch < t1:
                return Unambiguous(off1)
            elif epoch < t1 + shift:
                return Gap(off2, off1)
            elif epoch < t2 - shift:
                return Unambiguous(off2)
            elif epoch < t2:
                return Fold(off2, off1)
            return Unambiguous(off1)
        else:
            if epoch < t1 + shift:
                return Unambiguous(off1)
            elif epoch < t1:
                return Fold(off1, off2)
            elif epoch < t2:
                return Unambiguous(off2)
            elif epoch < t2 - shift:
                return Gap(off1, off2)
            return Unambiguous(off1)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TzStr):
            return NotImplemented  # pragma: no cover
        return self.std == other.std and self.dst == other.dst

    def __repr__(self) -> str:
        if self.dst is None:
            return f"TzStr(std={self.std})"
        return f"TzStr(std={self.std}, dst={self.dst})"

    @classmethod
    def parse(cls, s: str) -> TzStr:
        if not s.isascii():
            raise ValueError(
                "Invalid POSIX TZ string: non-ASCII characters found"
            )
        reader = _Reader(s)
        reader.skip_name()
        std = reader.offset()

        if reader.at_end():
            return cls(std)

        reader.skip_name()
        if reader.peek() == ",":
            dst = std + DEFAULT_DST
            if dst >= MAX_OFFSET:
                raise ValueError(
                    "Invalid POSIX TZ string: DST offset out of range"
                )
        else:
            dst = reader.offset()
        reader.expect(",")
        start = reader.rule()
        reader.expect(",")
        end = reader.rule()

        if not reader.at_end():
            raise ValueError(
                "Invalid POSIX TZ string: "
                f"unexpected trailing {reader.rest()!r}"
            )
        return cls(std, Dst(dst, start, end))


class _Reader:
    """Cursor over a POSIX TZ string"""

    __slots__ = ("_s", "_pos")

    def __init__(self, s: str):
        self._s = s
        self._pos = 0

    def peek(self, n: int = 1) -> str:
        return self._s[self._pos : self._pos + n]

    def rest(self) -> str:
        return self._s[self._pos :]

    def at_end(self) -> bool:
        return self._pos >= len(self._s)

    def expect(self, char: str) -> None:
        if self.peek() != char:
            raise ValueError(f"Invalid TZ string: expected {char!r}")
        self._pos += 1

    def skip_name(self) -> None:
        if self.peek() == "<":
            stop = self._s.find(">", self._pos) + 1
            if stop < self._pos + 3:  # not found or empty name
                raise ValueError("Invalid TZ string: missing or empty name")
        else:
            stop = self._pos
            while stop < len(self._s) and self._s[stop].isalpha():
                stop += 1
            if stop == len(self._s):
                # a name must be followed by an offset
                raise ValueError("Invalid TZ string: missing or empty name")
            if stop == self._pos:
                raise ValueError("Invalid TZ string: invalid name")
        self._pos = stop

    def digits(self, maximum: int) -> int:
        """Read at least one and at most `maximum` digits"""
        start = self._pos
        while (
            self._pos - start < maximum
            and self._pos < len(self._s)
            and self._s[self._pos].isdigit()
        ):
            self._pos += 1
        if self._pos == start:
            raise ValueError(f"Invalid TZ string: expected digit at {start}")
        return int(self._s[start : self._pos])

    def two_digits_00_59(self) -> int:
        chunk = self.peek(2)
        if len(chunk) < 2 or not chunk.isdigit():
            raise ValueError(
                f"Invalid TZ string: expected 2 digits, got {self.rest()!r}"
            )
        if (value := int(chunk)) > 59:
            raise ValueError(
                f"Invalid TZ string: expected 00-59, got {chunk!r}"
            )
        self._pos += 2
        return value

    def hms(self) -> int:
        """``[+-]h[hh][:mm[:ss]]`` in seconds"""
        sign = 1
        if (char := self.peek()) in ("+", "-"):
            self._pos += 1
            sign = -1 if char == "-" else 1

        total = self.digits(3) * 3600
        if self.peek() == ":":
            self._pos += 1
            total += self.two_digits_00_59() * 60
            if self.peek() == ":":
                self._pos += 1
                total += self.two_digits_00_59()
        return sign * total

    def offset(self) -> int:
        seconds = self.hms()
        if abs(seconds) >= MAX_OFFSET:
            raise ValueError("Invalid POSIX TZ string: offset out of range")
        # POSIX offsets are west-positive
        return -seconds

    def rule(self) -> tuple[Rule, int]:
        rule: Rule
        if self.peek() == "M":
            self._pos += 1
            month = self.digits(2)
            self.expect(".")
            week = self.digits(1)
            self.expect(".")
            weekday = self.digits(1)
            if not 1 <= month <= 12 or week < 1 or weekday > 6:
                raise ValueError("Invalid DST rule")
            if week < 5:
                rule = NthWeekday(month, week, weekday)
            elif week == 5:
                rule = LastWeekday(month, weekday)
            else:
                raise ValueError(f"Invalid week number: {week}")
        elif self.peek() == "J":
            self._pos += 1
            nth = self.digits(3)
            if not 1 <= nth <= 365:
                raise ValueError(f"Invalid Julian day of year: {nth}")
            rule = JulianDayOfYear(nth)
        else:
            nth = self.digits(3)
            if nth > 365:
                raise ValueError(f"Invalid day of year: {nth}")
            rule = DayOfYear(nth + 1)

        if self.peek() == "/":
            self._pos += 1
            return rule, self.hms()
        return rule, DEFAULT_RULE_TIME
