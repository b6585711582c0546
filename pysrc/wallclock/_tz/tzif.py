"""Parsing of TZif files, and offset lookups in the result"""

from __future__ import annotations

import struct
from io import BytesIO
from typing import IO, Optional, Sequence, final

from .common import Ambiguity, Fold, Gap, OffsetInfo, Unambiguous
from .posix import TzStr

EpochSecs = int
Offset = int
OffsetDelta = int
IsDst = bool

EPOCH_SECS_MIN = -62135596800  # 0001-01-01T00:00:00Z
EPOCH_SECS_MAX = 253402300799  # 9999-12-31T23:59:59Z


@final
class TimeZone:
    """A complete timezone definition, enough to represent a TZif file.

    Can also be used to represent a POSIX TZ string (if the transition arrays
    are empty) or an anonymous timezone (if the `key` field is set to `None`).
    """

    __slots__ = (
        "__weakref__",
        "key",
        "_offsets_by_utc",
        "_offsets_by_local",
        "_end",
    )

    # The IANA tz ID (e.g. "America/New_York"). Not part of the file itself.
    key: Optional[str]

    # Read Sequence[(X, Y, D)] as "FROM time X onwards (epoch seconds) the
    # offset is Y, and D tells whether that's daylight saving time".
    # The first entry is a sentinel at EPOCH_SECS_MIN carrying the offset
    # in effect before the first recorded transition.
    _offsets_by_utc: tuple[tuple[EpochSecs, Offset, IsDst], ...]

    # For local -> UTC, the transition may be ambiguous.
    # Read Sequence[(X, (Y, Z))] as "UNTIL time X (local epoch seconds)
    # the offset is Y. At this point it shifts by Z".
    _offsets_by_local: tuple[tuple[EpochSecs, tuple[Offset, OffsetDelta]], ...]

    # Invariant: if the POSIX TZ string isn't given, there is at least
    # one entry in each of the above.
    _end: Optional[TzStr]

    def __init__(
        self,
        key: Optional[str],
        _offsets_by_utc: tuple[tuple[EpochSecs, Offset, IsDst], ...],
        _offsets_by_local: tuple[
            tuple[EpochSecs, tuple[Offset, OffsetDelta]], ...
        ],
        _end: Optional[TzStr] = None,
    ):
        self.key = key
        self._offsets_by_utc = _offsets_by_utc
        self._offsets_by_local = _offsets_by_local
        self._end = _end

    def offset_for_instant(self, t: EpochSecs) -> tuple[Offset, IsDst]:
        """The UTC offset and DST flag at the given exact time.
        Always succeeds."""
        idx = bisect(self._offsets_by_utc, t)
        if idx is not None:
            _, offset, is_dst = self._offsets_by_utc[max(0, idx - 1)]
            return offset, is_dst

        if self._end is not None:
            info = self._end.offset_info(t)
            return info.offset, info.is_dst
        # No POSIX TZ string: the last offset is our best guess
        assert self._offsets_by_utc  # ensured during parsing
        _, offset, is_dst = self._offsets_by_utc[-1]
        return offset, is_dst

    def offset_info(self, t: EpochSecs) -> Optional[OffsetInfo]:
        """The offset period at the given exact time, including the moment
        it started. ``None`` if ``t`` precedes the first recorded transition,
        or if the zone has no transitions at all."""
        idx = bisect(self._offsets_by_utc, t)
        if idx is not None:
            if idx <= 1:  # still in the sentinel period
                return None
            start, offset, is_dst = self._offsets_by_utc[idx - 1]
            return OffsetInfo(offset, start, is_dst)

        last_explicit = (
            self._offsets_by_utc[-1] if len(self._offsets_by_utc) > 1 else None
        )
        if self._end is not None:
            info = self._end.offset_info(t)
            if info.transition is not None and (
                last_explicit is None or info.transition >= last_explicit[0]
            ):
                return info
            elif last_explicit is None:
                return None
            # The rule's transition predates the table: the table wins
            return OffsetInfo(info.offset, last_explicit[0], info.is_dst)
        elif last_explicit is None:
            return None
        start, offset, is_dst = last_explicit
        return OffsetInfo(offset, start, is_dst)

    def ambiguity_for_local(self, t: EpochSecs) -> Ambiguity:
        """Classify the given local time (expressed in epoch seconds)"""
        idx = bisect(self._offsets_by_local, t)
        if idx is not None:
            next_transition, (offset, change) = self._offsets_by_local[idx]
            # Are we in the ambiguous region just before the transition?
            if t < next_transition - abs(change) or change == 0:
                return Unambiguous(offset)
            elif change < 0:
                return Fold(offset, offset + change)
            return Gap(offset + change, offset)

        if self._end is not None:
            return self._end.ambiguity_for_local(t)

        # No POSIX TZ string: the last offset is our best guess
        assert self._offsets_by_local or self._offsets_by_utc
        if self._offsets_by_local:
            _, (prev_offset, last_shift) = self._offsets_by_local[-1]
            return Unambiguous(prev_offset + last_shift)
        return Unambiguous(self._offsets_by_utc[-1][1])

    # NOTE: this equality check needs to be fast, since it's used
    # to decide whether two instants share a zone.
    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        # Different instances may represent the same zone after cache clears
        elif type(other) is TimeZone:
            return (
                self.key == other.key
                and self._offsets_by_utc == other._offsets_by_utc
                and self._offsets_by_local == other._offsets_by_local
                and self._end == other._end
            )
        return NotImplemented  # pragma: no cover

    def __hash__(self) -> int:
        return hash(self.key)

    def __repr__(self) -> str:
        return f"TimeZone({self.key!r})"

    @classmethod
    def parse_posix(cls, s: str, key: Optional[str] = None) -> TimeZone:
        """Create a TimeZone from a POSIX TZ string"""
        return TimeZone(
            key=key,
            _offsets_by_utc=(),
            _offsets_by_local=(),
            _end=TzStr.parse(s),
        )

    @classmethod
    def parse_tzif(cls, data: bytes, key: Optional[str] = None) -> TimeZone:
        """Create a TimeZone from TZif file data"""
        read = BytesIO(data)
        header = _parse_header(read)
        return _parse_content(header, read, key)


def bisect(
    arr: Sequence[tuple[EpochSecs, object]], x: EpochSecs
) -> Optional[int]:
    """The index of the first entry starting after ``x``.
    ``None`` if there is no such entry.
    """
    left, right = 0, len(arr)
    while left < right:
        mid = (left + right) // 2
        if x >= arr[mid][0]:
            left = mid + 1
        else:
            right = mid
    return left if left != len(arr) else None


def clamp_epoch_secs(value: int) -> EpochSecs:
    return max(EPOCH_SECS_MIN, min(EPOCH_SECS_MAX, value))


class Header:
    """TZif file header"""

    __slots__ = (
        "version",
        "isutcnt",
        "isstdcnt",
        "leapcnt",
        "timecnt",
        "typecnt",
        "charcnt",
    )

    def __init__(
        self,
        version: int,
        isutcnt: int,
        isstdcnt: int,
        leapcnt: int,
        timecnt: int,
        typecnt: int,
        charcnt: int,
    ):
        self.version = version
        self.isutcnt = isutcnt
        self.isstdcnt = isstdcnt
        self.leapcnt = leapcnt
        self.timecnt = timecnt
        self.typecnt = typecnt
        self.charcnt = charcnt

    def v1_data_size(self) -> int:
        return (
            self.timecnt * 5
            + self.typecnt * 6
            + self.charcnt
            + self.leapcnt * 8
            + self.isstdcnt
            + self.isutcnt
        )


def _parse_header(data: IO[bytes]) -> Header:
    if data.read(4) != b"TZif":
        raise ValueError("Invalid header value")

    version_byte = data.read(1)
    if version_byte == b"\x00":
        version = 1
    elif version_byte.isdigit():
        version = int(version_byte)
    else:
        raise ValueError("Invalid header value")  # pragma: no cover

    data.read(15)  # reserved
    counts = data.read(24)
    if len(counts) != 24:
        raise ValueError("Invalid header value")
    return Header(version, *struct.unpack(">6i", counts))


def _parse_content(
    header: Header, data: IO[bytes], key: Optional[str]
) -> TimeZone:
    if header.version >= 2:
        # The v1 section is followed by a complete 64-bit v2 section
        data.read(header.v1_data_size())
        header = _parse_header(data)
        transition_times: Sequence[EpochSecs] = [
            clamp_epoch_secs(t)
            for t in struct.unpack(
                f">{header.timecnt}q", data.read(8 * header.timecnt)
            )
        ]
    else:
        transition_times = struct.unpack(
            f">{header.timecnt}i", data.read(4 * header.timecnt)
        )

    type_indices = list(data.read(header.timecnt))
    ttinfos = [
        (utoff, bool(isdst))
        for utoff, isdst, _ in struct.iter_unpack(
            ">ibB", data.read(6 * header.typecnt)
        )
    ]
    data.read(header.charcnt)  # abbreviations aren't used

    offsets_by_utc = _load_transitions(transition_times, ttinfos, type_indices)

    end = None
    if header.version >= 2:
        # Skip leap seconds, indicators, and the newline before the TZ string
        data.read(header.isutcnt + header.isstdcnt + header.leapcnt * 12 + 1)
        tz_string, *_ = data.read().split(b"\n", 1)
        if tz_string:
            end = TzStr.parse(tz_string.decode("ascii"))

    if not (end or offsets_by_utc):
        raise ValueError("No transition data in file")  # pragma: no cover

    return TimeZone(
        key=key,
        _offsets_by_utc=tuple(offsets_by_utc),
        _offsets_by_local=tuple(_local_transitions(offsets_by_utc)),
        _end=end,
    )


def _load_transitions(
    transition_times: Sequence[EpochSecs],
    ttinfos: Sequence[tuple[Offset, IsDst]],
    indices: Sequence[int],
) -> list[tuple[EpochSecs, Offset, IsDst]]:
    if not ttinfos:
        return []  # pragma: no cover
    return [
        # The sentinel: the offset before the first transition
        (EPOCH_SECS_MIN, *ttinfos[0]),
        *(
            (epoch, *ttinfos[idx])
            for idx, epoch in zip(indices, transition_times)
        ),
    ]


# See the TimeZone class definition for explanation of these data structures
def _local_transitions(
    transitions: Sequence[tuple[EpochSecs, Offset, IsDst]],
) -> list[tuple[EpochSecs, tuple[Offset, OffsetDelta]]]:
    result: list[tuple[EpochSecs, tuple[Offset, OffsetDelta]]] = []
    if not transitions:
        return result

    (_, offset_prev, _), *remaining = transitions
    for epoch, offset, _ in remaining:
        # NOTE: we don't check for "impossible" gaps or folds
        local_time = clamp_epoch_secs(epoch + max(offset_prev, offset))
        result.append((local_time, (offset_prev, offset - offset_prev)))
        offset_prev = offset

    return result
