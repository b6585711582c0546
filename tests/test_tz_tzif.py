import os

import pytest

from wallclock._tz import get_tz
from wallclock._tz.common import Fold, Gap, OffsetInfo, Unambiguous
from wallclock._tz.posix import TzStr
from wallclock._tz.tzif import (
    EPOCH_SECS_MAX,
    EPOCH_SECS_MIN,
    TimeZone,
    bisect,
    clamp_epoch_secs,
)

from .common import NYC_2023_TZIF, NYC_TZ_POSIX, make_tzif, mk_epoch

EST = -5 * 3600
EDT = -4 * 3600

SPRING_2023 = mk_epoch(2023, 3, 12, 7)
FALL_2023 = mk_epoch(2023, 11, 5, 6)


class TestBasicParsing:

    @pytest.mark.parametrize(
        "data", [b"", b"TZi", b"this-is-not-tzif-file", b"TZif2"]
    )
    def test_no_magic_header(self, data):
        with pytest.raises(ValueError, match="Invalid header value"):
            TimeZone.parse_tzif(data)

    def test_binary_search(self):
        arr = [(4, 10), (9, 20), (12, 30), (16, 40), (24, 50)]

        # middle of the array
        assert bisect(arr, 10) == 2
        assert bisect(arr, 12) == 3
        assert bisect(arr, 15) == 3

        # end of the array
        assert bisect(arr, 24) is None
        assert bisect(arr, 30) is None

        # start of the array
        assert bisect(arr, -99) == 0
        assert bisect(arr, 4) == 1

        assert bisect([], 25) is None

    def test_clamp(self):
        assert clamp_epoch_secs(EPOCH_SECS_MIN - 1) == EPOCH_SECS_MIN
        assert clamp_epoch_secs(EPOCH_SECS_MAX + 1) == EPOCH_SECS_MAX
        assert clamp_epoch_secs(0) == 0

    def test_v2_with_footer(self):
        tz = TimeZone.parse_tzif(NYC_2023_TZIF, "Test/NYC")
        assert tz.key == "Test/NYC"
        assert tz._end == TzStr.parse(NYC_TZ_POSIX)
        # the sentinel and two transitions
        assert len(tz._offsets_by_utc) == 3

    def test_v1(self):
        tz = TimeZone.parse_tzif(
            make_tzif(
                [(SPRING_2023, 1), (FALL_2023, 0)],
                [(EST, False), (EDT, True)],
                version=b"\x00",
            )
        )
        assert tz._end is None
        # after the last transition, the last offset is the best guess
        assert tz.offset_for_instant(mk_epoch(2030, 7, 1)) == (EST, False)
        assert tz.offset_info(mk_epoch(2030, 7, 1)) == OffsetInfo(
            EST, FALL_2023, False
        )

    def test_fixed(self):
        tz = TimeZone.parse_tzif(
            make_tzif([], [(13 * 3600, False)], b"<+13>-13")
        )
        assert tz.offset_for_instant(2216250001) == (13 * 3600, False)
        assert tz.ambiguity_for_local(2216250000) == Unambiguous(13 * 3600)
        # no transitions at all
        assert tz.offset_info(2216250001) is None


NYC_2023 = TimeZone.parse_tzif(NYC_2023_TZIF, "Test/NYC")


class TestLookups:

    @pytest.mark.parametrize(
        "t, expected",
        [
            (mk_epoch(1900, 1, 1), (EST, False)),
            (SPRING_2023 - 1, (EST, False)),
            (SPRING_2023, (EDT, True)),
            (FALL_2023 - 1, (EDT, True)),
            (FALL_2023, (EST, False)),
            # from the POSIX TZ string
            (mk_epoch(2024, 3, 10, 6, 59, 59), (EST, False)),
            (mk_epoch(2024, 3, 10, 7), (EDT, True)),
            (mk_epoch(2040, 11, 4, 6), (EST, False)),
        ],
    )
    def test_offset_for_instant(self, t, expected):
        assert NYC_2023.offset_for_instant(t) == expected

    @pytest.mark.parametrize(
        "t, expected",
        [
            # before the first transition
            (mk_epoch(2023, 1, 1), None),
            (SPRING_2023 - 1, None),
            (SPRING_2023, OffsetInfo(EDT, SPRING_2023, True)),
            (mk_epoch(2023, 7, 1), OffsetInfo(EDT, SPRING_2023, True)),
            # after the table: the rule takes over
            (FALL_2023, OffsetInfo(EST, FALL_2023, False)),
            (mk_epoch(2023, 12, 1), OffsetInfo(EST, FALL_2023, False)),
            (mk_epoch(2024, 1, 15), OffsetInfo(EST, FALL_2023, False)),
            (
                mk_epoch(2024, 7, 1),
                OffsetInfo(EDT, mk_epoch(2024, 3, 10, 7), True),
            ),
        ],
    )
    def test_offset_info(self, t, expected):
        assert NYC_2023.offset_info(t) == expected

    @pytest.mark.parametrize(
        "local, expected",
        [
            (mk_epoch(2023, 3, 12, 1, 59, 59), Unambiguous(EST)),
            (mk_epoch(2023, 3, 12, 2), Gap(EDT, EST)),
            (mk_epoch(2023, 3, 12, 2, 59, 59), Gap(EDT, EST)),
            (mk_epoch(2023, 3, 12, 3), Unambiguous(EDT)),
            (mk_epoch(2023, 11, 5, 0, 59, 59), Unambiguous(EDT)),
            (mk_epoch(2023, 11, 5, 1), Fold(EDT, EST)),
            (mk_epoch(2023, 11, 5, 1, 59, 59), Fold(EDT, EST)),
            (mk_epoch(2023, 11, 5, 2), Unambiguous(EST)),
            # from the POSIX TZ string
            (mk_epoch(2024, 3, 10, 2, 30), Gap(EDT, EST)),
            (mk_epoch(2024, 11, 3, 1, 30), Fold(EDT, EST)),
        ],
    )
    def test_ambiguity_for_local(self, local, expected):
        assert NYC_2023.ambiguity_for_local(local) == expected

    def test_gap_offsets_resolve_around_it(self):
        local = mk_epoch(2023, 3, 12, 2, 30)
        gap = NYC_2023.ambiguity_for_local(local)
        assert isinstance(gap, Gap)
        assert local - gap.before < SPRING_2023 <= local - gap.after

    def test_posix_only(self):
        tz = TimeZone.parse_posix(NYC_TZ_POSIX)
        assert tz.offset_info(mk_epoch(2023, 7, 1)) == OffsetInfo(
            EDT, SPRING_2023, True
        )
        assert tz.ambiguity_for_local(mk_epoch(2023, 3, 12, 2, 30)) == Gap(
            EDT, EST
        )


def test_equality():
    a = TimeZone.parse_tzif(NYC_2023_TZIF, "Test/NYC")
    b = TimeZone.parse_tzif(NYC_2023_TZIF, "Test/NYC")
    assert a == b
    assert hash(a) == hash(b)
    assert a != TimeZone.parse_tzif(NYC_2023_TZIF, "Other/NYC")
    assert a != TimeZone.parse_posix(NYC_TZ_POSIX, "Test/NYC")
    assert repr(a) == "TimeZone('Test/NYC')"


@pytest.mark.parametrize(
    "key, t, offset, is_dst",
    [
        ("America/New_York", mk_epoch(2023, 3, 12, 6, 59, 59), EST, False),
        ("America/New_York", mk_epoch(2023, 3, 12, 7), EDT, True),
        ("Europe/Amsterdam", mk_epoch(2023, 10, 29, 0, 59, 59), 7200, True),
        ("Europe/Amsterdam", mk_epoch(2023, 10, 29, 1), 3600, False),
        ("Australia/Sydney", mk_epoch(2023, 1, 1), 11 * 3600, True),
    ],
)
def test_real_zones(key, t, offset, is_dst):
    tz = get_tz(key)
    assert tz.offset_for_instant(t) == (offset, is_dst)
    info = tz.offset_info(t)
    assert info is not None
    assert info.offset == offset
    assert info.is_dst is is_dst
    assert info.transition is not None and info.transition <= t


def test_smoke():
    """Parse all system TZif files without crashing"""
    tzdir = "/usr/share/zoneinfo"

    for root, _, files in os.walk(tzdir):
        # Special directories we should ignore
        if "right/" in root or "posix/" in root:
            continue

        for file in files:
            path = os.path.join(root, file)

            try:
                with open(path, "rb") as f:
                    data = f.read()
            except (PermissionError, IsADirectoryError):
                continue

            if not data.startswith(b"TZif"):
                continue

            assert TimeZone.parse_tzif(data) is not None
