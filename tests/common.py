import struct
from datetime import datetime, timezone
from functools import partial

from wallclock import Abbreviation, CivilInstant, FixedOffset

NYC = "America/New_York"
AMS = "Europe/Amsterdam"
# The POSIX TZ string for the New York timezone.
NYC_TZ_POSIX = "EST5EDT,M3.2.0,M11.1.0"

UTC = FixedOffset(0)
EST = Abbreviation("EST", -5 * 3600)
EDT = Abbreviation("EDT", -5 * 3600, dst=True)

nyc = partial(CivilInstant, tz=NYC)
ams = partial(CivilInstant, tz=AMS)
utc = partial(CivilInstant, tz=UTC)


def mk_epoch(
    year: int,
    month: int,
    day: int,
    hour: int = 0,
    minute: int = 0,
    second: int = 0,
) -> int:
    dt = datetime(
        year, month, day, hour, minute, second, tzinfo=timezone.utc
    )
    return int(dt.timestamp())


def make_tzif(
    transitions: list[tuple[int, int]],
    ttinfos: list[tuple[int, bool]],
    footer: bytes = b"",
    version: bytes = b"2",
) -> bytes:
    """Build TZif file contents from (epoch, type index) transitions and
    (utc offset, is_dst) types. Version ``b"\\x00"`` gives a v1 file."""
    chars = b"X\x00"

    def block(time_format: str) -> bytes:
        counts = struct.pack(
            ">6i", 0, 0, 0, len(transitions), len(ttinfos), len(chars)
        )
        return (
            b"TZif"
            + version
            + b"\x00" * 15
            + counts
            + b"".join(
                struct.pack(f">{time_format}", t) for t, _ in transitions
            )
            + bytes(idx for _, idx in transitions)
            + b"".join(
                struct.pack(">ibB", offset, dst, 0) for offset, dst in ttinfos
            )
            + chars
        )

    if version == b"\x00":
        return block("i")
    return block("i") + block("q") + b"\n" + footer + b"\n"


# A New York-like zone with explicit transitions for 2023 only
NYC_2023_TZIF = make_tzif(
    transitions=[(mk_epoch(2023, 3, 12, 7), 1), (mk_epoch(2023, 11, 5, 6), 0)],
    ttinfos=[(-5 * 3600, False), (-4 * 3600, True)],
    footer=NYC_TZ_POSIX.encode(),
)


class AlwaysEqual:
    def __eq__(self, _):
        return True


class NeverEqual:
    def __eq__(self, _):
        return False


class AlwaysLarger:
    def __lt__(self, _):
        return False

    def __le__(self, _):
        return False

    def __gt__(self, _):
        return True

    def __ge__(self, _):
        return True


class AlwaysSmaller:
    def __lt__(self, _):
        return True

    def __le__(self, _):
        return True

    def __gt__(self, _):
        return False

    def __ge__(self, _):
        return False
