import pytest

from wallclock import (
    FRIDAY,
    MONDAY,
    CivilInstant,
    Interval,
    SpecialRelative,
    Weekday,
    WeekdayRelative,
)
from wallclock._core import (
    calendar_from_epoch,
    epoch_from_calendar,
    normalize_fields,
    normalize_interval,
)

from .common import NYC, UTC, mk_epoch, nyc, utc


class TestInterval:

    def test_defaults(self):
        iv = Interval()
        assert iv.years == iv.months == iv.days == 0
        assert iv.hours == iv.minutes == iv.seconds == iv.microseconds == 0
        assert not iv.invert
        assert iv.total_days is None

    def test_components_are_kept_as_given(self):
        iv = Interval(hours=-30, minutes=90, microseconds=2_000_000)
        assert iv.hours == -30
        assert iv.minutes == 90
        assert iv.microseconds == 2_000_000

    def test_invalid(self):
        with pytest.raises(TypeError):
            Interval(hours=1.5)  # type: ignore[arg-type]
        with pytest.raises(TypeError):
            Interval(1)  # type: ignore[misc]

    def test_negation(self):
        iv = Interval(days=1, hours=2)
        neg = -iv
        assert neg.invert
        assert (neg.days, neg.hours) == (1, 2)
        assert -neg == iv
        assert neg != iv

    def test_equality(self):
        assert Interval(hours=1) == Interval(hours=1)
        assert Interval(hours=1) != Interval(minutes=60)
        assert Interval(hours=1) != Interval(hours=1, invert=True)
        assert hash(Interval(hours=1)) == hash(Interval(hours=1))
        assert Interval() != 0

    def test_equality_ignores_total_days(self):
        iv = nyc(2023, 1, 1).diff(nyc(2023, 1, 3))
        assert iv.total_days == 2
        assert iv == Interval(days=2)

    def test_repr(self):
        assert repr(Interval()) == "Interval()"
        assert (
            repr(Interval(years=1, seconds=-5, invert=True))
            == "Interval(years=1, seconds=-5, invert=True)"
        )
        assert (
            repr(utc(2023, 1, 1).diff(utc(2023, 1, 1, 6)))
            == "Interval(hours=6, total_days=0)"
        )


class TestRelatives:

    def test_weekday(self):
        r = WeekdayRelative(FRIDAY, 2)
        assert r.weekday is Weekday.FRIDAY
        assert r.count == 2
        assert -r == WeekdayRelative(FRIDAY, -2)
        assert WeekdayRelative(MONDAY).count == 1
        assert repr(r) == "WeekdayRelative(FRIDAY, 2)"

    def test_weekday_invalid(self):
        with pytest.raises(TypeError):
            WeekdayRelative(5)  # type: ignore[arg-type]
        with pytest.raises(TypeError):
            WeekdayRelative(FRIDAY, 1.0)  # type: ignore[arg-type]

    def test_special(self):
        assert SpecialRelative.weekdays(3) == SpecialRelative("weekdays", 3)
        assert SpecialRelative.first_day_of().amount == 0
        assert SpecialRelative.last_day_of(months=2).kind == "last_day_of"
        assert -SpecialRelative.weekdays(3) == SpecialRelative.weekdays(-3)
        assert (
            repr(SpecialRelative.first_day_of(1))
            == "SpecialRelative('first_day_of', 1)"
        )

    def test_special_invalid(self):
        with pytest.raises(ValueError, match="kind"):
            SpecialRelative("fortnights", 1)  # type: ignore[arg-type]
        with pytest.raises(TypeError):
            SpecialRelative.weekdays(1.5)  # type: ignore[arg-type]


class TestNormalizeFields:

    @pytest.mark.parametrize(
        "fields, expected",
        [
            ((2023, 1, 1, 0, 0, 0, 0), (2023, 1, 1, 0, 0, 0, 0)),
            # overflow through all fields
            ((2023, 12, 31, 23, 59, 59, 1_000_000), (2024, 1, 1, 0, 0, 0, 0)),
            # underflow through all fields
            ((2024, 1, 1, 0, 0, 0, -1), (2023, 12, 31, 23, 59, 59, 999_999)),
            # days overflow into the following month
            ((2023, 2, 31, 0, 0, 0, 0), (2023, 3, 3, 0, 0, 0, 0)),
            ((2024, 2, 31, 0, 0, 0, 0), (2024, 3, 2, 0, 0, 0, 0)),
            ((2023, 1, 0, 0, 0, 0, 0), (2022, 12, 31, 0, 0, 0, 0)),
            ((2023, 3, -30, 0, 0, 0, 0), (2023, 1, 29, 0, 0, 0, 0)),
            # months carry into years
            ((2023, 14, 1, 0, 0, 0, 0), (2024, 2, 1, 0, 0, 0, 0)),
            ((2023, 0, 15, 0, 0, 0, 0), (2022, 12, 15, 0, 0, 0, 0)),
            ((2023, -12, 15, 0, 0, 0, 0), (2021, 12, 15, 0, 0, 0, 0)),
            ((2023, 1, 1, 0, 0, 86_400 * 366, 0), (2024, 1, 2, 0, 0, 0, 0)),
            ((2023, 1, 1, -25, 0, 0, 0), (2022, 12, 30, 23, 0, 0, 0)),
        ],
    )
    def test_examples(self, fields, expected):
        assert normalize_fields(*fields) == expected

    def test_out_of_range(self):
        with pytest.raises(ValueError, match="range"):
            normalize_fields(9999, 12, 31, 24, 0, 0, 0)


class TestNormalizeInterval:

    @pytest.mark.parametrize(
        "base, fields, expected",
        [
            # already normal
            ((2023, 3, 1), (1, 2, 3, 4, 5, 6, 7), (1, 2, 3, 4, 5, 6, 7)),
            # borrow from the lower fields
            ((2023, 3, 1), (0, 0, 1, -1, 0, 0, 0), (0, 0, 0, 23, 0, 0, 0)),
            ((2023, 3, 1), (0, 0, 0, 1, 0, -1, 0), (0, 0, 0, 0, 59, 59, 0)),
            (
                (2023, 3, 1),
                (0, 0, 0, 0, 0, 1, -1),
                (0, 0, 0, 0, 0, 0, 999_999),
            ),
            # carry upwards
            ((2023, 3, 1), (0, 13, 0, 25, 0, 0, 0), (1, 1, 1, 1, 0, 0, 0)),
            # negative days borrow the month before the base (February)
            ((2023, 3, 1), (0, 1, -3, 0, 0, 0, 0), (0, 0, 25, 0, 0, 0, 0)),
            ((2024, 3, 1), (0, 1, -3, 0, 0, 0, 0), (0, 0, 26, 0, 0, 0, 0)),
            # ...or January for a base in February
            ((2023, 2, 10), (0, 1, -1, 0, 0, 0, 0), (0, 0, 30, 0, 0, 0, 0)),
            # ...wrapping to December for a base in January
            ((2023, 1, 5), (1, 0, -6, 0, 0, 0, 0), (0, 11, 25, 0, 0, 0, 0)),
            # more than a month's worth of negative days
            ((2023, 3, 1), (0, 2, -40, 0, 0, 0, 0), (0, 0, 19, 0, 0, 0, 0)),
        ],
    )
    def test_examples(self, base, fields, expected):
        assert normalize_interval(utc(*base), *fields) == expected


class TestEpochConversion:

    def test_plain_relative(self):
        t = utc(2023, 1, 31, 12)
        moved = epoch_from_calendar(t, (0, 1, 0, 0, 0, 0, 0))
        assert (moved.month, moved.day, moved.hour) == (3, 3, 12)
        assert moved.timestamp() == mk_epoch(2023, 3, 3, 12)

    def test_fields_in_gap_are_kept(self):
        t = nyc(2023, 3, 12, 1, 30)
        moved = epoch_from_calendar(t, (0, 0, 0, 1, 0, 0, 0))
        # the epoch value is resolved, but the fields still say 02:30
        assert (moved.hour, moved.minute) == (2, 30)
        assert moved.timestamp() == mk_epoch(2023, 3, 12, 7, 30)

        fixed = calendar_from_epoch(moved)
        assert (fixed.hour, fixed.minute) == (3, 30)
        assert fixed.offset == -4 * 3600
        assert fixed.dst
        assert fixed.exact_eq(CivilInstant(2023, 3, 12, 3, 30, tz=NYC))

    def test_invalid_relative(self):
        with pytest.raises(TypeError):
            epoch_from_calendar(utc(2023, 1, 1), "1 day")  # type: ignore

    def test_calendar_from_epoch_keeps_microsecond(self):
        t = CivilInstant.from_timestamp(0, tz=UTC, microsecond=123)
        assert calendar_from_epoch(t).microsecond == 123
