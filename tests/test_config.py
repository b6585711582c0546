import logging
import os

import pytest

import wallclock
from wallclock import (
    CivilInstant,
    NamedZone,
    TimeZoneNotFoundError,
    available_timezones,
    clear_tzcache,
    reset_tzpath,
)

from .common import AMS, NYC_2023_TZIF


@pytest.fixture
def custom_tzpath(tmp_path):
    (tmp_path / "Test").mkdir()
    (tmp_path / "Test" / "NYC").write_bytes(NYC_2023_TZIF)
    # not a TZif file, so it isn't listed or loadable
    (tmp_path / "Test" / "README").write_text("hello")
    (tmp_path / "posixrules").write_bytes(NYC_2023_TZIF)
    (tmp_path / "right").mkdir()
    (tmp_path / "right" / "UTC").write_bytes(NYC_2023_TZIF)

    reset_tzpath([tmp_path])
    try:
        yield tmp_path
    finally:
        reset_tzpath()
        clear_tzcache(only_keys=["Test/NYC", "Test/README"])


def test_tzpath(custom_tzpath):
    assert wallclock.TZPATH == (str(custom_tzpath),)

    d = CivilInstant(2023, 7, 4, 12, tz="Test/NYC")
    assert d.offset == -4 * 3600
    assert d.dst
    assert d.zone.key == "Test/NYC"

    with pytest.raises(TimeZoneNotFoundError):
        NamedZone("Test/README")

    zones = available_timezones()
    assert "Test/NYC" in zones
    assert "Test/README" not in zones
    assert "posixrules" not in zones
    assert "right/UTC" not in zones
    # zones from the tzdata package are still available
    assert AMS in zones


def test_tzpath_no_longer_used(custom_tzpath):
    CivilInstant(2023, 7, 4, 12, tz="Test/NYC")
    reset_tzpath()
    # still cached
    assert NamedZone("Test/NYC")

    clear_tzcache(only_keys=["Test/NYC"])
    with pytest.raises(TimeZoneNotFoundError):
        NamedZone("Test/NYC")


def test_tzpath_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv(
        "PYTHONTZPATH", os.pathsep.join([str(tmp_path), "relative/path"])
    )
    try:
        reset_tzpath()
        # relative paths are ignored
        assert wallclock.TZPATH == (str(tmp_path),)
    finally:
        monkeypatch.undo()
        reset_tzpath()


def test_reset_tzpath_invalid():
    with pytest.raises(TypeError, match="iterable"):
        reset_tzpath("/usr/share/zoneinfo")  # type: ignore[arg-type]
    with pytest.raises(ValueError, match="absolute"):
        reset_tzpath(["../../share/zoneinfo"])


class TestCache:

    def test_reuses_instances(self):
        assert NamedZone(AMS).tz is NamedZone(AMS).tz

    def test_clear_all(self):
        d = CivilInstant(2023, 7, 4, 12, tz=AMS)
        old = NamedZone(AMS).tz
        clear_tzcache()
        new = NamedZone(AMS).tz
        assert new is not old
        assert new == old
        # existing instances keep working
        assert d.add(wallclock.Interval(days=1)).day == 5
        assert CivilInstant(2023, 7, 4, 12, tz=AMS) == d

    def test_clear_some_keys(self):
        ams = NamedZone(AMS).tz
        paris = NamedZone("Europe/Paris").tz
        clear_tzcache(only_keys=["Europe/Paris", "Nowhere/Unknown"])
        assert NamedZone(AMS).tz is ams
        assert NamedZone("Europe/Paris").tz is not paris

    def test_logs_loading(self, caplog):
        clear_tzcache(only_keys=["Europe/Paris"])
        with caplog.at_level(logging.DEBUG, logger="wallclock"):
            NamedZone("Europe/Paris")
        assert "Loaded timezone 'Europe/Paris'" in caplog.text


@pytest.mark.parametrize(
    "key",
    [
        "",
        "America/Nowhere",
        "../etc/passwd",
        "America//New_York",
        "/usr/share/zoneinfo/UTC",
        "Europe/Amsterdam/",
        "Europe/./Amsterdam",
        "Europe/Amsterdam\x00",
        "Europe/Amstérdam",
        "a" * 100,
    ],
)
def test_zone_not_found(key):
    with pytest.raises(TimeZoneNotFoundError, match="No time zone found"):
        NamedZone(key)


def test_version():
    assert isinstance(wallclock.__version__, str)


def test_no_attr_on_module():
    with pytest.raises((AttributeError, ImportError), match="DoesntExist"):
        from wallclock import DoesntExist  # type: ignore[attr-defined] # noqa
