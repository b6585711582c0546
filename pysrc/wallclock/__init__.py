from __future__ import annotations

from ._core import *
from ._core import (  # for the docs
    __all__,
    __version__,
)
from ._tz import TimeZone, TimeZoneNotFoundError
from ._tz.store import (
    clear_tz_cache as _clear_tz_cache,
    clear_tz_cache_by_keys as _clear_tz_cache_by_keys,
    set_tzpath as _set_tzpath,
)

import os as _os
import sysconfig as _sysconfig
from importlib.resources import open_text as _open_resource
from pathlib import Path as _Path
from typing import Iterable as _Iterable, Iterator as _Iterator

__all__ = [
    *__all__,
    "TimeZone",
    "TimeZoneNotFoundError",
    "TZPATH",
    "reset_tzpath",
    "clear_tzcache",
    "available_timezones",
]

TimeZoneNotFoundError.__module__ = "wallclock"

TZPATH: tuple[str, ...] = ()
"""The paths in which ``wallclock`` will search for timezone data.
By default, this determined the same way as :data:`zoneinfo.TZPATH`,
although you can override it using :func:`wallclock.reset_tzpath`.
Zones not found here are loaded from the ``tzdata`` package.
"""


def reset_tzpath(target: _Iterable[str | _os.PathLike[str]] | None = None, /):
    """Reset or set the paths in which ``wallclock`` will search for
    timezone data.

    It does not affect the :mod:`zoneinfo` module or other libraries.

    Note
    ----
    Due to caching, you may find that looking up a timezone after setting
    the tzpath doesn't load the timezone data from the new path.
    Call :func:`clear_tzcache` to force loading from the new path.

    Behaves similarly to :func:`zoneinfo.reset_tzpath`
    """
    global TZPATH

    if target is not None:
        # This is such a common mistake, that we raise a descriptive error
        if isinstance(target, (str, bytes)):
            raise TypeError("tzpath must be an iterable of paths")

        if not all(map(_os.path.isabs, target)):
            raise ValueError("tzpaths must be absolute paths")
        TZPATH = tuple(str(_Path(p)) for p in target)
    else:
        TZPATH = _tzpath_from_env()
    _set_tzpath(TZPATH)


def _tzpath_from_env() -> tuple[str, ...]:
    try:
        env_var = _os.environ["PYTHONTZPATH"]
    except KeyError:
        env_var = _sysconfig.get_config_var("TZPATH")

    if not env_var:
        return ()

    raw_tzpath = env_var.split(_os.pathsep)
    # invalid (relative) paths are silently ignored, like zoneinfo does
    return tuple(filter(_os.path.isabs, raw_tzpath))


def clear_tzcache(*, only_keys: _Iterable[str] | None = None) -> None:
    """Clear the timezone cache. If ``only_keys`` is provided,
    only the cache for those keys will be cleared.

    Caution
    -------
    Instants created before and after clearing may hold different
    (though equal) copies of the zone data.

    Behaves similarly to :meth:`zoneinfo.ZoneInfo.clear_cache`.
    """
    if only_keys is None:
        _clear_tz_cache()
    else:
        _clear_tz_cache_by_keys(tuple(only_keys))


def available_timezones() -> set[str]:
    """Gather the set of all available timezone keys.

    Each call recalculates the names depending on the currently configured
    ``TZPATH``, and the presence of the ``tzdata`` package.
    Like :func:`zoneinfo.available_timezones`, it ignores the "special"
    zones (e.g. posixrules, right/posix, etc.)

    Warning
    -------
    This function may open a large number of files, since the first few
    bytes of timezone files must be read to determine if they are valid.
    """
    zones = set()
    try:
        with _open_resource("tzdata", "zones") as f:
            zones.update(map(str.strip, f))
    except (ImportError, FileNotFoundError):
        pass

    for base in TZPATH:
        zones.update(_find_all_tznames(_Path(base)))

    zones.discard("posixrules")  # a special file that shouldn't be included
    return zones


# Recursion is safe here since the file tree is trusted, and nesting doesn't
# even approach the recursion limit.
def _find_all_tznames(base: _Path) -> _Iterator[str]:
    if not base.is_dir():
        return
    for entry in base.iterdir():
        if entry.is_dir():
            if entry.name in ("right", "posix"):
                continue
            for p in _find_nested_tzfiles(entry):
                yield p.relative_to(base).as_posix()
        elif _is_tzifile(entry):
            yield entry.name


def _find_nested_tzfiles(path: _Path) -> _Iterator[_Path]:
    for entry in path.iterdir():
        if entry.is_dir():
            yield from _find_nested_tzfiles(entry)
        elif _is_tzifile(entry):
            yield entry


def _is_tzifile(p: _Path) -> bool:
    try:
        with p.open("rb") as f:
            return f.read(4) == b"TZif"
    except OSError:
        return False


reset_tzpath()  # populate the tzpath once at startup
