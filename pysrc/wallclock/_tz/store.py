"""Timezone database access and caching."""

from __future__ import annotations

import logging
import os.path
import sys
from collections import OrderedDict
from typing import TYPE_CHECKING, NewType
from weakref import WeakValueDictionary

from .tzif import TimeZone

__all__ = [
    "TimeZoneNotFoundError",
    "get_tz",
    "clear_tz_cache",
    "clear_tz_cache_by_keys",
    "set_tzpath",
]

logger = logging.getLogger(__name__)

_NOGIL = hasattr(sys, "_is_gil_enabled") and not sys._is_gil_enabled()

_TZPATH: tuple[str, ...] = ()

# Loaded zones are cached the same way `zoneinfo` does it: a small LRU
# keeps recently used zones alive, the weak mapping finds all live ones.
_TZCACHE_LRU_SIZE = 8
_tzcache_lru: OrderedDict[str, TimeZone] = OrderedDict()
_tzcache_lookup: WeakValueDictionary[str, TimeZone] = WeakValueDictionary()

# OrderedDict is thread-unsafe in Python < 3.14 under free-threading.
if TYPE_CHECKING or (
    _NOGIL and sys.version_info < (3, 14)
):  # pragma: no cover
    from threading import Lock as _Lock
else:

    class _Lock:
        def __enter__(self) -> None:
            pass

        def __exit__(self, *args) -> None:
            pass


_tzcache_lru_lock = _Lock()


def set_tzpath(to: tuple[str, ...]) -> None:
    global _TZPATH
    _TZPATH = to


def clear_tz_cache() -> None:
    logger.debug("Clearing the timezone cache")
    _tzcache_lookup.clear()
    with _tzcache_lru_lock:
        _tzcache_lru.clear()


def clear_tz_cache_by_keys(keys: tuple[str, ...]) -> None:
    logger.debug("Clearing timezone cache entries: %s", keys)
    with _tzcache_lru_lock:
        for k in keys:
            _tzcache_lookup.pop(k, None)
            _tzcache_lru.pop(k, None)


def get_tz(key: str) -> TimeZone:
    """Load the zone with the given IANA id, using the cache if possible.

    Raises
    ------
    TimeZoneNotFoundError
        If the id is invalid or no data can be found for it.
    """
    instance = _tzcache_lookup.get(key)
    if instance is None:
        # Concurrent loads of the same key are harmless: TimeZone instances
        # are immutable, and the last one to write wins.
        instance = _tzcache_lookup.setdefault(
            key, _load_tz(validate_tzid(key))
        )

    with _tzcache_lru_lock:
        _tzcache_lru[key] = _tzcache_lru.pop(key, instance)
        if len(_tzcache_lru) > _TZCACHE_LRU_SIZE:
            try:
                _tzcache_lru.popitem(last=False)
            except KeyError:  # pragma: no cover
                pass  # other threads may be clearing too

    return instance


# A TZ key that has been confirmed not to be a path traversal
# or contain other "bad" characters.
SafeTzId = NewType("SafeTzId", str)


def validate_tzid(key: str) -> SafeTzId:
    """Checks for invalid characters and path traversal in the key."""
    if (
        isinstance(key, str)
        and key.isascii()
        # There's no standard limit on IANA tz IDs, but we have to draw
        # the line somewhere to prevent abuse.
        and 0 < len(key) < 100
        and all(b.isalnum() or b in "-_+/." for b in key)
        and ".." not in key
        and "//" not in key
        and "/./" not in key
        and key[0] not in ".-+/"
        and key[-1] != "/"
    ):
        return SafeTzId(key)
    raise TimeZoneNotFoundError.for_key(key)


def _tzif_from_path(key: SafeTzId) -> bytes | None:
    for search_path in _TZPATH:
        target = os.path.join(search_path, key)
        if os.path.isfile(target):
            with open(target, "rb") as f:
                return f.read()
    return None


def _tzif_from_tzdata(key: SafeTzId) -> bytes:
    try:
        tzdata_path = __import__("tzdata.zoneinfo").zoneinfo.__path__[0]
        # Check before reading, since the resulting exceptions
        # vary per platform
        if os.path.isfile(
            relpath := os.path.join(tzdata_path, *key.split("/"))
        ):
            with open(relpath, "rb") as f:
                return f.read()
        raise FileNotFoundError(relpath)
    # Several exceptions amount to "can't find the key"
    except (ImportError, FileNotFoundError, UnicodeEncodeError):
        raise TimeZoneNotFoundError.for_key(key)


def _load_tz(key: SafeTzId) -> TimeZone:
    tzif = _tzif_from_path(key) or _tzif_from_tzdata(key)
    if not tzif.startswith(b"TZif"):
        # Stop here instead of getting a cryptic error later
        raise TimeZoneNotFoundError.for_key(key)

    logger.debug("Loaded timezone %r (%d bytes)", key, len(tzif))
    return TimeZone.parse_tzif(tzif, key)


class TimeZoneNotFoundError(ValueError):
    """A timezone with the given ID was not found"""

    @classmethod
    def for_key(cls, key: object) -> TimeZoneNotFoundError:
        return cls(f"No time zone found for key: {key!r}")
