from .common import Fold, Gap, OffsetInfo, Unambiguous
from .store import TimeZoneNotFoundError, get_tz
from .tzif import TimeZone

__all__ = [
    "TimeZone",
    "TimeZoneNotFoundError",
    "OffsetInfo",
    "Unambiguous",
    "Gap",
    "Fold",
    "get_tz",
]
