from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

DEFAULT_ZONE_NAME = "Asia/Kolkata"

_zone = ZoneInfo(DEFAULT_ZONE_NAME)


def configure_local_timezone(zone_name: str) -> None:
    """Set the zone used for hour-of-day decisions; raises for unknown zone names."""
    global _zone
    _zone = ZoneInfo(zone_name)


def local_zone() -> ZoneInfo:
    return _zone


def now_local() -> datetime:
    return datetime.now(_zone)
