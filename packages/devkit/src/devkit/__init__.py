"""Common runtime devkit for service infrastructure concerns."""

from devkit.config import SafeWalkSettings, load_settings
from devkit.observability import configure_logging, configure_otel, configure_probe_access_log_filter
from devkit.timezone import configure_local_timezone, local_zone, now_local

__all__ = [
    "SafeWalkSettings",
    "configure_local_timezone",
    "configure_logging",
    "configure_otel",
    "configure_probe_access_log_filter",
    "load_settings",
    "local_zone",
    "now_local",
]
