from __future__ import annotations

import logging
from typing import Any

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_configured = False
_logging_configured = False
_probe_filter_configured = False


class _ProbeAccessLogFilter(logging.Filter):
    """Drops successful uvicorn access lines for liveness/readiness probes."""

    def __init__(self, ignored_paths: tuple[str, ...]) -> None:
        super().__init__()
        self._ignored_paths = {self._normalize_path(path) for path in ignored_paths}

    @staticmethod
    def _normalize_path(path: str) -> str:
        base = path.split("?", 1)[0]
        if base != "/" and base.endswith("/"):
            return base[:-1]
        return base

    @staticmethod
    def _extract_path_and_status(record: logging.LogRecord) -> tuple[str | None, int | None]:
        # uvicorn.access args: (client, method, path, http_version, status)
        args: Any = getattr(record, "args", ())
        if not isinstance(args, tuple) or len(args) < 5:
            return None, None
        path = args[2] if isinstance(args[2], str) else None
        try:
            status = int(args[4])
        except (TypeError, ValueError):
            status = None
        return path, status

    def filter(self, record: logging.LogRecord) -> bool:
        path, status = self._extract_path_and_status(record)
        if path is None or status is None:
            return True
        return not (status == 200 and self._normalize_path(path) in self._ignored_paths)


def configure_logging(level: str = "INFO") -> None:
    global _logging_configured
    if _logging_configured:
        return
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    _logging_configured = True


def configure_otel(service_name: str) -> None:
    global _configured
    if _configured:
        return
    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    trace.set_tracer_provider(provider)
    _configured = True


def configure_probe_access_log_filter(ignored_paths: tuple[str, ...] = ("/healthz", "/readyz")) -> None:
    global _probe_filter_configured
    if _probe_filter_configured:
        return
    logging.getLogger("uvicorn.access").addFilter(_ProbeAccessLogFilter(ignored_paths=ignored_paths))
    _probe_filter_configured = True
