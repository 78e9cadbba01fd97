from __future__ import annotations

from contextvars import ContextVar
from dataclasses import asdict, dataclass
from typing import Protocol

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

_trace_id_ctx: ContextVar[str] = ContextVar("trace_id", default="")


def set_trace_id(trace_id: str) -> None:
    _trace_id_ctx.set(trace_id)


def get_trace_id() -> str:
    return _trace_id_ctx.get()


@dataclass(frozen=True)
class ApiRequestMetric:
    method: str
    path: str
    feature: str
    status_code: int
    duration_ms: float
    trace_id: str


class ApiMetricCollector(Protocol):
    def observe(self, metric: ApiRequestMetric) -> None: ...


class InMemoryApiMetricsCollector(ApiMetricCollector):
    """Keeps the most recent request metrics for inspection."""

    def __init__(self, max_entries: int = 1000) -> None:
        self._metrics: list[ApiRequestMetric] = []
        self._max_entries = max_entries

    def observe(self, metric: ApiRequestMetric) -> None:
        self._metrics.append(metric)
        if len(self._metrics) > self._max_entries:
            del self._metrics[: len(self._metrics) - self._max_entries]

    def snapshot(self) -> list[dict]:
        return [asdict(item) for item in self._metrics]


class PrometheusApiMetricsCollector(ApiMetricCollector):
    def __init__(self, namespace: str = "safewalk") -> None:
        self._registry = CollectorRegistry()
        self._request_counter = Counter(
            f"{namespace}_http_requests_total",
            "Total HTTP requests served",
            labelnames=("method", "path", "feature", "status_code"),
            registry=self._registry,
        )
        self._latency_histogram = Histogram(
            f"{namespace}_http_request_duration_ms",
            "HTTP request latency in milliseconds",
            labelnames=("method", "feature"),
            buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 3000, 5000),
            registry=self._registry,
        )
        self._engine_error_counter = Counter(
            f"{namespace}_engine_errors_total",
            "Safety engine failures by feature and error code",
            labelnames=("feature", "code"),
            registry=self._registry,
        )

    def observe(self, metric: ApiRequestMetric) -> None:
        status = str(metric.status_code)
        self._request_counter.labels(metric.method, metric.path, metric.feature, status).inc()
        self._latency_histogram.labels(metric.method, metric.feature).observe(metric.duration_ms)

    def observe_engine_error(self, feature: str, code: str) -> None:
        self._engine_error_counter.labels(feature, code).inc()

    def render(self) -> str:
        return generate_latest(self._registry).decode("utf-8")


class CompositeApiMetricsCollector(ApiMetricCollector):
    def __init__(self, collectors: list[ApiMetricCollector]) -> None:
        self._collectors = collectors

    def observe(self, metric: ApiRequestMetric) -> None:
        for collector in self._collectors:
            collector.observe(metric)
