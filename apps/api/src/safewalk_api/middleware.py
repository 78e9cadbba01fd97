from __future__ import annotations

from time import perf_counter
from uuid import uuid4

from opentelemetry import trace
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from safewalk_api.observability import ApiMetricCollector, ApiRequestMetric, set_trace_id


def _route_path(request: Request) -> str:
    # Label by route template so trip and session ids do not explode metric cardinality.
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


def route_feature(request: Request) -> str:
    """Router tag of the matched route: route, incidents, safety, emergency or trips."""
    tags = getattr(request.scope.get("route"), "tags", None)
    return str(tags[0]) if tags else "platform"


class ObservabilityMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, collector: ApiMetricCollector, service_name: str = "safewalk-api") -> None:
        super().__init__(app)
        self._collector = collector
        self._tracer = trace.get_tracer(service_name)

    async def dispatch(self, request: Request, call_next) -> Response:
        trace_id = request.headers.get("x-trace-id") or str(uuid4())
        set_trace_id(trace_id)
        started = perf_counter()
        with self._tracer.start_as_current_span("http.request") as span:
            span.set_attribute("http.method", request.method)
            span.set_attribute("http.target", request.url.path)
            span.set_attribute("trace.id", trace_id)
            try:
                response = await call_next(request)
            except Exception:
                self._observe(request, 500, started, trace_id)
                span.set_attribute("http.status_code", 500)
                raise
            span.set_attribute("http.route", _route_path(request))
            span.set_attribute("http.status_code", response.status_code)

        response.headers["x-trace-id"] = trace_id
        self._observe(request, response.status_code, started, trace_id)
        return response

    def _observe(self, request: Request, status_code: int, started: float, trace_id: str) -> None:
        self._collector.observe(
            ApiRequestMetric(
                method=request.method,
                path=_route_path(request),
                feature=route_feature(request),
                status_code=status_code,
                duration_ms=(perf_counter() - started) * 1000.0,
                trace_id=trace_id,
            )
        )
