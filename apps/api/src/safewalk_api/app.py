from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from devkit.observability import configure_logging, configure_otel, configure_probe_access_log_filter
from safety_engine.errors import SafetyEngineError

from safewalk_api.dependencies import get_settings, get_trip_service
from safewalk_api.errors import ApiError, from_engine_error
from safewalk_api.middleware import ObservabilityMiddleware, route_feature
from safewalk_api.observability import (
    CompositeApiMetricsCollector,
    InMemoryApiMetricsCollector,
    PrometheusApiMetricsCollector,
)
from safewalk_api.response import error_response, success_response
from safewalk_api.routers.emergency import router as emergency_router
from safewalk_api.routers.incidents import router as incidents_router
from safewalk_api.routers.route import router as route_router
from safewalk_api.routers.safety import router as safety_router
from safewalk_api.routers.trips import router as trips_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    yield
    await get_trip_service().shutdown()
    logger.info("trip_monitors_stopped")


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(item) for item in err.get("loc", ()) if item != "body")
        parts.append(f"{location}: {err['msg']}" if location else err["msg"])
    return "; ".join(parts)


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="SafeWalk API", version="0.1.0", lifespan=lifespan)
    configure_logging(settings.LOG_LEVEL)
    configure_otel(service_name=settings.SERVICE_NAME)
    configure_probe_access_log_filter()
    app.state.api_metrics = InMemoryApiMetricsCollector()
    app.state.prom_metrics = PrometheusApiMetricsCollector()
    app.state.composite_metrics = CompositeApiMetricsCollector(
        [app.state.api_metrics, app.state.prom_metrics]
    )
    app.add_middleware(
        ObservabilityMiddleware,
        collector=app.state.composite_metrics,
        service_name=settings.SERVICE_NAME,
    )
    app.include_router(route_router)
    app.include_router(incidents_router)
    app.include_router(safety_router)
    app.include_router(emergency_router)
    app.include_router(trips_router)

    @app.get("/healthz")
    async def healthz() -> dict:
        return success_response({"status": "ok"}, meta={})

    @app.get("/readyz")
    async def readyz() -> dict:
        return success_response(
            {
                "status": "ready",
                "routingConfigured": bool(settings.TOMTOM_API_KEY),
                "weatherConfigured": bool(settings.OPENWEATHER_API_KEY),
            },
            meta={},
        )

    @app.get("/metrics")
    async def metrics() -> Response:
        payload = app.state.prom_metrics.render()
        return Response(content=payload, media_type="text/plain; version=0.0.4")

    @app.exception_handler(ApiError)
    async def handle_api_error(_: Request, exc: ApiError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response(exc.code, exc.message),
            headers=exc.headers or None,
        )

    @app.exception_handler(SafetyEngineError)
    async def handle_engine_error(request: Request, exc: SafetyEngineError) -> JSONResponse:
        error = from_engine_error(exc)
        app.state.prom_metrics.observe_engine_error(route_feature(request), error.code)
        if error.status_code >= 500:
            logger.warning(
                "request_failed",
                extra={"path": request.url.path, "code": error.code, "error": repr(exc)},
            )
        return JSONResponse(status_code=error.status_code, content=error_response(error.code, error.message))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content=error_response("INVALID_INPUT", _validation_message(exc)),
        )

    return app


app = create_app()
