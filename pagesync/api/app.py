"""
FastAPI application factory for the trigger endpoints.
"""

import time
import uuid
from contextlib import asynccontextmanager, nullcontext

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from pagesync import __version__
from pagesync.api.dependencies import cleanup_dependencies
from pagesync.api.routes import health, sync, webhooks
from pagesync.config.settings import get_settings
from pagesync.observability.tracing import get_tracer, is_tracing_enabled

logger = structlog.get_logger(__name__)

API_DESCRIPTION = """
Trigger endpoints for synchronizing Notion databases into PostgreSQL.

## Authentication

- `/sync`: shared secret as `Authorization: Bearer <secret>` or `?secret=`
- `/webhooks/notion`: HMAC-SHA256 signature in `X-Notion-Signature`
"""

OPENAPI_TAGS = [
    {"name": "health", "description": "Service health checks"},
    {"name": "sync", "description": "Scheduled batch sync"},
    {"name": "webhooks", "description": "Provider page events"},
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    if settings.tracing_enabled and not is_tracing_enabled():
        from pagesync.observability.tracing import setup_tracing

        setup_tracing(
            service_name=settings.otel_service_name,
            otlp_endpoint=settings.otel_exporter_otlp_endpoint,
        )

    logger.info("api_started", version=__version__)
    yield
    logger.info("api_stopping")
    await cleanup_dependencies()


async def request_context(request: Request, call_next):
    """Bind a request id, wrap the request in a span and log the outcome."""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    structlog.contextvars.bind_contextvars(request_id=request_id)
    start = time.perf_counter()

    span_cm = (
        get_tracer("pagesync.api").start_as_current_span(
            f"{request.method} {request.url.path}",
            attributes={"http.method": request.method, "http.route": request.url.path},
        )
        if is_tracing_enabled()
        else nullcontext()
    )

    try:
        with span_cm as span:
            response = await call_next(request)
            if span is not None:
                span.set_attribute("http.status_code", response.status_code)

        response.headers["X-Request-ID"] = request_id
        logger.info(
            "http_request",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return response
    finally:
        structlog.contextvars.clear_contextvars()


def create_app() -> FastAPI:
    """Build the API with its routers and middleware."""
    app = FastAPI(
        title="pagesync API",
        description=API_DESCRIPTION,
        version=__version__,
        lifespan=lifespan,
        openapi_tags=OPENAPI_TAGS,
    )

    app.middleware("http")(request_context)

    @app.exception_handler(Exception)
    async def unhandled_exception(request: Request, exc: Exception):
        logger.error("unhandled_exception", path=request.url.path, error=str(exc), exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    app.include_router(health.router, tags=["health"])
    app.include_router(sync.router, tags=["sync"])
    app.include_router(webhooks.router, tags=["webhooks"])

    @app.get("/", include_in_schema=False)
    async def root():
        return {"service": "pagesync", "version": __version__, "docs": "/docs"}

    return app
