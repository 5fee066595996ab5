import logging
from contextlib import asynccontextmanager
from os import getenv
from time import perf_counter

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from chatbridge.api.router import api_router
from chatbridge.config.settings import get_settings
from chatbridge.errors import register_error_handlers
from chatbridge.logging.setup import configure_logging
from chatbridge.middleware.rate_limit import RateLimitMiddleware
from chatbridge.middleware.request_context import RequestContextMiddleware
from chatbridge.monitoring.metrics import REQUEST_COUNT, REQUEST_LATENCY
from chatbridge.persistence.migrations import run_migrations
from chatbridge.plugins.registry import PluginRegistry, register_all_plugins

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Apply DB migrations (non-fatal)
    try:
        run_migrations()
    except Exception as exc:  # pragma: no cover
        logger.error("DB migration failed, running in degraded mode: %s", exc, exc_info=True)

    logger.info("Serving %d plugins", len(app.state.plugin_registry))
    yield


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging()

    app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)
    register_error_handlers(app)
    app.state.plugin_registry = register_all_plugins(PluginRegistry())

    cors_env = getenv("CORS_ORIGINS", "").strip()
    if cors_env:
        allowed_origins = [o.strip() for o in cors_env.split(",") if o.strip()]
    else:
        allowed_origins = [settings.app_public_url, "http://localhost:3000", "http://localhost:5173"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Trace-Id", "Stripe-Signature"],
    )

    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_minute=settings.rate_limit_per_minute,
        strict_requests_per_minute=settings.integration_test_rate_limit,
    )

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        start = perf_counter()
        response = await call_next(request)
        elapsed = perf_counter() - start
        path = request.url.path
        method = request.method
        REQUEST_COUNT.labels(path=path, method=method, status=response.status_code).inc()
        REQUEST_LATENCY.labels(path=path, method=method).observe(elapsed)
        return response

    app.include_router(api_router)
    return app


app = create_app()
