"""FastAPI application factory — wires the registry into the HTTP transport."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from skeet import __version__
from skeet.config import SkeetSettings
from skeet.gateway.http_api import router as api_router
from skeet.observability.health import aggregate_health
from skeet.observability.metrics import MetricsCollector
from skeet.registry import ServiceRegistry

logger = logging.getLogger(__name__)


def create_app(settings: SkeetSettings | None = None, registry: ServiceRegistry | None = None) -> FastAPI:
    """Build and return the FastAPI application."""
    if settings is None:
        settings = SkeetSettings()
    if registry is None:
        registry = ServiceRegistry.from_settings(settings, metrics=MetricsCollector())
    metrics = registry.metrics or MetricsCollector()
    registry.metrics = metrics

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if not await registry.initialize():
            logger.warning("Service registry initialization had issues")
        logger.info("Skeet %s started on %s:%d", __version__, settings.host, settings.port)
        logger.info("Active services: %s", ", ".join(registry.get_active_services()) or "none")
        try:
            yield
        finally:
            await registry.shutdown()

    app = FastAPI(title="Skeet Gateway", version=__version__, docs_url="/docs", lifespan=lifespan)
    app.state.settings = settings
    app.state.registry = registry
    app.state.metrics = metrics

    app.include_router(api_router)

    @app.get("/health")
    async def health():
        return await aggregate_health(registry)

    @app.get("/metrics")
    async def get_metrics():
        return metrics.summary()

    @app.get("/")
    async def root():
        return {
            "name": "Skeet Gateway",
            "version": __version__,
            "state": registry.state.value,
            "activeServices": registry.get_active_services(),
            "tools": [t.name for t in registry.get_tools()],
        }

    return app
