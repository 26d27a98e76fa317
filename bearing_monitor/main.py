"""bearing-monitor — streaming telemetry consumer for remote bearing simulations.

This is the application entry point.  It wires the TelemetryConsumer,
the dashboard broadcaster and the REST endpoints together.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from bearing_monitor.api.monitor import create_monitor_router
from bearing_monitor.api.ws_dashboard import DashboardManager, create_dashboard_router
from bearing_monitor.config import Settings, settings
from bearing_monitor.core.telemetry_consumer import TelemetryConsumer

# ── Logging ──────────────────────────────────────────────────────────────────

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)

logger = logging.getLogger(__name__)


def create_app(
    consumer: TelemetryConsumer | None = None,
    config: Settings | None = None,
) -> FastAPI:
    """Build the FastAPI app around one consumer.

    The consumer is closed on shutdown so no event stream outlives the app.
    """
    config = config or settings
    consumer = consumer or TelemetryConsumer.from_settings(config)
    dashboard = DashboardManager(consumer)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        logger.info("Monitoring remote API at %s", config.api_base_url)
        yield
        await consumer.aclose()

    app = FastAPI(
        title=config.app_name,
        description="Streaming telemetry consumer for remote bearing simulations",
        version="0.1.0",
        lifespan=lifespan,
    )

    # ── Routes ───────────────────────────────────────────────────────────────

    app.include_router(create_monitor_router(consumer))
    app.include_router(create_dashboard_router(dashboard))

    # ── Health ───────────────────────────────────────────────────────────────

    @app.get("/health")
    async def health() -> dict:
        return {
            "status": "ok",
            "app": config.app_name,
            "monitor_status": consumer.status.kind.value,
            "stream_open": consumer.stream_open,
            "dashboard_clients": dashboard.client_count,
        }

    return app


app = create_app()
