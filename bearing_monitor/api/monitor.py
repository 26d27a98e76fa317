"""REST endpoints that let a frontend drive the TelemetryConsumer.

Paths:
    GET  /api/bearings        → bearing catalog (empty list on failure)
    POST /api/monitor/start   → start monitoring a bearing
    POST /api/monitor/stop    → stop the active run
    GET  /api/monitor/state   → current monitor view

Start and stop never return an error status for remote failures.  The
outcome is visible in the returned view (status + log), same as on the
dashboard WebSocket.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel, Field

from bearing_monitor.api.ws_dashboard import view_payload
from bearing_monitor.client.simulation_api import BearingOption
from bearing_monitor.core.telemetry_consumer import TelemetryConsumer

logger = logging.getLogger(__name__)


class StartRequest(BaseModel):
    bearing_name: str = Field(..., alias="bearingName", min_length=1, max_length=256)


def create_monitor_router(consumer: TelemetryConsumer) -> APIRouter:
    """Factory that wires the monitor endpoints to a concrete consumer."""

    router = APIRouter(prefix="/api", tags=["monitor"])

    @router.get("/bearings")
    async def list_bearings() -> list[BearingOption]:
        return await consumer.fetch_bearings()

    @router.post("/monitor/start")
    async def start_monitor(request: StartRequest) -> dict[str, Any]:
        accepted = await consumer.start(request.bearing_name)
        return {"accepted": accepted, "view": view_payload(consumer.view())}

    @router.post("/monitor/stop")
    async def stop_monitor() -> dict[str, Any]:
        await consumer.stop()
        return {"view": view_payload(consumer.view())}

    @router.get("/monitor/state")
    async def monitor_state() -> dict[str, Any]:
        return {"view": view_payload(consumer.view())}

    return router
