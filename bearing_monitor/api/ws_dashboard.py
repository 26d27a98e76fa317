"""Dashboard WebSocket — pushes the live monitor view to connected frontends.

Architecture:
    server  →  /api/events (SSE)  →  TelemetryConsumer applies frame
                                          ↓
                                     notifies listeners with a ConsumerView
                                          ↓
    FE      ←  /ws/dashboard      ←  broadcasts the view to every client

The DashboardManager is registered as a consumer listener.  It renders
nothing; the payload is chart-ready data for an external UI.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from bearing_monitor.core.telemetry_consumer import ConsumerView, TelemetryConsumer

logger = logging.getLogger(__name__)

SMOOTHED_LABEL = "ESI (g) - Suavizado"
RAW_LABEL = "ESI (g) - Bruto"


def view_payload(view: ConsumerView) -> dict[str, Any]:
    """Serialise a ConsumerView into the JSON shape the dashboard expects."""
    series = view.series
    return {
        "type": "monitor_view",
        "target": view.target,
        "status": view.status.model_dump(mode="json"),
        "status_label": view.status_label,
        "is_active": view.is_active,
        "current_minute": view.current_minute,
        "rul": view.rul_display,
        "chart": {
            "labels": series.labels,
            "datasets": [
                {"label": SMOOTHED_LABEL, "data": list(series.smoothed)},
                {"label": RAW_LABEL, "data": list(series.raw)},
            ],
        },
        "logs": list(view.log),
    }


class DashboardManager:
    """Tracks connected frontend WebSocket clients and broadcasts views."""

    def __init__(self, consumer: TelemetryConsumer) -> None:
        self._consumer = consumer
        self._clients: set[WebSocket] = set()
        self._lock = asyncio.Lock()
        self._pending: set[asyncio.Task] = set()
        consumer.add_listener(self.on_view_changed)

    # ── Client management ────────────────────────────────────────────

    async def connect(self, ws: WebSocket) -> None:
        await ws.accept()
        async with self._lock:
            self._clients.add(ws)
        logger.info("Dashboard client connected (%d total)", len(self._clients))
        await ws.send_text(json.dumps(view_payload(self._consumer.view())))

    async def disconnect(self, ws: WebSocket) -> None:
        async with self._lock:
            self._clients.discard(ws)
        logger.info("Dashboard client disconnected (%d remaining)", len(self._clients))

    @property
    def client_count(self) -> int:
        return len(self._clients)

    # ── Broadcast ────────────────────────────────────────────────────

    def on_view_changed(self, view: ConsumerView) -> None:
        """Consumer listener.  Schedules a broadcast without blocking dispatch."""
        if not self._clients:
            return
        task = asyncio.get_running_loop().create_task(self._broadcast(view_payload(view)))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _broadcast(self, payload: dict[str, Any]) -> None:
        """Send payload to all connected dashboard clients."""
        message = json.dumps(payload)
        dead: set[WebSocket] = set()

        async with self._lock:
            clients = set(self._clients)

        for ws in clients:
            try:
                await ws.send_text(message)
            except Exception:
                dead.add(ws)

        if dead:
            async with self._lock:
                self._clients -= dead
            logger.info("Removed %d dead dashboard client(s)", len(dead))


# ── WebSocket endpoint ───────────────────────────────────────────────────


def create_dashboard_router(manager: DashboardManager) -> APIRouter:
    """Factory that creates the dashboard WebSocket endpoint."""

    router = APIRouter()

    @router.websocket("/ws/dashboard")
    async def dashboard_ws(websocket: WebSocket) -> None:
        await manager.connect(websocket)
        try:
            # FE just listens; answer heartbeats
            while True:
                data = await websocket.receive_text()
                if data.strip().lower() == "ping":
                    await websocket.send_text("pong")
        except WebSocketDisconnect:
            await manager.disconnect(websocket)

    return router
