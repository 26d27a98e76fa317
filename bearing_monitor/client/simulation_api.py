"""Async client for the remote simulation server.

Covers the four boundary contracts the monitor depends on:

    GET  /bearings          → bearing catalog
    POST /start-simulation  → start a job for one bearing
    GET  /stop-simulation   → halt the running job
    GET  /events            → text/event-stream of job output

Control calls raise ControlCallError on any failure (transport, non-2xx,
unreadable body).  The event stream surfaces transport problems as the
underlying httpx / httpx-sse exceptions so the consumer can tell a dropped
stream apart from a refused control call.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

import httpx
from httpx_sse import EventSource, aconnect_sse
from pydantic import BaseModel, Field, TypeAdapter, ValidationError

logger = logging.getLogger(__name__)


class MonitorError(Exception):
    """Base class for bearing-monitor errors."""


class ControlCallError(MonitorError):
    """Raised when a start/stop/catalog request to the server fails."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class BearingOption(BaseModel):
    """One entry of the bearing catalog, as shown in a selection list."""

    value: str = Field(..., min_length=1)
    label: str

    model_config = {"frozen": True}


_catalog_adapter = TypeAdapter(list[BearingOption])


class SimulationApiClient:
    """Thin wrapper around an httpx.AsyncClient bound to the API base URL.

    Args:
        base_url: Root of the remote API, e.g. ``http://localhost:3001/api``.
        timeout: Seconds allowed for each control call.  The event stream
            has no read timeout; it stays open until closed by either side.
        client: Optional pre-built AsyncClient (tests inject one with a
            MockTransport).  A client passed in is not closed by aclose().
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._stream_timeout = httpx.Timeout(timeout, read=None)

    # ── Control calls ────────────────────────────────────────────────────

    async def fetch_bearings(self) -> list[BearingOption]:
        payload = await self._request("GET", "/bearings")
        try:
            return _catalog_adapter.validate_python(payload)
        except ValidationError as exc:
            raise ControlCallError(f"Invalid bearing catalog: {exc.error_count()} error(s)") from exc

    async def start_simulation(self, bearing_name: str) -> str:
        """Ask the server to start processing *bearing_name*.

        Returns the server's acknowledgement text.
        """
        payload = await self._request(
            "POST", "/start-simulation", json={"bearingName": bearing_name}
        )
        return _message_of(payload)

    async def stop_simulation(self) -> str:
        payload = await self._request("GET", "/stop-simulation")
        return _message_of(payload)

    # ── Event stream ─────────────────────────────────────────────────────

    @asynccontextmanager
    async def event_stream(self) -> AsyncIterator[AsyncIterator[str]]:
        """Open the event stream; yields an iterator over ``data`` payloads.

        The connection is open once the context is entered and is closed
        when the context exits, on every path.

        Raises:
            httpx.HTTPError: connect failure, non-2xx response, drop.
            httpx_sse.SSEError: the response is not an event stream.
        """
        async with aconnect_sse(
            self._client, "GET", "/events", timeout=self._stream_timeout
        ) as source:
            source.response.raise_for_status()
            logger.info("Event stream opened: %s", source.response.url)
            try:
                yield _frames(source)
            finally:
                logger.info("Event stream closed")

    # ── Lifecycle ────────────────────────────────────────────────────────

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ── Internals ────────────────────────────────────────────────────────

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise ControlCallError(str(exc) or type(exc).__name__) from exc

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if not response.is_success:
            error = payload.get("error") if isinstance(payload, dict) else None
            logger.warning("%s %s returned HTTP %d", method, path, response.status_code)
            raise ControlCallError(
                error or f"HTTP error {response.status_code}",
                status_code=response.status_code,
            )
        if payload is None:
            raise ControlCallError(
                f"Unreadable response body from {path}",
                status_code=response.status_code,
            )
        return payload


async def _frames(source: EventSource) -> AsyncIterator[str]:
    async for sse in source.aiter_sse():
        # an event with an empty data buffer is not dispatched
        if sse.data:
            yield sse.data


def _message_of(payload: Any) -> str:
    if isinstance(payload, dict):
        message = payload.get("message")
        if message is not None:
            return str(message)
    return ""
