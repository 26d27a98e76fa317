"""TelemetryConsumer — owns one monitoring run from start to terminal state.

Responsibilities:
    - issue the start/stop control calls,
    - own the event-stream connection (at most one per consumer),
    - classify each frame and apply it to the run's TimeSeriesStore,
    - derive the Status shown to the operator,
    - keep the operator-facing run log.

Design notes:
    - Everything runs on one asyncio event loop.  The stream task applies
      one frame completely before reading the next.
    - Status advances from observed data, never from the start
      acknowledgement.  The stream may deliver before or after the ack.
    - _close_stream() is the only place a stream is torn down.  Stop,
      completion, fatal error and a superseding start all go through it.
      Called from inside the stream task it just detaches, and the read
      loop exits after the current frame.
    - Nothing raises out of start() / stop().  Failures become Status +
      log entries.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

import httpx
from httpx_sse import SSEError
from pydantic import BaseModel

from bearing_monitor.client.simulation_api import (
    BearingOption,
    ControlCallError,
    SimulationApiClient,
)
from bearing_monitor.config import Settings
from bearing_monitor.domain.enums import StatusKind
from bearing_monitor.domain.messages import (
    Diagnostic,
    EsiReading,
    FatalError,
    RulReading,
    RunCompleted,
    classify_frame,
)
from bearing_monitor.domain.run_log import RunLog
from bearing_monitor.domain.status import (
    AwaitingData,
    Completed,
    Failed,
    Idle,
    Running,
    Starting,
    Status,
    Stopped,
    Stopping,
)
from bearing_monitor.store.time_series_store import SeriesSnapshot, TimeSeriesStore

logger = logging.getLogger(__name__)

NO_VALUE = "-"


class RunState:
    """The session being observed.  Replaced wholesale on start/reset.

    Mutated only by TelemetryConsumer on the event loop.
    """

    __slots__ = ("target", "status", "series", "current_minute", "log")

    def __init__(self, target: str = "", log_capacity: int = 100) -> None:
        self.target: str = target
        self.status: Status = Idle()
        self.series = TimeSeriesStore()
        self.current_minute: Optional[int] = None
        self.log = RunLog(log_capacity)


class ConsumerView(BaseModel):
    """Immutable snapshot of a run, handed to observers."""

    target: str
    status: Status
    status_label: str
    is_active: bool
    current_minute: str
    rul_display: str
    series: SeriesSnapshot
    log: tuple[str, ...]

    model_config = {"frozen": True}


Listener = Callable[[ConsumerView], None]


class TelemetryConsumer:
    """Streaming telemetry consumer for a single remote simulation at a time.

    Args:
        api: Client for the remote simulation server.
        log_capacity: Entries retained in the run log.
        status_preview_chars: Length of a failure reason shown in the
            status label; the log always keeps the full text.
    """

    def __init__(
        self,
        api: SimulationApiClient,
        log_capacity: int = 100,
        status_preview_chars: int = 50,
    ) -> None:
        self._api = api
        self._log_capacity = log_capacity
        self._preview_chars = status_preview_chars
        self._run = RunState(log_capacity=log_capacity)
        self._stream_task: asyncio.Task | None = None
        self._listeners: list[Listener] = []

    @classmethod
    def from_settings(cls, settings: Settings) -> TelemetryConsumer:
        api = SimulationApiClient(
            settings.api_base_url, timeout=settings.request_timeout_seconds
        )
        return cls(
            api,
            log_capacity=settings.log_capacity,
            status_preview_chars=settings.status_preview_chars,
        )

    async def __aenter__(self) -> TelemetryConsumer:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ── Queries ──────────────────────────────────────────────────────────

    @property
    def run(self) -> RunState:
        return self._run

    @property
    def status(self) -> Status:
        return self._run.status

    @property
    def stream_open(self) -> bool:
        return self._stream_task is not None and not self._stream_task.done()

    def view(self) -> ConsumerView:
        run = self._run
        rul = run.series.latest_rul
        return ConsumerView(
            target=run.target,
            status=run.status,
            status_label=run.status.label,
            is_active=run.status.is_active,
            current_minute=NO_VALUE if run.current_minute is None else str(run.current_minute),
            rul_display=NO_VALUE if rul is None else f"{rul.display} (no min {rul.minute})",
            series=run.series.snapshot(),
            log=tuple(run.log.rendered()),
        )

    # ── Observers ────────────────────────────────────────────────────────

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ── Public API ───────────────────────────────────────────────────────

    async def fetch_bearings(self) -> list[BearingOption]:
        """Read the bearing catalog.  Failures are logged, never raised."""
        try:
            return await self._api.fetch_bearings()
        except ControlCallError as exc:
            logger.warning("Bearing catalog unavailable: %s", exc.message)
            self._run.log.error(f"Falha ao buscar rolamentos: {exc.message}")
            self._notify()
            return []

    async def start(self, target: str) -> bool:
        """Start monitoring *target*.

        Returns False when the target is empty, a run is already active,
        or the server refused the start request.
        """
        target = (target or "").strip()
        if not target:
            logger.warning("start() called without a target")
            return False
        if self._run.status.is_active:
            logger.warning(
                "start(%s) rejected: run for %s is %s",
                target, self._run.target, self._run.status.kind.value,
            )
            return False

        previous = self._close_stream()
        run = RunState(target, self._log_capacity)
        run.status = Starting()
        run.log.info(f"Iniciando simulação para {target}...")
        self._run = run
        await self._drain(previous)
        if run is not self._run or run.status.kind != StatusKind.STARTING:
            return False

        logger.info("Starting run for %s", target)
        self._stream_task = asyncio.create_task(
            self._consume(run), name=f"event-stream:{target}"
        )
        self._notify()

        try:
            ack = await self._api.start_simulation(target)
        except ControlCallError as exc:
            if run is not self._run:
                return False
            run.log.error(f"Falha ao iniciar simulação: {exc.message}")
            if run.status.is_active:
                run.status = Failed.from_reason(
                    f"Falha ao iniciar: {exc.message}", self._preview_chars
                )
                await self._teardown()
            self._notify()
            return False

        if run is self._run and ack:
            run.log.info(ack)
            self._notify()
        return True

    async def stop(self) -> None:
        """Stop the active run.  A no-op when nothing is active.

        The local stream is closed first.  The remote stop request is
        best-effort: its outcome is logged and never blocks the move to
        Stopped.
        """
        run = self._run
        if not run.status.is_active:
            logger.debug("stop() ignored: status is %s", run.status.kind.value)
            return

        run.log.info("Tentando parar a simulação...")
        run.status = Stopping()
        self._notify()
        await self._teardown()

        acknowledged = True
        try:
            message = await self._api.stop_simulation()
        except ControlCallError as exc:
            acknowledged = False
            logger.warning("Remote stop failed for %s: %s", run.target, exc.message)
            run.log.error(f"Erro ao parar simulação: {exc.message}")
        else:
            if message:
                run.log.info(message)

        if run is self._run:
            run.status = Stopped(acknowledged=acknowledged)
            logger.info("Run for %s stopped (acknowledged=%s)", run.target, acknowledged)
        self._notify()

    async def reset(self) -> None:
        """Discard the current run and return to Idle.

        An active run is stopped first so the remote job is halted too.
        """
        if self._run.status.is_active:
            await self.stop()
        await self._teardown()
        self._run = RunState(log_capacity=self._log_capacity)
        self._notify()

    async def wait_closed(self) -> None:
        """Wait for the current stream task, if any, to finish."""
        await self._drain(self._stream_task)

    async def aclose(self) -> None:
        """Tear down any open stream and release the HTTP client."""
        await self._teardown()
        await self._api.aclose()

    # ── Stream task ──────────────────────────────────────────────────────

    async def _consume(self, run: RunState) -> None:
        me = asyncio.current_task()
        try:
            async with self._api.event_stream() as frames:
                if self._stream_task is not me:
                    return
                if run.status.kind == StatusKind.STARTING:
                    run.status = AwaitingData()
                run.log.info("Conectado ao servidor para atualizações.")
                self._notify()

                async for data in frames:
                    self._dispatch(run, data)
                    self._notify()
                    if self._stream_task is not me:
                        return
        except (httpx.HTTPError, SSEError) as exc:
            self._on_transport_error(run, me, str(exc) or type(exc).__name__)
            return
        except Exception as exc:
            logger.exception("Event stream task for %s crashed", run.target)
            self._on_transport_error(run, me, str(exc) or type(exc).__name__)
            return
        self._on_transport_error(run, me, "stream encerrado pelo servidor")

    def _dispatch(self, run: RunState, data: str) -> None:
        message = classify_frame(data)

        if isinstance(message, EsiReading):
            run.status = Running()
            run.current_minute = message.minute
            if message.error:
                run.log.error(f"Erro no ESI min {message.minute}: {message.error}")
            run.series.apply_sample(
                message.minute, message.value_raw_g, message.value_smoothed_g
            )

        elif isinstance(message, RulReading):
            estimate = message.to_estimate()
            run.series.set_rul(estimate)
            run.log.info(f"RUL @ min {estimate.minute}: {estimate.display}")

        elif isinstance(message, RunCompleted):
            run.status = Completed(target=run.target)
            run.log.info(f"Simulação para {message.bearing or run.target} finalizada.")
            logger.info("Run for %s completed", run.target)
            self._close_stream()

        elif isinstance(message, FatalError):
            run.status = Failed.from_reason(message.text, self._preview_chars)
            run.log.error(message.text)
            logger.error("Run for %s failed: %s", run.target, message.text)
            self._close_stream()

        elif isinstance(message, Diagnostic):
            run.log.info(message.log_line)

    def _on_transport_error(
        self, run: RunState, task: asyncio.Task | None, detail: str
    ) -> None:
        if self._stream_task is not task:
            return
        logger.warning("Event stream error for %s: %s", run.target, detail)
        run.log.error(f"Erro na conexão SSE: {detail}")
        run.status = Failed.from_reason(f"conexão SSE ({detail})", self._preview_chars)
        self._close_stream()
        self._notify()

    # ── Teardown ─────────────────────────────────────────────────────────

    def _close_stream(self) -> asyncio.Task | None:
        """Detach the stream task; cancel it unless we are running inside it."""
        task, self._stream_task = self._stream_task, None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
        return task

    async def _teardown(self) -> None:
        await self._drain(self._close_stream())

    @staticmethod
    async def _drain(task: asyncio.Task | None) -> None:
        if task is None or task is asyncio.current_task():
            return
        await asyncio.gather(task, return_exceptions=True)

    def _notify(self) -> None:
        if not self._listeners:
            return
        view = self.view()
        for listener in list(self._listeners):
            try:
                listener(view)
            except Exception:
                logger.exception("Consumer listener %r failed", listener)
