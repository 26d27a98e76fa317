"""Controlled enumerations for the bearing-monitor domain.

Every categorical field in the domain MUST reference an enum defined here.
Free-form strings are not acceptable for classification fields.
"""

from __future__ import annotations

from enum import Enum


class Channel(str, Enum):
    """The two parallel ESI channels emitted per minute."""

    RAW = "raw"
    SMOOTHED = "smoothed"


class StatusKind(str, Enum):
    """Discriminator for the consumer status variants."""

    IDLE = "idle"
    STARTING = "starting"
    AWAITING_DATA = "awaiting_data"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
    COMPLETED = "completed"
    FAILED = "failed"


class MessageType(str, Enum):
    """Recognised values of the ``type`` field on event-stream records."""

    ESI = "esi"
    RUL = "rul"
    SIMULATION_END = "simulation_end"
    STATUS = "status"
    ERROR_PYTHON = "error_python"
    ERROR_SYSTEM = "error_system"
    ERROR = "error"


class LogLevel(str, Enum):
    """Severity of an operator-facing run-log entry."""

    INFO = "info"
    ERROR = "error"
