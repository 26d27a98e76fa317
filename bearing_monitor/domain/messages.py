"""Event-stream message models and the frame classifier.

Each SSE ``data:`` payload is a JSON record discriminated by ``type``.
classify_frame() turns one raw frame into exactly one typed message:

    esi                               → EsiReading
    rul                               → RulReading
    simulation_end / status=completed → RunCompleted
    error_python / error_system / error → FatalError
    anything else (incl. bad JSON)    → Diagnostic

Classification never raises.  A frame that fails validation for its
declared type degrades to a Diagnostic carrying the verbatim text.
"""

from __future__ import annotations

import json
import logging
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from bearing_monitor.domain.enums import MessageType
from bearing_monitor.domain.rul import RulEstimate

logger = logging.getLogger(__name__)

UNKNOWN_FATAL_MESSAGE = "Erro desconhecido na simulação"


class _StreamRecord(BaseModel):
    model_config = {"frozen": True, "extra": "ignore"}


class EsiReading(_StreamRecord):
    """One minute of ESI telemetry for a bearing."""

    type: Literal["esi"]
    bearing: str = ""
    minute: int = Field(..., ge=0)
    value_raw_g: Optional[float] = None
    value_smoothed_g: Optional[float] = None
    error: Optional[str] = Field(
        default=None,
        description="Upstream failure for this minute only; numeric fields still apply",
    )


class RulReading(_StreamRecord):
    """A remaining-useful-life prediction emitted for a run minute."""

    type: Literal["rul"]
    bearing: str = ""
    minute: int = Field(..., ge=0)
    rul_predicted_min: Optional[float] = None
    is_inf: bool = False
    is_nan: bool = False

    def to_estimate(self) -> RulEstimate:
        return RulEstimate(
            minute=self.minute,
            predicted_minutes=self.rul_predicted_min,
            is_infinite=self.is_inf,
            is_not_a_number=self.is_nan,
        )


class RunCompleted(_StreamRecord):
    type: Literal["simulation_end", "status"]
    bearing: Optional[str] = None
    status: Optional[str] = None


class FatalError(_StreamRecord):
    type: Literal["error_python", "error_system", "error"]
    message: Optional[str] = None

    @property
    def text(self) -> str:
        return self.message or UNKNOWN_FATAL_MESSAGE


class Diagnostic(_StreamRecord):
    """Free-form output from the job, or a frame we could not interpret.

    ``structured`` is False when the frame was not a JSON object, in which
    case ``text`` is the frame verbatim.
    """

    text: str
    structured: bool = True

    @property
    def log_line(self) -> str:
        if not self.structured:
            return self.text
        return f"[PYTHON LOG]: {self.text}"


StreamMessage = Union[EsiReading, RulReading, RunCompleted, FatalError, Diagnostic]

_MODELS: dict[str, type[_StreamRecord]] = {
    MessageType.ESI.value: EsiReading,
    MessageType.RUL.value: RulReading,
    MessageType.SIMULATION_END.value: RunCompleted,
    MessageType.ERROR_PYTHON.value: FatalError,
    MessageType.ERROR_SYSTEM.value: FatalError,
    MessageType.ERROR.value: FatalError,
}


def classify_frame(data: str) -> StreamMessage:
    """Parse and classify a single event-stream payload."""
    try:
        payload = json.loads(data)
    except (ValueError, RecursionError):
        return Diagnostic(text=data, structured=False)
    if not isinstance(payload, dict):
        return Diagnostic(text=data, structured=False)

    kind = payload.get("type")

    if kind == MessageType.STATUS.value and payload.get("status") == "completed":
        model: Optional[type[_StreamRecord]] = RunCompleted
    else:
        model = _MODELS.get(kind) if isinstance(kind, str) else None

    if model is None:
        return _diagnostic_from(payload)

    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        logger.debug("Frame of type %r failed validation: %s", kind, exc)
        return Diagnostic(text=data, structured=False)


def _diagnostic_from(payload: dict) -> Diagnostic:
    message = payload.get("message")
    if isinstance(message, str) and message:
        return Diagnostic(text=message)
    return Diagnostic(text=json.dumps(payload, ensure_ascii=False))
