"""RulEstimate — the latest remaining-useful-life prediction for a run.

Exactly one interpretation is authoritative:
    infinite > numeric > not available

The wire format carries non-finite values as boolean flags, so a raw
``inf`` or ``nan`` arriving in ``predicted_minutes`` is folded into the
matching flag and never stored as a float.
"""

from __future__ import annotations

import math
from typing import Any, Optional

from pydantic import BaseModel, Field, model_validator

INFINITE_DISPLAY = "Infinito"
NOT_AVAILABLE_DISPLAY = "N/A"


class RulEstimate(BaseModel):
    """A single RUL forecast, in minutes, for a given run minute."""

    minute: int = Field(..., ge=0, description="Run minute the prediction refers to")
    predicted_minutes: Optional[float] = Field(
        default=None,
        description="Forecast remaining life in minutes, when finite",
    )
    is_infinite: bool = False
    is_not_a_number: bool = False

    model_config = {"frozen": True}

    @model_validator(mode="before")
    @classmethod
    def fold_non_finite(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        value = data.get("predicted_minutes")
        if isinstance(value, float) and not math.isfinite(value):
            data = dict(data)
            data["predicted_minutes"] = None
            if math.isnan(value):
                data["is_not_a_number"] = True
            else:
                data["is_infinite"] = True
        return data

    @property
    def has_value(self) -> bool:
        return not self.is_infinite and self.predicted_minutes is not None

    @property
    def display(self) -> str:
        """Operator-facing text: ``Infinito``, ``12.30 min`` or ``N/A``."""
        if self.is_infinite:
            return INFINITE_DISPLAY
        if self.predicted_minutes is not None:
            return f"{self.predicted_minutes:.2f} min"
        return NOT_AVAILABLE_DISPLAY
