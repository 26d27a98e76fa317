"""Minute-ordered ESI series with two aligned channels.

Design notes:
    - Minutes live in a sorted list; new minutes are placed with bisect,
      so ordering is numeric (9 before 10) whatever the arrival order.
    - ``raw`` and ``smoothed`` are parallel lists aligned with ``minutes``.
      A minute seen on one channel only holds None on the other: a gap,
      never a zero.
    - Non-finite floats are stored as None.  The wire format expresses
      "infinite" and "not a number" as flags, never as IEEE values.
    - The store is NOT locked.  It is mutated only by TelemetryConsumer
      on the event loop, one frame at a time.
    - snapshot() hands out tuples; callers never see the live lists.
"""

from __future__ import annotations

import math
from bisect import bisect_left
from typing import Optional

from pydantic import BaseModel

from bearing_monitor.domain.enums import Channel
from bearing_monitor.domain.rul import RulEstimate


class SeriesSnapshot(BaseModel):
    """Immutable copy of the series at one point in time."""

    minutes: tuple[int, ...] = ()
    raw: tuple[Optional[float], ...] = ()
    smoothed: tuple[Optional[float], ...] = ()
    latest_rul: Optional[RulEstimate] = None

    model_config = {"frozen": True}

    @property
    def labels(self) -> list[str]:
        """Category-axis labels, in minute order."""
        return [str(m) for m in self.minutes]

    def __len__(self) -> int:
        return len(self.minutes)


def _normalise(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    value = float(value)
    if not math.isfinite(value):
        return None
    return value


class TimeSeriesStore:
    """Append/merge structure for one run's ESI channels and latest RUL."""

    __slots__ = ("_minutes", "_channels", "_latest_rul")

    def __init__(self) -> None:
        self._minutes: list[int] = []
        self._channels: dict[Channel, list[Optional[float]]] = {
            Channel.RAW: [],
            Channel.SMOOTHED: [],
        }
        self._latest_rul: Optional[RulEstimate] = None

    # ── Mutation ─────────────────────────────────────────────────────────

    def upsert(self, minute: int, channel: Channel, value: Optional[float]) -> int:
        """Set *channel* at *minute*, inserting the minute if it is new.

        Last write wins.  Returns the index of *minute* in the series.
        """
        index = self._slot(minute)
        self._channels[channel][index] = _normalise(value)
        return index

    def apply_sample(
        self,
        minute: int,
        raw: Optional[float],
        smoothed: Optional[float],
    ) -> int:
        """Write both channels of one ESI reading."""
        index = self._slot(minute)
        self._channels[Channel.RAW][index] = _normalise(raw)
        self._channels[Channel.SMOOTHED][index] = _normalise(smoothed)
        return index

    def set_rul(self, estimate: RulEstimate) -> None:
        """Replace the latest RUL estimate.  No history is kept."""
        self._latest_rul = estimate

    # ── Queries ──────────────────────────────────────────────────────────

    @property
    def minutes(self) -> list[int]:
        return list(self._minutes)

    @property
    def latest_rul(self) -> Optional[RulEstimate]:
        return self._latest_rul

    def value_at(self, minute: int, channel: Channel) -> Optional[float]:
        index = bisect_left(self._minutes, minute)
        if index < len(self._minutes) and self._minutes[index] == minute:
            return self._channels[channel][index]
        return None

    def snapshot(self) -> SeriesSnapshot:
        return SeriesSnapshot(
            minutes=tuple(self._minutes),
            raw=tuple(self._channels[Channel.RAW]),
            smoothed=tuple(self._channels[Channel.SMOOTHED]),
            latest_rul=self._latest_rul,
        )

    def __len__(self) -> int:
        return len(self._minutes)

    # ── Internals ────────────────────────────────────────────────────────

    def _slot(self, minute: int) -> int:
        """Index of *minute*, creating an empty slot on every channel if new."""
        if minute < 0:
            raise ValueError(f"minute must be >= 0, got {minute}")
        index = bisect_left(self._minutes, minute)
        if index < len(self._minutes) and self._minutes[index] == minute:
            return index
        self._minutes.insert(index, minute)
        for values in self._channels.values():
            values.insert(index, None)
        return index
