"""Operator-facing run log.

This is NOT process logging.  It is the text the operator reads next to
the chart: lifecycle announcements, server acknowledgements, per-sample
errors and whatever diagnostic output the remote job emits.

The log is a bounded ring.  When full, the oldest entry is dropped
silently; appending never blocks and never fails.
"""

from __future__ import annotations

from collections import deque
from datetime import datetime

from pydantic import BaseModel, Field

from bearing_monitor.domain.enums import LogLevel
from bearing_monitor.foundation.clock import utc_now


class LogEntry(BaseModel):
    """One line of the run log.  The message is never truncated."""

    timestamp: datetime = Field(default_factory=utc_now)
    level: LogLevel = LogLevel.INFO
    message: str

    model_config = {"frozen": True}

    def render(self) -> str:
        """Render with the wall-clock time of the local timezone."""
        return f"[{self.timestamp.astimezone():%H:%M:%S}] {self.level.value.upper()}: {self.message}"


class RunLog:
    """Most-recent-N ring of LogEntry objects."""

    __slots__ = ("_entries",)

    def __init__(self, capacity: int = 100) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._entries: deque[LogEntry] = deque(maxlen=capacity)

    def info(self, message: str) -> LogEntry:
        return self.append(LogEntry(timestamp=utc_now(), message=message))

    def error(self, message: str) -> LogEntry:
        return self.append(
            LogEntry(timestamp=utc_now(), level=LogLevel.ERROR, message=message)
        )

    def append(self, entry: LogEntry) -> LogEntry:
        self._entries.append(entry)
        return entry

    @property
    def capacity(self) -> int:
        return self._entries.maxlen or 0

    @property
    def entries(self) -> list[LogEntry]:
        """Oldest-first copy of the retained entries."""
        return list(self._entries)

    def rendered(self) -> list[str]:
        return [entry.render() for entry in self._entries]

    def __len__(self) -> int:
        return len(self._entries)
