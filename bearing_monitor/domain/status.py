"""Status — the closed set of states a monitoring run can be in.

Presentation code matches on ``kind`` instead of parsing label strings.
Variant payloads (target name, failure reason) travel with the variant.

Lifecycle:
    Idle → Starting → AwaitingData → Running → {Completed, Failed, Stopped}
    Stopping is transient and always resolves to Stopped.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from bearing_monitor.domain.enums import StatusKind

_ACTIVE_KINDS = frozenset(
    {StatusKind.STARTING, StatusKind.AWAITING_DATA, StatusKind.RUNNING}
)
_TERMINAL_KINDS = frozenset(
    {StatusKind.STOPPED, StatusKind.COMPLETED, StatusKind.FAILED}
)


class _StatusBase(BaseModel):
    model_config = {"frozen": True}

    @property
    def is_active(self) -> bool:
        """True while a run owns (or is about to own) a stream connection."""
        return self.kind in _ACTIVE_KINDS

    @property
    def is_terminal(self) -> bool:
        return self.kind in _TERMINAL_KINDS


class Idle(_StatusBase):
    kind: Literal[StatusKind.IDLE] = StatusKind.IDLE

    @property
    def label(self) -> str:
        return "Ocioso"


class Starting(_StatusBase):
    kind: Literal[StatusKind.STARTING] = StatusKind.STARTING

    @property
    def label(self) -> str:
        return "Iniciando..."


class AwaitingData(_StatusBase):
    kind: Literal[StatusKind.AWAITING_DATA] = StatusKind.AWAITING_DATA

    @property
    def label(self) -> str:
        return "Conectado, aguardando dados..."


class Running(_StatusBase):
    kind: Literal[StatusKind.RUNNING] = StatusKind.RUNNING

    @property
    def label(self) -> str:
        return "Rodando"


class Stopping(_StatusBase):
    kind: Literal[StatusKind.STOPPING] = StatusKind.STOPPING

    @property
    def label(self) -> str:
        return "Parando..."


class Stopped(_StatusBase):
    """Run halted by the operator.

    ``acknowledged`` is False when the remote stop request failed; the
    local stream is closed either way.
    """

    kind: Literal[StatusKind.STOPPED] = StatusKind.STOPPED
    acknowledged: bool = True

    @property
    def label(self) -> str:
        if self.acknowledged:
            return "Parada pelo usuário."
        return "Parada pelo usuário (sem confirmação do servidor)."


class Completed(_StatusBase):
    kind: Literal[StatusKind.COMPLETED] = StatusKind.COMPLETED
    target: str

    @property
    def label(self) -> str:
        return f"Finalizada ({self.target})"


class Failed(_StatusBase):
    """Terminal failure.  ``reason`` is the full text, ``preview`` the
    display-sized prefix of it."""

    kind: Literal[StatusKind.FAILED] = StatusKind.FAILED
    reason: str
    preview: str

    @classmethod
    def from_reason(cls, reason: str, preview_chars: int = 50) -> Failed:
        preview = reason
        if len(reason) > preview_chars:
            preview = reason[:preview_chars] + "..."
        return cls(reason=reason, preview=preview)

    @property
    def label(self) -> str:
        return f"Erro: {self.preview}"


Status = Annotated[
    Union[Idle, Starting, AwaitingData, Running, Stopping, Stopped, Completed, Failed],
    Field(discriminator="kind"),
]

status_adapter: TypeAdapter[Status] = TypeAdapter(Status)
