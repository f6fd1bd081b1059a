from __future__ import annotations

from pydantic import BaseModel, Field

from echoterm.enums import TransportKind


class TerminalCreate(BaseModel):
    width: int | None = Field(default=None, gt=0)
    height: int | None = Field(default=None, gt=0)
    tmux_session: str | None = None


class TerminalRead(BaseModel):
    id: str
    width: int
    height: int
    transport: TransportKind
    pending_echo: str
    paused: bool
    pause_remaining_ms: int


class InputPayload(BaseModel):
    text: str


class OutputPayload(BaseModel):
    text: str


class PausePayload(BaseModel):
    duration_ms: int | None = Field(default=None, ge=0)


class ScreenRead(BaseModel):
    lines: list[str]
    cursor_x: int
    cursor_y: int
    written: str


class DiagnosticsRead(BaseModel):
    log: str
    entries: list[str]
    dropped: int


class PaneRead(BaseModel):
    lines: list[str]
