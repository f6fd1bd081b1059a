from __future__ import annotations

import asyncio
from typing import List

from fastapi import APIRouter, HTTPException

from echoterm.enums import TransportKind
from echoterm.schemas import (
    DiagnosticsRead,
    InputPayload,
    OutputPayload,
    PaneRead,
    PausePayload,
    ScreenRead,
    TerminalCreate,
    TerminalRead,
)
from echoterm.services import session_registry
from echoterm.services.session import SessionNotFoundError, TerminalSession
from echoterm.services.tmux import TmuxCommandError

router = APIRouter(prefix="/terminals", tags=["terminals"])


def _get_session(session_id: str) -> TerminalSession:
    try:
        return session_registry.get(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Terminal session not found")


def _to_read(session: TerminalSession) -> TerminalRead:
    local_echo = session.local_echo
    return TerminalRead(
        id=session.id,
        width=session.dimensions.width,
        height=session.dimensions.height,
        transport=TransportKind.tmux if session.transport else TransportKind.detached,
        pending_echo=local_echo.pending,
        paused=local_echo.paused(),
        pause_remaining_ms=local_echo.gate.remaining_ms(),
    )


@router.post("", response_model=TerminalRead)
async def create_terminal(payload: TerminalCreate) -> TerminalRead:
    try:
        session = await asyncio.to_thread(
            session_registry.create, payload.width, payload.height, payload.tmux_session
        )
    except TmuxCommandError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    session.start_pump()
    return _to_read(session)


@router.get("", response_model=List[TerminalRead])
async def list_terminals() -> list[TerminalRead]:
    return [_to_read(session) for session in session_registry.list_sessions()]


@router.get("/{session_id}", response_model=TerminalRead)
async def get_terminal(session_id: str) -> TerminalRead:
    return _to_read(_get_session(session_id))


@router.delete("/{session_id}", status_code=204)
async def close_terminal(session_id: str) -> None:
    try:
        session_registry.close(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Terminal session not found")


@router.post("/{session_id}/input", response_model=TerminalRead)
async def send_input(session_id: str, payload: InputPayload) -> TerminalRead:
    session = _get_session(session_id)
    try:
        await asyncio.to_thread(session.send_input, payload.text)
    except TmuxCommandError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    return _to_read(session)


@router.post("/{session_id}/output", response_model=TerminalRead)
async def receive_output(session_id: str, payload: OutputPayload) -> TerminalRead:
    session = _get_session(session_id)
    session.receive_output(payload.text)
    return _to_read(session)


@router.post("/{session_id}/pause", response_model=TerminalRead)
async def pause_echo(session_id: str, payload: PausePayload) -> TerminalRead:
    session = _get_session(session_id)
    session.pause(payload.duration_ms)
    return _to_read(session)


@router.post("/{session_id}/clear", response_model=TerminalRead)
async def clear_echo(session_id: str) -> TerminalRead:
    session = _get_session(session_id)
    session.clear()
    return _to_read(session)


@router.get("/{session_id}/screen", response_model=ScreenRead)
async def get_screen(session_id: str) -> ScreenRead:
    screen = _get_session(session_id).screen
    cursor_x, cursor_y = screen.cursor
    return ScreenRead(lines=screen.display(), cursor_x=cursor_x, cursor_y=cursor_y, written=screen.written)


@router.get("/{session_id}/diagnostics", response_model=DiagnosticsRead)
async def get_diagnostics(session_id: str) -> DiagnosticsRead:
    diagnostics = _get_session(session_id).diagnostics()
    return DiagnosticsRead(
        log=diagnostics.get_log(),
        entries=list(diagnostics.entries),
        dropped=diagnostics.dropped,
    )


@router.delete("/{session_id}/diagnostics", response_model=DiagnosticsRead)
async def reset_diagnostics(session_id: str) -> DiagnosticsRead:
    session = _get_session(session_id)
    session.reset_diagnostics()
    return DiagnosticsRead(log="", entries=[], dropped=0)


@router.get("/{session_id}/pane", response_model=PaneRead)
async def get_pane(session_id: str) -> PaneRead:
    session = _get_session(session_id)
    if session.transport is None:
        raise HTTPException(status_code=409, detail="Terminal session has no tmux pane")
    try:
        lines = await asyncio.to_thread(session.render_pane)
    except TmuxCommandError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    return PaneRead(lines=lines or [])
