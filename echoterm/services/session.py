from __future__ import annotations

import asyncio
import logging
import threading
from typing import Callable
from uuid import uuid4

from echoterm.config import settings
from echoterm.services.diagnostics import TerminalDiagnostics
from echoterm.services.local_echo import LocalEcho
from echoterm.services.terminal_emulator import PaneRenderer, ScreenWriter, TerminalDimensions
from echoterm.services.tmux import TmuxCommandError, TmuxController

logger = logging.getLogger(__name__)


class SessionNotFoundError(KeyError):
    pass


class TerminalSession:
    """Wires a transport, the local-echo engine and a screen together.

    One lock covers keystroke admission and output reconciliation end to end,
    since both mutate the same echo queue.
    """

    def __init__(
        self,
        session_id: str,
        dimensions: TerminalDimensions,
        transport: TmuxController | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.id = session_id
        self.dimensions = dimensions
        self.transport = transport
        self.screen = ScreenWriter(dimensions)
        self.local_echo = LocalEcho(
            self.screen,
            diagnostics=TerminalDiagnostics(capacity=settings.diagnostics_capacity),
            clock=clock,
        )
        self._lock = threading.RLock()
        self._pump_task: asyncio.Task | None = None

    def send_input(self, text: str) -> None:
        with self._lock:
            self.local_echo.echo(text)
            if self.transport is not None:
                self.transport.send_keys(text)

    def receive_output(self, text: str) -> None:
        with self._lock:
            self.local_echo.write(text)

    def pause(self, duration_ms: int | None = None) -> None:
        if duration_ms is None:
            duration_ms = settings.default_pause_ms
        with self._lock:
            self.local_echo.pause(duration_ms)

    def clear(self) -> None:
        with self._lock:
            self.local_echo.clear()

    def diagnostics(self) -> TerminalDiagnostics:
        return self.local_echo.diagnostics

    def reset_diagnostics(self) -> None:
        self.local_echo.reset_diagnostics()

    def pump_once(self) -> str:
        """Read the transport's new output once and reconcile it."""
        if self.transport is None:
            return ""
        try:
            output = self.transport.read_output()
        except TmuxCommandError as exc:
            logger.error("Output read failed for session %s: %s", self.id, exc)
            return ""
        if output:
            self.receive_output(output)
        return output

    def render_pane(self) -> list[str] | None:
        """Render the remote pane as tmux shows it, or None without a transport."""
        if self.transport is None:
            return None
        return PaneRenderer(self.dimensions).render_lines(self.transport.capture_pane())

    async def run_pump(self, interval: float | None = None) -> None:
        interval = interval or settings.pump_interval
        logger.info("Starting output pump for session %s (interval=%ss)", self.id, interval)
        try:
            while True:
                await asyncio.to_thread(self.pump_once)
                await asyncio.sleep(interval)
        except asyncio.CancelledError:
            logger.info("Output pump cancelled for session %s", self.id)
            raise

    def start_pump(self) -> None:
        if self.transport is not None and self._pump_task is None:
            self._pump_task = asyncio.get_running_loop().create_task(self.run_pump())

    def stop_pump(self) -> None:
        if self._pump_task is not None:
            self._pump_task.cancel()
            self._pump_task = None
        if self.transport is not None:
            self.transport.stop_output_pipe()


class SessionRegistry:
    """Tracks live terminal sessions by id."""

    def __init__(self) -> None:
        self._sessions: dict[str, TerminalSession] = {}
        self._lock = threading.Lock()

    def create(
        self,
        width: int | None = None,
        height: int | None = None,
        tmux_session: str | None = None,
    ) -> TerminalSession:
        dimensions = TerminalDimensions(
            width=width or settings.terminal_width,
            height=height or settings.terminal_height,
        )
        transport = None
        if tmux_session:
            transport = TmuxController(tmux_session)
            if not transport.has_session():
                raise TmuxCommandError(f"tmux session '{tmux_session}' does not exist")
        session_id = str(uuid4())
        if transport is not None:
            transport.start_output_pipe(settings.pipe_dir / f"{session_id}.log")
        session = TerminalSession(session_id, dimensions, transport=transport)
        with self._lock:
            self._sessions[session.id] = session
        logger.info("Created terminal session %s (%sx%s)", session.id, dimensions.width, dimensions.height)
        return session

    def get(self, session_id: str) -> TerminalSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def list_sessions(self) -> list[TerminalSession]:
        return list(self._sessions.values())

    def close(self, session_id: str) -> None:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFoundError(session_id)
        session.stop_pump()
        logger.info("Closed terminal session %s", session_id)

    def close_all(self) -> None:
        for session_id in list(self._sessions):
            self.close(session_id)
