import asyncio

import pytest

from echoterm.config import settings
from echoterm.services.session import SessionNotFoundError, SessionRegistry, TerminalSession
from echoterm.services.terminal_emulator import TerminalDimensions
from echoterm.services.tmux import TmuxCommandError, TmuxController


class FakeTransport:
    """Stands in for a tmux pane: keystrokes in, raw output stream out."""

    def __init__(self, chunks: list[str] | None = None, fail: bool = False, pane: str = "") -> None:
        self.keys: list[str] = []
        self.chunks = list(chunks or [])
        self.fail = fail
        self.pane = pane
        self.pipe_stopped = False

    def send_keys(self, text: str) -> None:
        self.keys.append(text)

    def read_output(self) -> str:
        if self.fail:
            raise TmuxCommandError("pane gone")
        return self.chunks.pop(0) if self.chunks else ""

    def capture_pane(self) -> str:
        return self.pane

    def stop_output_pipe(self) -> None:
        self.pipe_stopped = True


def _session(transport: FakeTransport | None = None) -> TerminalSession:
    return TerminalSession("s1", TerminalDimensions(width=20, height=4), transport=transport)


def test_typed_command_and_remote_output_render_once() -> None:
    session = _session()
    for ch in "ls":
        session.send_input(ch)
    session.receive_output("ls\r\nfile\r\n")
    assert session.screen.display() == ["ls", "file"]
    assert session.local_echo.is_empty()


def test_send_input_forwards_keystrokes_to_transport() -> None:
    transport = FakeTransport()
    session = _session(transport)
    session.send_input("a")
    session.send_input("\x1b[A")
    assert transport.keys == ["a", "\x1b[A"]
    assert session.local_echo.pending == "a"


def test_pump_once_reconciles_new_output() -> None:
    transport = FakeTransport(chunks=["ab"])
    session = _session(transport)
    session.send_input("a")
    assert session.pump_once() == "ab"
    assert session.screen.fragments == ["a", "b"]


def test_pump_once_swallows_transport_errors() -> None:
    session = _session(FakeTransport(fail=True))
    assert session.pump_once() == ""


def test_pause_without_duration_uses_default() -> None:
    session = _session()
    session.send_input("a")
    session.pause()
    assert session.local_echo.paused()
    assert session.local_echo.is_empty()


def test_run_pump_feeds_output_until_cancelled() -> None:
    session = _session(FakeTransport(chunks=["x"]))

    async def scenario() -> None:
        task = asyncio.create_task(session.run_pump(interval=0.01))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())
    assert session.screen.display() == ["x"]


def test_registry_tracks_sessions() -> None:
    registry = SessionRegistry()
    session = registry.create(width=30, height=5)
    assert registry.get(session.id) is session
    assert registry.list_sessions() == [session]
    assert session.dimensions == TerminalDimensions(width=30, height=5)
    registry.close(session.id)
    with pytest.raises(SessionNotFoundError):
        registry.get(session.id)
    with pytest.raises(SessionNotFoundError):
        registry.close(session.id)


def test_registry_rejects_missing_tmux_session(monkeypatch) -> None:
    monkeypatch.setattr(TmuxController, "has_session", lambda self: False)
    with pytest.raises(TmuxCommandError):
        SessionRegistry().create(tmux_session="missing")


def test_typing_on_prompt_line_is_confirmed_by_streamed_echo() -> None:
    transport = FakeTransport(chunks=["$ ", "", "x"])
    session = _session(transport)
    session.pump_once()
    session.send_input("x")
    assert session.local_echo.pending == "x"
    assert session.pump_once() == ""
    assert session.pump_once() == "x"
    assert session.local_echo.is_empty()
    assert session.screen.display() == ["$ x"]
    assert len(session.diagnostics()) == 0


def test_render_pane_shows_remote_view() -> None:
    session = _session(FakeTransport(pane="\x1b[1m$\x1b[0m ls\nfile\n"))
    assert session.render_pane() == ["$ ls", "file"]
    assert _session().render_pane() is None


def test_stop_pump_closes_output_pipe() -> None:
    transport = FakeTransport()
    session = _session(transport)
    session.stop_pump()
    assert transport.pipe_stopped


def test_registry_pipes_tmux_output_per_session(monkeypatch) -> None:
    started: list = []
    monkeypatch.setattr(TmuxController, "has_session", lambda self: True)
    monkeypatch.setattr(TmuxController, "start_output_pipe", lambda self, path: started.append(path))
    monkeypatch.setattr(TmuxController, "stop_output_pipe", lambda self: None)
    registry = SessionRegistry()
    session = registry.create(tmux_session="work")
    assert started == [settings.pipe_dir / f"{session.id}.log"]
    assert session.transport is not None
    registry.close(session.id)
