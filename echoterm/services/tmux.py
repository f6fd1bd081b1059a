from __future__ import annotations

import codecs
import logging
import subprocess
from pathlib import Path
from shlex import quote

from echoterm.config import settings

logger = logging.getLogger(__name__)


class TmuxCommandError(RuntimeError):
    pass


class TmuxController:
    """Keystroke and output channel for a tmux pane.

    Output is taken from ``pipe-pane``, which appends the raw byte stream the
    pane receives (escapes included) to a file; ``read_output`` returns what
    was appended since the previous read. ``capture_pane`` is only a rendered
    snapshot and is not suitable for reconciliation.
    """

    def __init__(self, session: str, pane: str = "0") -> None:
        self.session = session
        self.pane = pane
        self.tmux_bin = settings.tmux_bin
        self.output_path: Path | None = None
        self._offset = 0
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    @property
    def target(self) -> str:
        return f"{self.session}:{self.pane}"

    def _run(self, *args: str, check: bool = True) -> subprocess.CompletedProcess[str]:
        cmd = [self.tmux_bin, *args]
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError as exc:
            raise TmuxCommandError(f"tmux binary not found: {self.tmux_bin}") from exc
        if check and result.returncode != 0:
            logger.error("tmux %s failed for %s: %s", args[0], self.target, result.stderr.strip())
            raise TmuxCommandError(result.stderr.strip() or "tmux command failed")
        return result

    def has_session(self) -> bool:
        return self._run("has-session", "-t", self.session, check=False).returncode == 0

    def send_keys(self, text: str) -> None:
        # -l sends the text literally instead of as key names.
        self._run("send-keys", "-t", self.target, "-l", text)

    def start_output_pipe(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.touch()
        self.output_path = path
        self._offset = path.stat().st_size
        self._decoder.reset()
        self._run("pipe-pane", "-o", "-t", self.target, f"cat >> {quote(str(path))}")
        logger.info("Piping output of %s to %s", self.target, path)

    def stop_output_pipe(self) -> None:
        if self.output_path is None:
            return
        # pipe-pane without a command closes the current pipe.
        self._run("pipe-pane", "-t", self.target, check=False)
        self.output_path = None

    def read_output(self) -> str:
        if self.output_path is None:
            return ""
        try:
            with self.output_path.open("rb") as handle:
                handle.seek(self._offset)
                data = handle.read()
        except OSError as exc:
            raise TmuxCommandError(f"cannot read pane output {self.output_path}: {exc}") from exc
        self._offset += len(data)
        # Multi-byte characters split across reads stay buffered in the decoder.
        return self._decoder.decode(data)

    def capture_pane(self) -> str:
        result = self._run("capture-pane", "-pe", "-t", self.target)
        return result.stdout
