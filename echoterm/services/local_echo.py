from __future__ import annotations

import logging
from typing import Callable

from echoterm.services.control_sequences import Classifier, ControlSequenceClassifier, pretty_print
from echoterm.services.diagnostics import TerminalDiagnostics
from echoterm.services.echo_tracker import EchoTracker
from echoterm.services.pause_gate import PauseGate

logger = logging.getLogger(__name__)

BACKSPACE = "\b"

Writer = Callable[[str], None]


class LocalEcho:
    """Shows typed characters immediately and reconciles them with remote output.

    Every locally echoed character is queued. When the remote's output arrives,
    its literal text is matched against the front of the queue so characters
    already on screen are not written a second time; anything unmatched is
    written through. Control sequences are excluded from matching and always
    written verbatim.

    ``echo`` and ``write`` share the queue without locking and must be called
    from a single dispatch thread, or under one lock covering both.
    """

    def __init__(
        self,
        writer: Writer,
        *,
        classifier: Classifier | None = None,
        diagnostics: TerminalDiagnostics | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._writer = writer
        self._classifier = classifier or ControlSequenceClassifier()
        self._diagnostics = diagnostics if diagnostics is not None else TerminalDiagnostics()
        self._tracker = EchoTracker()
        self._gate = PauseGate(clock)

    @property
    def tracker(self) -> EchoTracker:
        return self._tracker

    @property
    def gate(self) -> PauseGate:
        return self._gate

    @property
    def diagnostics(self) -> TerminalDiagnostics:
        return self._diagnostics

    @property
    def pending(self) -> str:
        return self._tracker.pending()

    def echo(self, text: str) -> None:
        if self.paused():
            return
        # Longer input is pasted text or a synthesized key sequence; only
        # single characters are echoed and tracked.
        if len(text) != 1:
            return
        if " " <= text <= "~" or text == BACKSPACE:
            self._tracker.record(text)
            self._writer(text)

    def is_empty(self) -> bool:
        return self._tracker.is_empty()

    def write(self, output: str) -> None:
        # Shells mix ^H, ESC[K and BEL into output that was already echoed
        # (rapid typing, backspacing at the start of a line). Matching
        # across those sequences would desync the queue and leave characters
        # on screen that backspace can no longer remove.
        chunk_start = 0
        match = self._classifier.match(output, 0)
        while match is not None:
            literal = output[chunk_start : match.start]
            if literal:
                if self._output_non_echoed(literal) == 0:
                    self._writer(output[match.start :])
                    return

            if match.value == BACKSPACE and not self._tracker.is_empty():
                # Typed backspaces are already queued and on screen. Any other
                # queued character is text the remote never saw, so its
                # backspace has to start deleting one position further on.
                popped = self._tracker.consume_front()
                if popped != BACKSPACE:
                    logger.debug("Remote backspace popped unconfirmed %r", popped)
                    self._writer(match.value)

            self._writer(match.value)
            chunk_start = match.end
            match = match.next_match()

        remainder = output[chunk_start:]
        if remainder:
            self._output_non_echoed(remainder)

    def _output_non_echoed(self, output: str) -> int:
        """Skip the queued prefix of ``output`` and write whatever follows it.

        Returns the number of characters matched against the queue; 0 means
        the queue was discarded after a mismatch (or was already empty).
        """
        consumed: list[str] = []
        consumed_len = 0
        while not self._tracker.is_empty() and consumed_len < len(output):
            ch = self._tracker.consume_front() or ""
            consumed.append(ch)
            consumed_len += len(ch)
        had = "".join(consumed)

        if had == output:
            logger.debug("Echo confirmed %d chars", len(output))
            return len(output)

        if output.startswith(had):
            logger.debug("Echo confirmed %d of %d chars", len(had), len(output))
            self._writer(output[len(had) :])
            return len(had)

        self._diagnostics.log(f"Received: '{pretty_print(output)}' Had: '{pretty_print(had)}'")
        self._tracker.clear()
        self._writer(output)
        return 0

    def clear(self) -> None:
        self._tracker.clear()

    def pause(self, duration_ms: int) -> None:
        self._gate.pause(duration_ms)
        self.clear()
        logger.debug("Local echo paused for %sms", duration_ms)

    def paused(self) -> bool:
        return self._gate.is_paused()

    def get_diagnostics(self) -> str:
        return self._diagnostics.get_log()

    def reset_diagnostics(self) -> None:
        self._diagnostics.reset_log()
