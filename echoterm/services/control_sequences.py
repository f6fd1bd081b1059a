from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, Protocol

# Structured escape sequences: CSI/OSC/charset introducers in 7-bit (ESC) and
# 8-bit (0x9b) form, terminated either by BEL (OSC strings) or a final byte.
ANSI_REGEX = (
    r"[\x1b\x9b][\[\]()#;?]*"
    r"(?:(?:(?:[a-zA-Z\d]*(?:;[a-zA-Z\d]*)*)?\x07)"
    r"|(?:(?:\d{1,4}(?:;\d{0,4})*)?[\dA-PRZcf-ntqry=><~]))"
)

# Single-byte controls that never take part in echo matching: BS, LF, CR, DEL, BEL.
CONTROL_CHARS_REGEX = r"[\b\n\r\x7f\x07]"

ANSI_CTRL_PATTERN = re.compile(f"(?:{ANSI_REGEX})|(?:{CONTROL_CHARS_REGEX})")

_PRETTY_NAMES = {
    "\x1b": "<ESC>",
    "\x9b": "<CSI>",
    "\b": "<BS>",
    "\n": "<LF>",
    "\r": "<CR>",
    "\t": "<TAB>",
    "\x07": "<BEL>",
    "\x7f": "<DEL>",
}


@dataclass(frozen=True)
class ControlMatch:
    """One control span found in a chunk of terminal output."""

    text: str
    start: int
    value: str
    pattern: re.Pattern[str] = ANSI_CTRL_PATTERN

    @property
    def end(self) -> int:
        return self.start + len(self.value)

    def next_match(self) -> ControlMatch | None:
        return _search(self.pattern, self.text, self.end)


class Classifier(Protocol):
    def match(self, text: str, start: int = 0) -> ControlMatch | None:
        ...


class ControlSequenceClassifier:
    """Locates ANSI escape sequences and bare control bytes in output text.

    Only the position and literal value of each span are reported; what a
    sequence means to the screen is left to the display.
    """

    def __init__(self, pattern: re.Pattern[str] | str = ANSI_CTRL_PATTERN) -> None:
        self.pattern = re.compile(pattern) if isinstance(pattern, str) else pattern

    def match(self, text: str, start: int = 0) -> ControlMatch | None:
        return _search(self.pattern, text, start)

    def iter_matches(self, text: str) -> Iterator[ControlMatch]:
        match = self.match(text)
        while match is not None:
            yield match
            match = match.next_match()


def _search(pattern: re.Pattern[str], text: str, start: int) -> ControlMatch | None:
    while start <= len(text):
        found = pattern.search(text, start)
        if found is None:
            return None
        if found.end() > found.start():
            return ControlMatch(text=text, start=found.start(), value=found.group(0), pattern=pattern)
        # Zero-width hits would stall the scan; step past them.
        start = found.start() + 1
    return None


def pretty_print(text: str) -> str:
    """Render text with control characters spelled out, e.g. ``<ESC>[K``."""
    chars: list[str] = []
    for ch in text:
        name = _PRETTY_NAMES.get(ch)
        if name is not None:
            chars.append(name)
        elif ord(ch) < 0x20 or 0x80 <= ord(ch) <= 0x9F:
            chars.append(f"<0x{ord(ch):02x}>")
        else:
            chars.append(ch)
    return "".join(chars)
