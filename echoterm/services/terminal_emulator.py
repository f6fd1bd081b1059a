from __future__ import annotations

import re
from dataclasses import dataclass

import pyte


@dataclass
class TerminalDimensions:
    width: int
    height: int


def _trimmed_display(screen: pyte.Screen) -> list[str]:
    lines = [line.rstrip() for line in screen.display]
    # Trailing blank rows carry no output.
    while lines and not lines[-1]:
        lines.pop()
    return lines


_BARE_LF_RE = re.compile(r"(?<!\r)\n")


class PaneRenderer:
    """Renders a remote pane snapshot (``capture-pane -e``) into screen lines.

    Shows what the remote side believes is on screen, for comparison with the
    locally reconciled ``ScreenWriter``.
    """

    def __init__(self, dimensions: TerminalDimensions) -> None:
        self.dimensions = dimensions
        self._screen = pyte.Screen(dimensions.width, dimensions.height)
        self._stream = pyte.Stream(self._screen)

    def render_lines(self, capture: str) -> list[str]:
        self._screen.reset()
        # Captured rows end in bare LF; the screen needs CR to return to column 0.
        self._stream.feed(_BARE_LF_RE.sub("\r\n", capture))
        return _trimmed_display(self._screen)


class ScreenWriter:
    """Display sink for local echo: feeds each written fragment to a live screen.

    Unlike ``PaneRenderer.render_lines`` the screen is never reset between
    writes, so cursor movement and backspaces act on what is already shown.
    """

    def __init__(self, dimensions: TerminalDimensions) -> None:
        self.dimensions = dimensions
        self.fragments: list[str] = []
        self._screen = pyte.Screen(dimensions.width, dimensions.height)
        self._stream = pyte.Stream(self._screen)

    def __call__(self, text: str) -> None:
        self.write(text)

    def write(self, text: str) -> None:
        self.fragments.append(text)
        self._stream.feed(text)

    @property
    def written(self) -> str:
        return "".join(self.fragments)

    @property
    def cursor(self) -> tuple[int, int]:
        return self._screen.cursor.x, self._screen.cursor.y

    def display(self) -> list[str]:
        return _trimmed_display(self._screen)

    def reset(self) -> None:
        self.fragments.clear()
        self._screen.reset()
