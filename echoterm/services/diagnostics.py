from __future__ import annotations

import logging
from collections import deque
from typing import Deque

logger = logging.getLogger("echoterm.diagnostics")


class TerminalDiagnostics:
    """Append-only log of local-echo mismatches, kept for operator debugging.

    Entries survive clearing or pausing the echo engine; only ``reset_log``
    discards them. With a ``capacity`` the oldest entries are dropped first and
    counted in ``dropped``.
    """

    def __init__(self, capacity: int | None = None) -> None:
        self.capacity = capacity
        self.dropped = 0
        self._entries: Deque[str] = deque()

    def log(self, message: str) -> None:
        if self.capacity is not None and len(self._entries) >= self.capacity:
            self._entries.popleft()
            self.dropped += 1
        self._entries.append(message)
        logger.warning("Local echo mismatch: %s", message)

    @property
    def entries(self) -> tuple[str, ...]:
        return tuple(self._entries)

    def get_log(self) -> str:
        return "".join(f"{entry}\n" for entry in self._entries)

    def reset_log(self) -> None:
        self._entries.clear()
        self.dropped = 0

    def __len__(self) -> int:
        return len(self._entries)
