from __future__ import annotations

from collections import deque
from typing import Deque


class EchoTracker:
    """FIFO of characters shown locally but not yet seen in remote output.

    Not thread-safe: callers must serialise echo and reconciliation.
    """

    def __init__(self) -> None:
        self._queue: Deque[str] = deque()

    def record(self, ch: str) -> None:
        self._queue.append(ch)

    def consume_front(self) -> str | None:
        if not self._queue:
            return None
        return self._queue.popleft()

    def is_empty(self) -> bool:
        return not self._queue

    def clear(self) -> None:
        self._queue.clear()

    def pending(self) -> str:
        return "".join(self._queue)

    def __len__(self) -> int:
        return len(self._queue)
