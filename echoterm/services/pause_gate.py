from __future__ import annotations

import time
from typing import Callable


class PauseGate:
    """Time-windowed suppression of local echo.

    Expiry is checked lazily: the deadline is only compared, and unset once
    passed, when ``is_paused`` is called. No timer is scheduled.
    """

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        self._clock = clock or time.monotonic
        self._deadline: float | None = None

    @property
    def deadline(self) -> float | None:
        return self._deadline

    def pause(self, duration_ms: int) -> None:
        self._deadline = self._clock() + duration_ms / 1000.0

    def is_paused(self) -> bool:
        if self._deadline is None:
            return False
        if self._clock() < self._deadline:
            return True
        self._deadline = None
        return False

    def remaining_ms(self) -> int:
        if not self.is_paused():
            return 0
        return max(0, int(((self._deadline or 0.0) - self._clock()) * 1000))
