from __future__ import annotations

from enum import Enum


class TransportKind(str, Enum):
    detached = "detached"
    tmux = "tmux"
