from __future__ import annotations


class _LazySessionRegistry:
    def __init__(self) -> None:
        self._instance = None

    def _ensure(self):
        if self._instance is None:
            from echoterm.services.session import SessionRegistry

            self._instance = SessionRegistry()
        return self._instance

    def __getattr__(self, item):
        return getattr(self._ensure(), item)


session_registry = _LazySessionRegistry()
