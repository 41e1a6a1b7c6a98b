from __future__ import annotations

from typing import Dict, Iterable, List

from .base import ProcessHandler, ProcessKind


class ProcessRegistry:
    """Handlers indexed by process kind."""

    def __init__(self, handlers: Iterable[ProcessHandler] = ()) -> None:
        self._handlers: Dict[ProcessKind, ProcessHandler] = {}
        for handler in handlers:
            self.register(handler)

    def register(self, handler: ProcessHandler) -> None:
        if handler.kind in self._handlers:
            raise ValueError(f"Handler for {handler.kind.value} already registered")
        self._handlers[handler.kind] = handler

    def get(self, kind: ProcessKind) -> ProcessHandler | None:
        return self._handlers.get(kind)

    def kinds(self) -> List[ProcessKind]:
        return sorted(self._handlers, key=lambda kind: kind.value)

    def __contains__(self, kind: object) -> bool:
        return kind in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)


__all__ = ["ProcessRegistry"]
