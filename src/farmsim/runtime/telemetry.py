from __future__ import annotations

from dataclasses import dataclass, field
import json
from typing import Any, Mapping


@dataclass(slots=True)
class Metrics:
    counters: dict[str, float] = field(default_factory=dict)
    gauges: dict[str, Any] = field(default_factory=dict)

    def inc(self, path: str, n: float = 1.0) -> float:
        self.counters[path] = self.counters.get(path, 0.0) + float(n)
        return self.counters[path]

    def get(self, path: str, default: float = 0.0) -> float:
        return self.counters.get(path, default)

    def set_gauge(self, path: str, value: Any) -> Any:
        self.gauges[path] = value
        return value

    def snapshot(self) -> dict[str, Any]:
        return {
            "counters": dict(sorted(self.counters.items())),
            "gauges": {k: self._to_jsonable(v) for k, v in sorted(self.gauges.items())},
        }

    def snapshot_signature(self) -> str:
        return json.dumps(self.snapshot(), sort_keys=True, separators=(",", ":"))

    def _to_jsonable(self, value: Any) -> Any:
        if isinstance(value, (str, int, float, bool)) or value is None:
            return value
        if isinstance(value, Mapping):
            return {str(k): self._to_jsonable(v) for k, v in sorted(value.items(), key=lambda itm: str(itm[0]))}
        if isinstance(value, (list, tuple, set)):
            return [self._to_jsonable(v) for v in value]
        return str(value)


@dataclass(slots=True)
class EventRing:
    capacity: int = 200
    events: list[Mapping[str, object]] = field(default_factory=list)

    def append(self, event: Mapping[str, object]) -> None:
        if self.capacity <= 0:
            return
        self.events.append(dict(event))
        if len(self.events) > int(self.capacity):
            self.events = self.events[-int(self.capacity) :]

    def tail(self, n: int = 10) -> list[Mapping[str, object]]:
        return list(self.events[-max(0, int(n)) :])


@dataclass(slots=True)
class DebugConfig:
    level: str = "minimal"
    ring_capacity: int = 200

    def has_event_ring(self) -> bool:
        return self.level in {"standard", "verbose"}

    def make_ring(self) -> EventRing:
        return EventRing(capacity=self.ring_capacity if self.has_event_ring() else 0)


__all__ = ["DebugConfig", "EventRing", "Metrics"]
