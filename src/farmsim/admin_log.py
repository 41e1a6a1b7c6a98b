"""Bounded diagnostic event log for simulation runs.

The engine, process manager and roll cache record what just happened here so
hosts (the CLI, tests, a balancing notebook) can inspect a run without poking
through state internals:

* side-effect free records stamped with the simulated minute
* helpers for the common families (routed actions, process resolutions,
  refusals, roll invalidations)
* a ring buffer with filtering for "show me the last N" queries
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Iterable, List, Mapping, MutableMapping, Optional, Sequence, Tuple

ACTION_ROUTED = "ACTION_ROUTED"
ACTION_FAILED = "ACTION_FAILED"
PROCESS_STARTED = "PROCESS_STARTED"
PROCESS_REFUSED = "PROCESS_REFUSED"
PROCESS_RESOLVED = "PROCESS_RESOLVED"
ROLL_CLEARED = "ROLL_CLEARED"
OFFLINE_APPLIED = "OFFLINE_APPLIED"
RUN_STATUS = "RUN_STATUS"


@dataclass(slots=True)
class AdminEvent:
    """Structured record for a single diagnostic event."""

    minute: float
    event_type: str
    payload: MutableMapping[str, Any]
    system: Optional[str] = None
    tags: Tuple[str, ...] = field(default_factory=tuple)

    def summary(self) -> str:
        if self.event_type in (ACTION_ROUTED, ACTION_FAILED):
            action = self.payload.get("action", "?")
            error = self.payload.get("error")
            if error:
                return f"{action}: {error}"
            return str(action)
        if self.event_type == PROCESS_RESOLVED:
            return f"{self.payload.get('process_id', '?')} -> {self.payload.get('outcome', '?')}"
        if self.event_type == PROCESS_REFUSED:
            return f"{self.payload.get('kind', '?')} refused ({self.payload.get('reason', '?')})"
        return ", ".join(f"{k}={v}" for k, v in sorted(self.payload.items()))


class AdminEventLog:
    """Fixed-size event history."""

    def __init__(self, capacity: int = 1_000) -> None:
        self.capacity = max(1, capacity)
        self._events: Deque[AdminEvent] = deque(maxlen=self.capacity)

    def record(
        self,
        *,
        minute: float,
        event_type: str,
        payload: Mapping[str, Any],
        system: Optional[str] = None,
        tags: Sequence[str] = (),
    ) -> AdminEvent:
        event = AdminEvent(
            minute=float(minute),
            event_type=event_type,
            payload=dict(payload),
            system=system,
            tags=tuple(tags),
        )
        self._events.append(event)
        return event

    def log_action(
        self,
        *,
        minute: float,
        action: str,
        success: bool,
        system: Optional[str] = None,
        error: Optional[str] = None,
    ) -> AdminEvent:
        payload: MutableMapping[str, Any] = {"action": action}
        if error:
            payload["error"] = error
        return self.record(
            minute=minute,
            event_type=ACTION_ROUTED if success else ACTION_FAILED,
            payload=payload,
            system=system,
        )

    def log_process(self, *, minute: float, process_id: str, kind: str, outcome: str, **details: Any) -> AdminEvent:
        payload: MutableMapping[str, Any] = {"process_id": process_id, "kind": kind, "outcome": outcome}
        payload.update(details)
        event_type = PROCESS_STARTED if outcome == "started" else PROCESS_RESOLVED
        return self.record(minute=minute, event_type=event_type, payload=payload, system="processes", tags=[kind])

    def log_refusal(self, *, minute: float, kind: str, reason: str) -> AdminEvent:
        return self.record(
            minute=minute,
            event_type=PROCESS_REFUSED,
            payload={"kind": kind, "reason": reason},
            system="processes",
            tags=[kind],
        )

    def __len__(self) -> int:  # pragma: no cover - trivial
        return len(self._events)

    def get_recent(
        self,
        *,
        event_type: Optional[str] = None,
        system: Optional[str] = None,
        limit: int = 100,
    ) -> List[AdminEvent]:
        """Return the newest events matching the optional filters."""

        selected: List[AdminEvent] = []
        for event in reversed(self._events):
            if event_type and event.event_type != event_type:
                continue
            if system and event.system != system:
                continue
            selected.append(event)
            if len(selected) >= limit:
                break
        return list(reversed(selected))

    def iter_all(self) -> Iterable[AdminEvent]:
        return tuple(self._events)

    def counts_by_type(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for event in self._events:
            counts[event.event_type] = counts.get(event.event_type, 0) + 1
        return dict(sorted(counts.items()))

    def clear(self) -> None:
        self._events.clear()


__all__ = [
    "ACTION_FAILED",
    "ACTION_ROUTED",
    "AdminEvent",
    "AdminEventLog",
    "OFFLINE_APPLIED",
    "PROCESS_REFUSED",
    "PROCESS_RESOLVED",
    "PROCESS_STARTED",
    "ROLL_CLEARED",
    "RUN_STATUS",
]
