"""Command surface for hosts driving a simulation.

Hosts never share memory with the engine: they send commands (directly or
as message mappings through :meth:`SimulationController.handle_message`) and
receive plain dictionaries back.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..admin_log import RUN_STATUS
from ..config import MAX_SPEED, MIN_SPEED, ConfigurationError, SimulationConfig, load_config
from ..game_data import GameData
from .engine import SimulationEngine

COMPLETION_REASONS = ("victory", "bottleneck", "manual", "duration")

TickCallback = Callable[[Dict[str, Any]], None]
CompleteCallback = Callable[["CompletionPayload"], None]
ErrorCallback = Callable[[Exception], None]


@dataclass(slots=True)
class CompletionPayload:
    reason: str
    final_state: Dict[str, Any]
    stats: Dict[str, Any]
    summary: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reason": self.reason,
            "final_state": self.final_state,
            "stats": self.stats,
            "summary": self.summary,
        }


@dataclass
class _Subscribers:
    tick: List[TickCallback] = field(default_factory=list)
    complete: List[CompleteCallback] = field(default_factory=list)
    error: List[ErrorCallback] = field(default_factory=list)


class SimulationController:
    def __init__(self, game_data: GameData | None = None) -> None:
        self.game_data = game_data
        self.engine: Optional[SimulationEngine] = None
        self.running = False
        self.completion: Optional[CompletionPayload] = None
        self._subscribers = _Subscribers()

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------
    def on_tick(self, callback: TickCallback) -> None:
        self._subscribers.tick.append(callback)

    def on_complete(self, callback: CompleteCallback) -> None:
        self._subscribers.complete.append(callback)

    def on_error(self, callback: ErrorCallback) -> None:
        self._subscribers.error.append(callback)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def _require_engine(self) -> SimulationEngine:
        if self.engine is None:
            raise RuntimeError("Simulation has not been initialized")
        return self.engine

    def initialize(self, config: Mapping[str, Any] | SimulationConfig | None) -> None:
        validated = load_config(config)
        self.engine = SimulationEngine(validated, self.game_data)
        self.running = False
        self.completion = None

    def start(self, speed: float | None = None) -> None:
        self._require_engine()
        if self.completion is not None:
            raise RuntimeError("Simulation already finished")
        if speed is not None:
            self.set_speed(speed)
        self.running = True

    def pause(self) -> None:
        self.running = False

    def stop(self) -> CompletionPayload:
        self._require_engine()
        self.running = False
        if self.completion is None:
            self._complete("manual")
        assert self.completion is not None
        return self.completion

    def set_speed(self, speed: float) -> float:
        engine = self._require_engine()
        clamped = max(MIN_SPEED, min(MAX_SPEED, float(speed)))
        engine.state.time.speed = clamped
        return clamped

    def get_state(self) -> Dict[str, Any]:
        engine = self._require_engine()
        stats = engine.stats()
        stats["is_running"] = self.running
        return {"game_state": engine.snapshot(), "stats": stats}

    def tick(self) -> Dict[str, Any]:
        engine = self._require_engine()
        if not self.running or self.completion is not None:
            return {"is_complete": self.completion is not None, "is_stuck": False, "completed": [], "events": []}
        try:
            result = engine.tick()
        except Exception as exc:
            self.running = False
            engine.log.record(
                minute=engine.state.time.total_minutes,
                event_type=RUN_STATUS,
                payload={"error": str(exc), "tick": engine.tick_count},
                system="controller",
            )
            for callback in list(self._subscribers.error):
                callback(exc)
            return {"is_complete": False, "is_stuck": False, "completed": [], "events": [], "error": str(exc)}

        payload = {
            "tick": result.tick,
            "is_complete": result.is_complete,
            "is_stuck": result.is_stuck,
            "completed": [process.process_id for process in result.processes.completed],
            "failed": [process.process_id for process in result.processes.failed],
            "events": [
                {"type": event.type, "description": event.description, "timestamp": event.timestamp}
                for event in result.events
            ],
        }
        for callback in list(self._subscribers.tick):
            callback(payload)
        if result.completion_reason is not None:
            self.running = False
            self._complete(result.completion_reason)
        return payload

    def run(self, max_ticks: int | None = None) -> Optional[CompletionPayload]:
        if not self.running and self.completion is None:
            self.start()
        ticks = 0
        while self.running and self.completion is None:
            if max_ticks is not None and ticks >= max_ticks:
                break
            self.tick()
            ticks += 1
        return self.completion

    def _complete(self, reason: str) -> None:
        engine = self._require_engine()
        state = engine.state
        stats = engine.stats()
        stats["is_running"] = False
        summary = (
            f"{reason}: day {state.time.day}, hero level {state.progression.hero_level}, "
            f"{state.resources.gold:.0f} gold, {len(state.progression.unlocked_upgrades)} upgrades"
        )
        blocked_on = engine.decisions.bottlenecks(state) if reason == "bottleneck" else []
        if blocked_on:
            blocked = ", ".join(b.type for b in blocked_on)
            summary += f" (blocked on {blocked})"
        self.completion = CompletionPayload(
            reason=reason,
            final_state=engine.snapshot(),
            stats=stats,
            summary=summary,
        )
        for callback in list(self._subscribers.complete):
            callback(self.completion)

    # ------------------------------------------------------------------
    # Message boundary
    # ------------------------------------------------------------------
    def handle_message(self, message: Mapping[str, Any]) -> Dict[str, Any]:
        kind = message.get("type")
        try:
            if kind == "initialize":
                self.initialize(message.get("config"))
                return {"type": "initialized"}
            if kind == "start":
                self.start(message.get("speed"))
                return {"type": "started"}
            if kind == "pause":
                self.pause()
                return {"type": "paused"}
            if kind == "stop":
                return {"type": "complete", **self.stop().to_dict()}
            if kind == "set_speed":
                return {"type": "speed", "speed": self.set_speed(message.get("speed", 1.0))}
            if kind == "get_state":
                return {"type": "state", **self.get_state()}
            if kind == "tick":
                payload = self.tick()
                if self.completion is not None:
                    return {"type": "complete", **self.completion.to_dict()}
                return {"type": "tick", **payload}
        except (ConfigurationError, RuntimeError) as exc:
            return {"type": "error", "message": str(exc)}
        return {"type": "error", "message": f"Unknown message type: {kind}"}


__all__ = ["COMPLETION_REASONS", "CompletionPayload", "SimulationController"]
