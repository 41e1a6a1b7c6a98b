"""Tick loop tying the decision loop, router and process manager together."""

from __future__ import annotations

from dataclasses import dataclass, field
from hashlib import sha256
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from ..actions.base import Action, ActionResult, ActionType, GameEvent
from ..actions.router import ActionRouter
from ..admin_log import OFFLINE_APPLIED, RUN_STATUS, AdminEventLog
from ..ai.decision import DecisionLoop
from ..ai.personas import get_persona
from ..config import SimulationConfig
from ..game_data import GameData, default_game_data
from ..processes.base import PASSIVE_KINDS, Process
from ..processes.manager import ProcessManager, ProcessTickResult
from ..runtime.offline import OfflineProgressionEstimator, OfflineResult
from ..runtime.rng_service import RNGService
from ..runtime.route_rolls import RouteRollCache
from ..runtime.snapshot import restore_processes, restore_state, snapshot_state
from ..runtime.telemetry import Metrics
from ..state import GameState, new_game_state
from ..systems import SystemServices, default_systems

PHASES = ((6, "late"), (3, "mid"), (0, "early"))


@dataclass
class TickResult:
    tick: int
    minute: float
    actions: List[Tuple[Action, ActionResult]] = field(default_factory=list)
    processes: ProcessTickResult = field(default_factory=ProcessTickResult)
    events: List[GameEvent] = field(default_factory=list)
    is_complete: bool = False
    is_stuck: bool = False
    completion_reason: Optional[str] = None


def build_initial_state(config: SimulationConfig) -> GameState:
    start = config.start
    state = new_game_state(
        plots=start.plots,
        debris_plots=start.debris_plots,
        gold=start.gold,
        energy=start.energy,
        energy_max=start.energy_max,
        energy_regen=start.energy_regen,
        water=start.water,
        water_max=start.water_max,
        seeds=start.seeds,
        materials=start.materials,
        upgrades=start.upgrades,
    )
    state.time.speed = config.speed
    return state


def progress_signature(state: GameState) -> str:
    progression = state.progression
    resources = state.resources
    parts = (
        round(resources.gold, 3),
        progression.hero_level,
        round(progression.hero_xp, 3),
        sorted(progression.unlocked_upgrades),
        sorted(progression.built_structures),
        sorted(progression.completed_milestones),
        progression.crops_harvested,
        resources.seeds.as_dict(),
        resources.materials.as_dict(),
        sorted(state.inventory.owned_ids()),
        len(state.helpers.gnomes),
        sorted(plot.plot_id for plot in state.farm.unlocked_plots()),
    )
    return sha256(repr(parts).encode("utf-8")).hexdigest()[:16]


class SimulationEngine:
    def __init__(
        self,
        config: SimulationConfig | None = None,
        game_data: GameData | None = None,
        *,
        state: GameState | None = None,
        processes: Iterable[Process] = (),
    ) -> None:
        self.config = config or SimulationConfig()
        self.game_data = game_data or default_game_data()
        self.log = AdminEventLog()
        self.metrics = Metrics()
        self.event_ring = self.config.debug.make_ring()
        self.rng = RNGService(seed=self.config.seed)
        self.rolls = RouteRollCache(seed=self.config.seed, config=self.config.rolls, log=self.log)
        self.processes = ProcessManager(
            self.config.processes,
            rolls=self.rolls,
            log=self.log,
            metrics=self.metrics,
        )
        services = SystemServices(
            game_data=self.game_data,
            processes=self.processes,
            rolls=self.rolls,
            rng=self.rng,
            config=self.config.systems,
        )
        self.router = ActionRouter(default_systems(services))
        self.persona = get_persona(self.config.persona_id)
        self.decisions = DecisionLoop(self.persona, self.game_data, self.config.decisions, self.config.bottlenecks)
        self.estimator = OfflineProgressionEstimator(self.config.offline, self.game_data)
        self.state = state or build_initial_state(self.config)
        if state is not None:
            self.processes.restore(processes, self.state)
        self.start_minute = self.state.time.total_minutes
        self.tick_count = 0
        self.idle_ticks = 0
        self.completion_reason: Optional[str] = None
        self._signature = progress_signature(self.state)

    @classmethod
    def from_snapshot(
        cls,
        payload: Mapping[str, Any],
        config: SimulationConfig | None = None,
        game_data: GameData | None = None,
    ) -> "SimulationEngine":
        """Resume a run saved with :meth:`snapshot`."""
        engine = cls(config, game_data, state=restore_state(payload), processes=restore_processes(payload))
        engine.rolls.load_records(payload.get("rolls", []))
        return engine

    def snapshot(self) -> Dict[str, Any]:
        return snapshot_state(self.state, processes=self.processes.active_processes(), rolls=self.rolls)

    # ------------------------------------------------------------------
    def execute(self, action: Action) -> ActionResult:
        """Route one action and record it."""

        result = self.router.route(action, self.state)
        system = self.router.system_for_action(action.type)
        self.log.log_action(
            minute=self.state.time.total_minutes,
            action=action.type_name,
            success=result.success,
            system=system,
            error=result.error,
        )
        outcome = "ok" if result.success else "failed"
        self.metrics.inc(f"actions.{outcome}.{action.type_name}")
        return result

    def tick(self) -> TickResult:
        state = self.state
        delta = self.config.tick_minutes * state.time.speed
        state.time.advance(delta)
        state.location.time_on_screen += delta
        state.resources.energy.add(state.resources.energy.regen_rate * delta)
        self.tick_count += 1

        result = TickResult(tick=self.tick_count, minute=state.time.total_minutes)
        for action in self.decisions.decide(state):
            outcome = self.execute(action)
            result.actions.append((action, outcome))
            result.events.extend(outcome.events)

        result.processes = self.processes.tick(delta, state, self.game_data)
        result.events.extend(result.processes.events)
        self.rolls.evict_expired(state.time.total_minutes)
        self._update_phase()

        for event in result.events:
            self.event_ring.append(
                {"minute": event.timestamp, "type": event.type, "description": event.description}
            )
        self.metrics.set_gauge("state.gold", round(state.resources.gold, 2))
        self.metrics.set_gauge("state.hero_level", state.progression.hero_level)

        self._track_progress(result)
        reason = self._completion_reason()
        if reason is not None:
            result.is_complete = reason != "bottleneck"
            result.is_stuck = reason == "bottleneck"
            result.completion_reason = reason
            self.completion_reason = reason
            self.log.record(
                minute=state.time.total_minutes,
                event_type=RUN_STATUS,
                payload={"reason": reason, "tick": self.tick_count},
                system="engine",
            )
        return result

    def _track_progress(self, result: TickResult) -> None:
        signature = progress_signature(self.state)
        acted = any(
            outcome.success and action.type not in (ActionType.MOVE, ActionType.WAIT)
            for action, outcome in result.actions
        )
        if acted or result.processes.resolved or signature != self._signature or len(self.processes):
            self.idle_ticks = 0
        else:
            self.idle_ticks += 1
        self._signature = signature

    def _completion_reason(self) -> Optional[str]:
        victory = self.config.victory
        progression = self.state.progression
        if progression.hero_level >= victory.hero_level:
            return "victory"
        if victory.required_milestones and set(victory.required_milestones) <= progression.completed_milestones:
            return "victory"
        if self.state.time.day >= victory.max_day:
            return "victory"
        if self.idle_ticks >= self.config.stuck_after_ticks:
            return "bottleneck"
        if self.state.time.total_minutes - self.start_minute >= self.config.duration_minutes:
            return "duration"
        return None

    def _update_phase(self) -> None:
        level = self.state.progression.hero_level
        for threshold, phase in PHASES:
            if level >= threshold:
                self.state.progression.current_phase = phase
                break

    def run(self, max_ticks: int | None = None) -> Optional[str]:
        while self.completion_reason is None:
            if max_ticks is not None and self.tick_count >= max_ticks:
                break
            self.tick()
        return self.completion_reason

    # ------------------------------------------------------------------
    def apply_offline(self, minutes: float) -> OfflineResult:
        result = self.estimator.calculate(self.state, minutes)
        if not result.applied:
            return result
        passive = self.processes.tick(minutes, self.state, self.game_data, kinds=PASSIVE_KINDS)
        result.virtual_actions += passive.resolved
        self.log.record(
            minute=self.state.time.total_minutes,
            event_type=OFFLINE_APPLIED,
            payload={
                "elapsed": minutes,
                "water": result.water_generated,
                "harvested": result.crops_auto_harvested,
                "processes_resolved": passive.resolved,
            },
            system="offline",
        )
        return result

    def stats(self) -> Dict[str, Any]:
        return {
            "tick_count": self.tick_count,
            "days_passed": self.state.time.days_passed,
            "total_minutes": self.state.time.total_minutes,
            "current_phase": self.state.progression.current_phase,
            "persona": self.persona.id,
            "strategy": self.persona.strategy,
            "idle_ticks": self.idle_ticks,
            "bottlenecks": [b.type for b in self.decisions.bottlenecks(self.state)],
            "processes": self.processes.stats(self.state),
            "rolls": self.rolls.get_statistics(),
            "metrics": self.metrics.snapshot(),
            "log": self.log.counts_by_type(),
        }


__all__ = ["SimulationEngine", "TickResult", "build_initial_state", "progress_signature"]
