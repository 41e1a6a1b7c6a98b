"""Timed activity records and the handler protocol."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from ..actions.base import GameEvent
from ..game_data import GameData
from ..state import GameState


class ProcessKind(Enum):
    CROP_GROWTH = "crop_growth"
    CRAFTING = "crafting"
    MINING = "mining"
    ADVENTURE = "adventure"


def coerce_process_kind(value: object) -> ProcessKind | None:
    if isinstance(value, ProcessKind):
        return value
    try:
        return ProcessKind(str(value))
    except ValueError:
        return None


class ProcessStatus(Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


# Kinds that keep running while the player is away.
PASSIVE_KINDS = frozenset({ProcessKind.CROP_GROWTH, ProcessKind.CRAFTING})


@dataclass(slots=True)
class ProcessConfig:
    evaporation_per_minute: float = 0.5
    wither_after_minutes: float = 60.0
    mining_energy_per_minute: float = 0.5
    mining_min_energy: float = 10.0
    mining_depth_per_minute: float = 1.0
    adventure_min_energy: float = 20.0
    heat_rate_floor: float = 0.5
    heat_per_craft: float = 10.0


@dataclass(slots=True)
class Process:
    process_id: str
    kind: ProcessKind
    slot_ref: str
    start_time: float
    duration: float
    progress: float = 0.0
    data: Dict[str, Any] = field(default_factory=dict)
    status: ProcessStatus = ProcessStatus.RUNNING

    @property
    def fraction(self) -> float:
        if self.duration <= 0:
            return 1.0
        return min(1.0, self.progress / self.duration)

    @property
    def remaining(self) -> float:
        return max(0.0, self.duration - self.progress)

    @property
    def is_due(self) -> bool:
        return self.progress >= self.duration


@dataclass(slots=True)
class ProcessAdvance:
    """Pure result of advancing one process; applied later in order."""

    progress_delta: float
    data: Dict[str, Any] = field(default_factory=dict)
    energy_cost: float = 0.0
    failure: Optional[str] = None
    finished_early: Optional[str] = None


class ProcessHandler:
    """Lifecycle hooks for one process kind.

    ``advance`` must not mutate anything; ``commit``, ``complete``, ``fail``
    and ``cancel`` apply writes and are called one process at a time.
    """

    kind: ProcessKind
    label: str = ""

    def __init__(self, config: ProcessConfig) -> None:
        self.config = config

    def max_concurrent(self, state: GameState) -> int:
        return state.processes.limit(self.kind.value)

    def refusal(self, payload: Mapping[str, Any], state: GameState, game_data: GameData | None) -> Optional[str]:
        raise NotImplementedError

    def slot_for(self, payload: Mapping[str, Any], state: GameState) -> str:
        raise NotImplementedError

    def duration_for(self, payload: Mapping[str, Any], state: GameState, game_data: GameData | None) -> float:
        raise NotImplementedError

    def initialize(
        self,
        process: Process,
        payload: Mapping[str, Any],
        state: GameState,
        game_data: GameData | None,
    ) -> None:
        raise NotImplementedError

    def rate(self, process: Process, state: GameState, game_data: GameData | None) -> float:
        return 1.0

    def advance(
        self,
        process: Process,
        elapsed: float,
        state: GameState,
        game_data: GameData | None,
    ) -> ProcessAdvance:
        return ProcessAdvance(progress_delta=elapsed * self.rate(process, state, game_data))

    def commit(self, process: Process, advance: ProcessAdvance, state: GameState) -> None:
        process.progress += advance.progress_delta
        if advance.energy_cost > 0:
            state.resources.energy.consume(advance.energy_cost)
        process.data.update(advance.data)

    def complete(self, process: Process, state: GameState, game_data: GameData | None) -> List[GameEvent]:
        raise NotImplementedError

    def fail(self, process: Process, reason: str, state: GameState) -> List[GameEvent]:
        return []

    def cancel(self, process: Process, state: GameState) -> None:
        return None


__all__ = [
    "PASSIVE_KINDS",
    "Process",
    "ProcessAdvance",
    "ProcessConfig",
    "ProcessHandler",
    "ProcessKind",
    "ProcessStatus",
    "coerce_process_kind",
]
