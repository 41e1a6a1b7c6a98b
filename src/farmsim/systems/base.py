from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, FrozenSet, Mapping, Optional

from ..actions.base import Action, ActionResult, ActionType, action_failed, action_ok
from ..game_data import GameData, default_game_data
from ..runtime.rng_service import RNGService
from ..state import GameState

if TYPE_CHECKING:
    from ..processes.manager import ProcessManager
    from ..runtime.route_rolls import RouteRollCache

SCREEN_FOR_ACTION = {
    ActionType.PLANT: "farm",
    ActionType.HARVEST: "farm",
    ActionType.WATER: "farm",
    ActionType.PUMP: "farm",
    ActionType.CLEANUP: "farm",
    ActionType.CATCH_SEEDS: "tower",
    ActionType.PURCHASE: "town",
    ActionType.BUILD: "town",
    ActionType.SELL_MATERIAL: "town",
    ActionType.TRAIN: "town",
    ActionType.ADVENTURE: "adventure",
    ActionType.MINE: "mine",
    ActionType.CRAFT: "forge",
    ActionType.STOKE: "forge",
}


@dataclass(slots=True)
class SystemConfig:
    require_location: bool = True
    pump_amount: float = 20.0
    cleanup_energy: float = 10.0
    catch_seeds_per_minute: float = 0.2
    stoke_energy: float = 5.0
    stoke_wood: int = 1
    stoke_heat: float = 25.0
    train_energy_per_minute: float = 0.5
    train_xp_per_minute: float = 2.0
    helper_training_cost: float = 50.0
    helper_training_gain: float = 0.1
    helper_max_efficiency: float = 2.0


@dataclass
class SystemServices:
    game_data: GameData = field(default_factory=default_game_data)
    processes: Optional["ProcessManager"] = None
    rolls: Optional["RouteRollCache"] = None
    rng: RNGService = field(default_factory=lambda: RNGService(seed=0))
    config: SystemConfig = field(default_factory=SystemConfig)


class DomainSystem:
    """Stateless executor for the action types in ``handles``."""

    name: str = ""
    handles: FrozenSet[ActionType] = frozenset()

    def __init__(self, services: SystemServices | None = None) -> None:
        self.services = services or SystemServices()

    @property
    def game_data(self) -> GameData:
        return self.services.game_data

    @property
    def config(self) -> SystemConfig:
        return self.services.config

    def execute(self, action: Action, state: GameState) -> ActionResult:
        if action.type not in self.handles:
            return action_failed(f"{self.name} cannot handle {action.type_name}")
        problem = self.location_problem(action, state)
        if problem:
            return action_failed(problem)
        handler = getattr(self, f"_do_{action.type_name}")
        return handler(action, state)

    def location_problem(self, action: Action, state: GameState) -> Optional[str]:
        if not self.config.require_location:
            return None
        screen = SCREEN_FOR_ACTION.get(action.type)  # type: ignore[arg-type]
        if screen is None or state.location.current_screen == screen:
            return None
        return f"{action.type_name} requires being at the {screen}"

    def ok(self, state: GameState, description: str, *, event_type: str, changes: Mapping[str, Any] | None = None, **data: Any) -> ActionResult:
        return action_ok(
            description,
            event_type=event_type,
            timestamp=state.time.total_minutes,
            changes=changes,
            data=data,
        )


__all__ = ["DomainSystem", "SCREEN_FOR_ACTION", "SystemConfig", "SystemServices"]
