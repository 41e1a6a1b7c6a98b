"""Deterministic simulation core for balancing an idle farming game."""

from .actions.base import Action, ActionResult, ActionType, GameEvent
from .actions.router import ActionRouter
from .config import ConfigurationError, SimulationConfig, load_config
from .game_data import GameData, ItemRecord, default_game_data
from .processes.manager import ProcessManager
from .runtime.offline import OfflineProgressionEstimator
from .runtime.route_rolls import RouteRollCache
from .simulation.controller import SimulationController
from .simulation.engine import SimulationEngine
from .state import GameState, new_game_state

__all__ = [
    "Action",
    "ActionResult",
    "ActionRouter",
    "ActionType",
    "ConfigurationError",
    "GameData",
    "GameEvent",
    "GameState",
    "ItemRecord",
    "OfflineProgressionEstimator",
    "ProcessManager",
    "RouteRollCache",
    "SimulationConfig",
    "SimulationController",
    "SimulationEngine",
    "default_game_data",
    "load_config",
    "new_game_state",
]
