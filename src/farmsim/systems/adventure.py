from __future__ import annotations

from ..actions.base import Action, ActionResult, ActionType, action_failed
from ..processes.base import ProcessKind
from ..runtime.route_rolls import VARIANTS
from ..state import GameState
from .base import DomainSystem


class AdventureSystem(DomainSystem):
    name = "adventure"
    handles = frozenset({ActionType.ADVENTURE})

    def _do_adventure(self, action: Action, state: GameState) -> ActionResult:
        route_id = action.target
        if not route_id:
            return action_failed("No route specified")
        variant = str(action.param("variant", "Short"))
        if variant not in VARIANTS:
            return action_failed(f"Unknown route variant {variant}")
        manager = self.services.processes
        rolls = self.services.rolls
        if manager is None or rolls is None:
            return action_failed("Adventuring needs a process manager and a roll cache")
        roll = rolls.get_roll(route_id, variant, now=state.time.total_minutes)
        process = manager.start_process(
            ProcessKind.ADVENTURE,
            {"route": route_id, "variant": variant, "roll": roll},
            state,
            self.game_data,
        )
        if process is None:
            return action_failed(f"Cannot start {route_id}: {manager.last_refusal}")
        return self.ok(
            state,
            f"Set out on {route_id} ({variant}) against {roll.total_enemies} enemies",
            event_type="adventure_started",
            changes={"resources.energy.current": state.resources.energy.current},
            route=route_id,
            variant=variant,
            enemies=roll.total_enemies,
            seed=roll.seed,
            process_id=process.process_id,
        )


__all__ = ["AdventureSystem"]
