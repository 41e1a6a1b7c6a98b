from __future__ import annotations

import math

from ..actions.base import Action, ActionResult, ActionType, action_failed
from ..effects import effect_total
from ..state import GameState
from .base import DomainSystem


class TowerSystem(DomainSystem):
    name = "tower"
    handles = frozenset({ActionType.CATCH_SEEDS})

    def _do_catch_seeds(self, action: Action, state: GameState) -> ActionResult:
        minutes = float(action.duration or action.param("minutes", 10.0))
        if minutes <= 0:
            return action_failed("Catching seeds needs a positive duration")
        if not state.resources.energy.has(action.energy_cost):
            return action_failed("Not enough energy")
        kinds = self.game_data.crops_for_reach(state.progression.tower_reach)
        if not kinds:
            return action_failed("No seeds drift this high")
        rate = self.config.catch_seeds_per_minute + effect_total(state, self.game_data, "catch_rate")
        count = max(1, int(math.floor(minutes * rate)))
        rng = self.services.rng.stream("tower.catch_seeds", scope={"minute": state.time.total_minutes})
        caught: dict[str, int] = {}
        for _ in range(count):
            crop = kinds[rng.randrange(len(kinds))]
            caught[crop] = caught.get(crop, 0) + 1
        changes = {}
        for crop, qty in sorted(caught.items()):
            changes[f"resources.seeds.{crop}"] = state.resources.seeds.add(crop, qty)
        state.resources.energy.consume(action.energy_cost)
        return self.ok(
            state,
            f"Caught {count} seeds",
            event_type="seeds_caught",
            changes=changes,
            seeds=dict(sorted(caught.items())),
            duration=minutes,
        )


__all__ = ["TowerSystem"]
