from __future__ import annotations

from ..actions.base import Action, ActionResult, ActionType, action_failed
from ..state import GameState, Gnome
from .base import DomainSystem

HELPER_ROLES = ("farmer", "waterer", "harvester", "miner", "crafter")


class HelperSystem(DomainSystem):
    name = "helper"
    handles = frozenset({ActionType.ASSIGN_ROLE, ActionType.TRAIN_HELPER, ActionType.RESCUE})

    def _do_assign_role(self, action: Action, state: GameState) -> ActionResult:
        gnome = state.helpers.gnomes.get(action.target or "")
        if gnome is None:
            return action_failed(f"No gnome named {action.target}")
        role = action.param("role")
        if role not in HELPER_ROLES:
            return action_failed(f"Unknown helper role {role}")
        previous = gnome.role
        gnome.role = role
        return self.ok(
            state,
            f"{gnome.name} is now a {role}",
            event_type="helper_assigned",
            changes={f"helpers.gnomes.{gnome.gnome_id}.role": role},
            gnome=gnome.gnome_id,
            role=role,
            previous=previous,
        )

    def _do_train_helper(self, action: Action, state: GameState) -> ActionResult:
        gnome = state.helpers.gnomes.get(action.target or "")
        if gnome is None:
            return action_failed(f"No gnome named {action.target}")
        cfg = self.config
        if gnome.efficiency >= cfg.helper_max_efficiency:
            return action_failed(f"{gnome.name} cannot improve further")
        cost = action.gold_cost or cfg.helper_training_cost
        if not state.resources.spend_gold(cost):
            return action_failed("Not enough gold to train helper")
        gnome.efficiency = min(cfg.helper_max_efficiency, gnome.efficiency + cfg.helper_training_gain)
        gnome.experience += 1
        return self.ok(
            state,
            f"Trained {gnome.name}",
            event_type="helper_trained",
            changes={
                f"helpers.gnomes.{gnome.gnome_id}.efficiency": gnome.efficiency,
                "resources.gold": state.resources.gold,
            },
            gnome=gnome.gnome_id,
            efficiency=gnome.efficiency,
        )

    def _do_rescue(self, action: Action, state: GameState) -> ActionResult:
        helpers = state.helpers
        if len(helpers.gnomes) >= helpers.housing_capacity:
            return action_failed("No housing for another gnome")
        gnome_id = f"gnome_{len(helpers.gnomes) + 1}"
        if helpers.rescue_queue:
            name = helpers.rescue_queue.pop(0)
        else:
            name = action.target or f"Gnome {len(helpers.gnomes) + 1}"
        helpers.gnomes[gnome_id] = Gnome(gnome_id=gnome_id, name=name)
        return self.ok(
            state,
            f"Rescued {name}",
            event_type="helper_rescued",
            changes={f"helpers.gnomes.{gnome_id}": name},
            gnome=gnome_id,
            name=name,
        )


__all__ = ["HELPER_ROLES", "HelperSystem"]
