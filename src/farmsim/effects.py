"""Item effects: one-shot capacity changes and live rate modifiers."""

from __future__ import annotations

from typing import Dict

from .game_data import GameData, ItemRecord
from .state import GameState

# Effects applied once when an item is acquired.  Everything else in an
# item's ``effects`` mapping is a modifier read live through effect_total().
ONE_SHOT_EFFECTS = ("water_max", "energy_max", "plots", "crafting_slots", "housing", "tower_reach")


def apply_item_effects(state: GameState, item: ItemRecord) -> Dict[str, float]:
    applied: Dict[str, float] = {}
    for name in ONE_SHOT_EFFECTS:
        amount = item.effect(name)
        if not amount:
            continue
        if name == "water_max":
            state.resources.water.maximum += amount
        elif name == "energy_max":
            state.resources.energy.maximum += amount
        elif name == "plots":
            state.farm.add_plots(int(amount))
        elif name == "crafting_slots":
            capacity = state.processes.capacity
            capacity["crafting"] = capacity.get("crafting", 0) + int(amount)
        elif name == "housing":
            state.helpers.housing_capacity += int(amount)
        elif name == "tower_reach":
            state.progression.tower_reach += int(amount)
        applied[name] = amount
    return applied


def effect_total(state: GameState, game_data: GameData | None, name: str) -> float:
    if game_data is None:
        return 0.0
    total = 0.0
    for item_id in sorted(state.owned_ids()):
        item = game_data.get(item_id)
        if item is not None:
            total += item.effect(name)
    return total


__all__ = ["ONE_SHOT_EFFECTS", "apply_item_effects", "effect_total"]
