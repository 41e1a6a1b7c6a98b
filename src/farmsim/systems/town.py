from __future__ import annotations

from ..actions.base import Action, ActionResult, ActionType, action_failed
from ..effects import apply_item_effects
from ..game_data import EQUIPMENT_TYPES
from ..state import GameState
from .base import DomainSystem

PURCHASABLE_TYPES = frozenset({"upgrade", "blueprint", "seed"}) | EQUIPMENT_TYPES


class TownSystem(DomainSystem):
    name = "town"
    handles = frozenset(
        {ActionType.PURCHASE, ActionType.BUILD, ActionType.SELL_MATERIAL, ActionType.TRAIN}
    )

    def _already_owned(self, item, state) -> bool:
        if item.repeatable:
            return False
        if item.type == "upgrade":
            return item.id in state.progression.unlocked_upgrades
        if item.type == "blueprint":
            return item.id in state.inventory.blueprints
        return state.inventory.owns(item.id)

    def _do_purchase(self, action: Action, state: GameState) -> ActionResult:
        item = self.game_data.get(action.target)
        if item is None:
            return action_failed(f"Unknown item {action.target}")
        if item.type == "structure":
            return action_failed(f"{item.id} must be built, not bought")
        if item.type not in PURCHASABLE_TYPES:
            return action_failed(f"{item.id} cannot be purchased")
        if self._already_owned(item, state):
            return action_failed(f"Already own {item.id}")
        missing = self.game_data.missing_prerequisites(item, state.owned_ids())
        if missing:
            return action_failed(f"Missing prerequisites for {item.id}: {', '.join(missing)}")
        materials = state.resources.materials
        if not materials.can_afford(item.materials_cost):
            return action_failed(f"Not enough materials for {item.id}")
        if not state.resources.spend_gold(item.gold_cost):
            return action_failed(f"Not enough gold for {item.id} (need {item.gold_cost:.0f})")
        materials.apply_cost(item.materials_cost)

        changes = {"resources.gold": state.resources.gold}
        if item.type == "upgrade":
            state.progression.unlocked_upgrades.add(item.id)
            for effect, amount in apply_item_effects(state, item).items():
                changes[f"effects.{effect}"] = amount
            changes["progression.unlocked_upgrades"] = sorted(state.progression.unlocked_upgrades)
        elif item.type == "blueprint":
            state.inventory.blueprints.add(item.id)
            changes["inventory.blueprints"] = sorted(state.inventory.blueprints)
        elif item.type == "seed":
            crop = str(item.extra.get("crop", item.id))
            qty = int(item.extra.get("quantity", 1))
            changes[f"resources.seeds.{crop}"] = state.resources.seeds.add(crop, qty)
        else:
            state.inventory.add_item(item.type, item.id)
            changes[f"inventory.{item.type}.{item.id}"] = True
        return self.ok(
            state,
            f"Purchased {item.name}",
            event_type="item_purchased",
            changes=changes,
            item=item.id,
            cost=item.gold_cost,
        )

    def _do_build(self, action: Action, state: GameState) -> ActionResult:
        item = self.game_data.get(action.target)
        if item is None or item.type != "structure":
            return action_failed(f"Unknown structure {action.target}")
        if item.id in state.progression.built_structures:
            return action_failed(f"{item.id} is already built")
        missing = self.game_data.missing_prerequisites(item, state.owned_ids())
        if missing:
            return action_failed(f"Missing prerequisites for {item.id}: {', '.join(missing)}")
        if not state.resources.energy.has(item.energy_cost):
            return action_failed("Not enough energy")
        if not state.resources.materials.can_afford(item.materials_cost):
            return action_failed(f"Not enough materials for {item.id}")
        if not state.resources.spend_gold(item.gold_cost):
            return action_failed(f"Not enough gold for {item.id}")
        state.resources.energy.consume(item.energy_cost)
        state.resources.materials.apply_cost(item.materials_cost)
        state.progression.built_structures.add(item.id)
        state.progression.unlocked_upgrades.add(item.id)
        changes = {
            "progression.built_structures": sorted(state.progression.built_structures),
            "resources.energy.current": state.resources.energy.current,
        }
        for effect, amount in apply_item_effects(state, item).items():
            changes[f"effects.{effect}"] = amount
        return self.ok(state, f"Built {item.name}", event_type="structure_built", changes=changes, item=item.id)

    def _do_sell_material(self, action: Action, state: GameState) -> ActionResult:
        material = action.target
        if not material:
            return action_failed("No material specified")
        held = state.resources.materials.get(material)
        if held <= 0:
            return action_failed(f"No {material} to sell")
        qty = min(held, int(action.param("quantity", held)))
        if qty <= 0:
            return action_failed("Quantity must be positive")
        state.resources.materials.remove(material, qty)
        earned = qty * self.game_data.sell_price(material)
        state.resources.earn_gold(earned)
        return self.ok(
            state,
            f"Sold {qty} {material} for {earned:.0f} gold",
            event_type="material_sold",
            changes={
                f"resources.materials.{material}": state.resources.materials.get(material),
                "resources.gold": state.resources.gold,
            },
            material=material,
            quantity=qty,
            gold=earned,
        )

    def _do_train(self, action: Action, state: GameState) -> ActionResult:
        minutes = float(action.duration or 30.0)
        energy = minutes * self.config.train_energy_per_minute
        if not state.resources.energy.has(energy):
            return action_failed("Too tired to train")
        state.resources.energy.consume(energy)
        xp = minutes * self.config.train_xp_per_minute
        levels = state.progression.gain_xp(xp)
        return self.ok(
            state,
            f"Trained for {minutes:.0f} minutes",
            event_type="hero_trained",
            changes={
                "progression.hero_level": state.progression.hero_level,
                "progression.hero_xp": state.progression.hero_xp,
            },
            xp=xp,
            levels_gained=levels,
        )


__all__ = ["TownSystem"]
