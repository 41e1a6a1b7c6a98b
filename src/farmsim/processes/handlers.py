from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

from ..actions.base import GameEvent
from ..effects import effect_total
from ..game_data import EQUIPMENT_TYPES, GameData
from ..state import GameState, PlotState
from .base import Process, ProcessAdvance, ProcessConfig, ProcessHandler, ProcessKind
from .combat import BOSS_GOLD, BOSS_XP, build_loadout, gold_with_bonus, resolve_combat

if TYPE_CHECKING:
    from ..runtime.route_rolls import RouteRollCache

FULL_WATER = 100.0
VARIANT_DURATION = {"Short": 1.0, "Medium": 2.0, "Long": 3.0}

# depth thresholds (metres) per material, shallowest first
MINING_YIELDS = (("stone", 5.0), ("iron", 20.0), ("silver", 60.0), ("crystal", 150.0))


def _event(state: GameState, event_type: str, description: str, importance: str = "medium", **data: Any) -> GameEvent:
    return GameEvent(
        type=event_type,
        description=description,
        data=data,
        timestamp=state.time.total_minutes,
        importance=importance,
    )


def harvest_plot(state: GameState, plot: PlotState, game_data: GameData | None) -> Dict[str, float]:
    """Collect a ready plot, crediting energy (clamped) and gold."""

    crop_id = plot.crop_id or "unknown"
    if game_data is not None:
        profile = game_data.crop_profile(crop_id)
        energy, gold = profile.energy, profile.gold
    else:
        energy, gold = 5.0, 1.0
    gained = state.resources.energy.add(energy)
    state.resources.earn_gold(gold)
    state.progression.crops_harvested += 1
    plot.clear()
    return {"crop": crop_id, "energy": gained, "gold": gold}


def _auto_harvest_enabled(state: GameState) -> bool:
    return state.progression.has_upgrade("auto_harvest") or bool(state.helpers.with_role("harvester"))


class CropGrowthHandler(ProcessHandler):
    kind = ProcessKind.CROP_GROWTH
    label = "Crop growth"

    def _plot_id(self, payload: Mapping[str, Any], state: GameState) -> Optional[str]:
        plot_id = payload.get("plot")
        if plot_id:
            return str(plot_id)
        free = state.farm.free_plots()
        return free[0].plot_id if free else None

    def refusal(self, payload: Mapping[str, Any], state: GameState, game_data: GameData | None) -> Optional[str]:
        if not payload.get("crop"):
            return "no crop specified"
        plot_id = self._plot_id(payload, state)
        if plot_id is None:
            return "no free plot"
        plot = state.farm.plots.get(plot_id)
        if plot is None:
            return f"unknown plot {plot_id}"
        if not plot.unlocked:
            return f"plot {plot_id} is locked"
        if not plot.is_free:
            return f"plot {plot_id} is occupied"
        return None

    def slot_for(self, payload: Mapping[str, Any], state: GameState) -> str:
        plot_id = self._plot_id(payload, state)
        assert plot_id is not None
        return plot_id

    def duration_for(self, payload: Mapping[str, Any], state: GameState, game_data: GameData | None) -> float:
        if game_data is None:
            return 30.0
        return game_data.crop_profile(str(payload["crop"])).growth_minutes

    def initialize(
        self,
        process: Process,
        payload: Mapping[str, Any],
        state: GameState,
        game_data: GameData | None,
    ) -> None:
        plot = state.farm.plots[process.slot_ref]
        plot.crop_id = str(payload["crop"])
        plot.process_id = process.process_id
        plot.water_level = float(payload.get("water", FULL_WATER))
        plot.drought_minutes = 0.0
        plot.ready = False
        plot.withered = False
        process.data["crop"] = plot.crop_id

    def rate(self, process: Process, state: GameState, game_data: GameData | None) -> float:
        return 1.0 + effect_total(state, game_data, "growth_rate")

    def evaporation(self, state: GameState) -> float:
        relief = min(0.75, 0.25 * state.helpers.role_strength("waterer"))
        return self.config.evaporation_per_minute * (1.0 - relief)

    def advance(
        self,
        process: Process,
        elapsed: float,
        state: GameState,
        game_data: GameData | None,
    ) -> ProcessAdvance:
        plot = state.farm.plots[process.slot_ref]
        evaporation = self.evaporation(state)
        if evaporation <= 0:
            watered = elapsed
        else:
            watered = min(elapsed, plot.water_level / evaporation)
        water_left = max(0.0, plot.water_level - evaporation * elapsed)
        drought = plot.drought_minutes + (elapsed - watered)
        failure = None
        if drought >= self.config.wither_after_minutes:
            failure = "withered"
        return ProcessAdvance(
            progress_delta=watered * self.rate(process, state, game_data),
            data={"water": water_left, "drought_minutes": drought},
            failure=failure,
        )

    def commit(self, process: Process, advance: ProcessAdvance, state: GameState) -> None:
        super().commit(process, advance, state)
        plot = state.farm.plots[process.slot_ref]
        plot.water_level = float(advance.data["water"])
        plot.drought_minutes = float(advance.data["drought_minutes"])

    def complete(self, process: Process, state: GameState, game_data: GameData | None) -> List[GameEvent]:
        plot = state.farm.plots[process.slot_ref]
        plot.process_id = None
        plot.ready = True
        events = [_event(state, "crop_ready", f"{plot.crop_id} is ready on {plot.plot_id}", plot=plot.plot_id, crop=plot.crop_id)]
        if _auto_harvest_enabled(state):
            gains = harvest_plot(state, plot, game_data)
            events.append(_event(state, "crop_auto_harvested", f"Harvested {gains['crop']} automatically", **gains))
        return events

    def fail(self, process: Process, reason: str, state: GameState) -> List[GameEvent]:
        plot = state.farm.plots[process.slot_ref]
        plot.process_id = None
        plot.ready = False
        plot.withered = True
        return [
            _event(
                state,
                "crop_withered",
                f"{plot.crop_id} withered on {plot.plot_id}",
                importance="high",
                plot=plot.plot_id,
                crop=plot.crop_id,
            )
        ]

    def cancel(self, process: Process, state: GameState) -> None:
        plot = state.farm.plots.get(process.slot_ref)
        if plot is not None:
            plot.clear()


class CraftingHandler(ProcessHandler):
    kind = ProcessKind.CRAFTING
    label = "Crafting"

    def refusal(self, payload: Mapping[str, Any], state: GameState, game_data: GameData | None) -> Optional[str]:
        if game_data is None:
            return "no game data"
        item = game_data.get(payload.get("item"))
        if item is None:
            return f"unknown recipe {payload.get('item')}"
        if item.type != "craftable":
            return f"{item.id} cannot be crafted"
        missing = game_data.missing_prerequisites(item, state.owned_ids())
        if missing:
            return f"missing prerequisites: {', '.join(missing)}"
        if not state.resources.energy.has(item.energy_cost):
            return "not enough energy"
        if not state.resources.materials.can_afford(item.materials_cost):
            return "not enough materials"
        if self._free_slot(state) is None:
            return "all forge slots busy"
        return None

    def _free_slot(self, state: GameState) -> Optional[str]:
        for index in range(1, self.max_concurrent(state) + 1):
            slot_ref = f"forge_{index}"
            if state.processes.is_free(slot_ref):
                return slot_ref
        return None

    def slot_for(self, payload: Mapping[str, Any], state: GameState) -> str:
        slot_ref = self._free_slot(state)
        assert slot_ref is not None
        return slot_ref

    def duration_for(self, payload: Mapping[str, Any], state: GameState, game_data: GameData | None) -> float:
        item = game_data.get(payload.get("item")) if game_data else None
        return item.time if item is not None and item.time > 0 else 30.0

    def initialize(
        self,
        process: Process,
        payload: Mapping[str, Any],
        state: GameState,
        game_data: GameData | None,
    ) -> None:
        item = game_data.get(payload["item"])
        state.resources.energy.consume(item.energy_cost)
        state.resources.materials.apply_cost(item.materials_cost)
        process.data["item"] = item.id
        process.data["materials"] = dict(item.materials_cost)
        process.data["produces"] = str(item.extra.get("produces", "tool"))

    def rate(self, process: Process, state: GameState, game_data: GameData | None) -> float:
        forge = state.forge
        heat_rate = max(self.config.heat_rate_floor, min(2.0, forge.heat / 50.0))
        return heat_rate * (1.0 + effect_total(state, game_data, "craft_rate"))

    def complete(self, process: Process, state: GameState, game_data: GameData | None) -> List[GameEvent]:
        item_id = process.data["item"]
        produces = process.data.get("produces", "tool")
        if produces not in EQUIPMENT_TYPES:
            produces = "tool"
        state.inventory.add_item(produces, item_id)
        state.forge.heat = max(0.0, state.forge.heat - self.config.heat_per_craft)
        return [_event(state, "crafting_complete", f"Crafted {item_id}", item=item_id, slot=process.slot_ref)]

    def cancel(self, process: Process, state: GameState) -> None:
        for material, qty in process.data.get("materials", {}).items():
            state.resources.materials.add(material, int(qty))


class MiningHandler(ProcessHandler):
    kind = ProcessKind.MINING
    label = "Mining"

    def refusal(self, payload: Mapping[str, Any], state: GameState, game_data: GameData | None) -> Optional[str]:
        if not state.processes.is_free("mine"):
            return "already mining"
        if not self._has_pickaxe(state, game_data):
            return "a pickaxe is required"
        if not state.resources.energy.has(self.config.mining_min_energy):
            return "not enough energy"
        return None

    def _has_pickaxe(self, state: GameState, game_data: GameData | None) -> bool:
        for tool_id in state.inventory.tools:
            item = game_data.get(tool_id) if game_data else None
            if item is not None and "mine_rate" in item.effects:
                return True
            if item is None and tool_id.endswith("pickaxe"):
                return True
        return False

    def slot_for(self, payload: Mapping[str, Any], state: GameState) -> str:
        return "mine"

    def duration_for(self, payload: Mapping[str, Any], state: GameState, game_data: GameData | None) -> float:
        return float(payload.get("duration") or 60.0)

    def initialize(
        self,
        process: Process,
        payload: Mapping[str, Any],
        state: GameState,
        game_data: GameData | None,
    ) -> None:
        process.data["depth"] = 0.0
        process.data["energy_spent"] = 0.0

    def rate(self, process: Process, state: GameState, game_data: GameData | None) -> float:
        return 1.0 + effect_total(state, game_data, "mine_rate")

    def advance(
        self,
        process: Process,
        elapsed: float,
        state: GameState,
        game_data: GameData | None,
    ) -> ProcessAdvance:
        drain = self.config.mining_energy_per_minute
        minutes = elapsed if drain <= 0 else min(elapsed, state.resources.energy.current / drain)
        rate = self.rate(process, state, game_data)
        # only the minutes still needed to finish cost energy
        needed = process.remaining / rate if rate > 0 else minutes
        minutes = min(minutes, needed)
        delta = minutes * rate
        finished_early = None
        if minutes < elapsed and process.progress + delta < process.duration:
            finished_early = "out_of_energy"
        return ProcessAdvance(
            progress_delta=delta,
            data={
                "depth": process.data.get("depth", 0.0) + delta * self.config.mining_depth_per_minute,
                "energy_spent": process.data.get("energy_spent", 0.0) + minutes * drain,
            },
            energy_cost=minutes * drain,
            finished_early=finished_early,
        )

    def complete(self, process: Process, state: GameState, game_data: GameData | None) -> List[GameEvent]:
        depth = float(process.data.get("depth", 0.0))
        found: Dict[str, int] = {}
        for material, step in MINING_YIELDS:
            qty = int(math.floor(depth / step))
            if material == "stone":
                qty += 1
            if qty > 0:
                state.resources.materials.add(material, qty)
                found[material] = qty
        reason = process.data.get("end_reason", "finished")
        return [
            _event(
                state,
                "mining_complete",
                f"Mined to {depth:.0f}m",
                depth=depth,
                materials=found,
                reason=reason,
            )
        ]


class AdventureHandler(ProcessHandler):
    kind = ProcessKind.ADVENTURE
    label = "Adventure"

    def __init__(self, config: ProcessConfig, rolls: "RouteRollCache | None" = None) -> None:
        super().__init__(config)
        self.rolls = rolls

    def refusal(self, payload: Mapping[str, Any], state: GameState, game_data: GameData | None) -> Optional[str]:
        if not state.processes.is_free("adventure"):
            return "already adventuring"
        route_id = payload.get("route")
        if not route_id:
            return "no route specified"
        if payload.get("variant") not in VARIANT_DURATION:
            return f"unknown variant {payload.get('variant')}"
        cost = self._energy_cost(str(route_id), game_data)
        if not state.resources.energy.has(max(cost, self.config.adventure_min_energy)):
            return "not enough energy"
        if game_data is not None:
            route = game_data.get(str(route_id))
            if route is not None:
                missing = game_data.missing_prerequisites(route, state.owned_ids())
                if missing:
                    return f"missing prerequisites: {', '.join(missing)}"
        return None

    def _energy_cost(self, route_id: str, game_data: GameData | None) -> float:
        if game_data is None:
            return self.config.adventure_min_energy
        return game_data.route_profile(route_id).energy_cost

    def slot_for(self, payload: Mapping[str, Any], state: GameState) -> str:
        return "adventure"

    def duration_for(self, payload: Mapping[str, Any], state: GameState, game_data: GameData | None) -> float:
        base = game_data.route_profile(str(payload["route"])).base_minutes if game_data else 20.0
        return base * VARIANT_DURATION[str(payload["variant"])]

    def initialize(
        self,
        process: Process,
        payload: Mapping[str, Any],
        state: GameState,
        game_data: GameData | None,
    ) -> None:
        route_id = str(payload["route"])
        state.resources.energy.consume(self._energy_cost(route_id, game_data))
        roll = payload.get("roll")
        process.data["route"] = route_id
        process.data["variant"] = str(payload["variant"])
        process.data["seed"] = int(getattr(roll, "seed", 0))
        if roll is not None:
            groups = [[group.enemy_type, group.count] for group in roll.enemies]
            boss = roll.boss
        else:
            groups = [["unknown_enemy", int(payload.get("enemies", 3))]]
            boss = None
        process.data["groups"] = groups
        process.data["boss"] = boss
        process.data["enemies"] = sum(count for _, count in groups) + (1 if boss else 0)
        composition = self.rolls.compositions.get(route_id) if self.rolls is not None else None
        process.data["base_waves"] = composition.waves if composition is not None else 1

    def complete(self, process: Process, state: GameState, game_data: GameData | None) -> List[GameEvent]:
        route_id = process.data["route"]
        variant = process.data["variant"]
        profile = game_data.route_profile(route_id) if game_data else None
        strength = profile.enemy_strength if profile else 1.0
        xp_per_enemy = profile.xp_per_enemy if profile else 5.0
        gold_per_enemy = profile.gold_per_enemy if profile else 2.0
        loadout = build_loadout(state, game_data)
        fight = resolve_combat(
            [(str(enemy_type), int(count)) for enemy_type, count in process.data.get("groups", [])],
            process.data.get("boss"),
            loadout,
            hero_level=state.progression.hero_level,
            base_waves=int(process.data.get("base_waves", 1)),
            variant=variant,
            strength=strength,
            seed=int(process.data.get("seed", 0)),
        )
        regular_kills = sum(wave.kills for wave in fight.waves)
        if fight.victory:
            gold = regular_kills * gold_per_enemy
            xp = regular_kills * xp_per_enemy
            if fight.boss is not None:
                gold += BOSS_GOLD
                xp += BOSS_XP
            gold = gold_with_bonus(loadout, gold)
            state.resources.earn_gold(gold)
            state.progression.completed_milestones.add(f"adventure:{route_id}")
            state.progression.completed_milestones.add(f"adventure:{route_id}:{variant}")
            state.progression.adventures_completed += 1
        else:
            gold = 0.0
            xp = regular_kills * xp_per_enemy * 0.25
        levels = state.progression.gain_xp(xp)
        for item_id in fight.weapons_used:
            weapon = state.inventory.weapons[item_id]
            weapon.durability = max(0.0, weapon.durability - 10.0)
        if self.rolls is not None:
            reason = "complete" if fight.victory else "failed"
            self.rolls.clear_roll(route_id, variant, reason, now=state.time.total_minutes)
        outcome = "victory" if fight.victory else "defeat"
        return [
            _event(
                state,
                "adventure_complete",
                f"{outcome.title()} on {route_id} ({variant})",
                importance="high",
                route=route_id,
                variant=variant,
                outcome=outcome,
                gold=gold,
                xp=xp,
                levels_gained=levels,
                hero_hp=fight.hero_hp,
                max_hp=fight.max_hp,
                kills=fight.kills,
                waves=len(fight.waves),
                defeated_in_wave=fight.defeated_in_wave,
                boss=fight.boss.name if fight.boss is not None else None,
            )
        ]

    def cancel(self, process: Process, state: GameState) -> None:
        if self.rolls is not None:
            self.rolls.clear_roll(
                process.data["route"],
                process.data["variant"],
                "abandoned",
                now=state.time.total_minutes,
            )


def default_handlers(config: ProcessConfig, rolls: "RouteRollCache | None" = None) -> List[ProcessHandler]:
    return [
        CropGrowthHandler(config),
        CraftingHandler(config),
        MiningHandler(config),
        AdventureHandler(config, rolls),
    ]


__all__ = [
    "AdventureHandler",
    "CraftingHandler",
    "CropGrowthHandler",
    "MiningHandler",
    "VARIANT_DURATION",
    "default_handlers",
    "harvest_plot",
]
