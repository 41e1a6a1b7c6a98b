from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..actions.base import Action, ActionType
from ..game_data import GameData
from ..state import GameState
from ..systems.base import SCREEN_FOR_ACTION
from .bottlenecks import Bottleneck, BottleneckConfig, get_bottleneck_priorities, next_purchase, rank_for_persona
from .personas import PersonaProfile


@dataclass(slots=True)
class DecisionConfig:
    catch_minutes: float = 10.0
    adventure_energy: float = 60.0
    mining_energy: float = 50.0
    mining_minutes: float = 60.0
    cleanup_energy: float = 40.0
    thirsty_below: float = 40.0


Candidate = Tuple[float, Action]


class DecisionLoop:
    """Turns the current state into the next few actions for a persona."""

    def __init__(
        self,
        persona: PersonaProfile,
        game_data: GameData,
        config: DecisionConfig | None = None,
        bottleneck_config: BottleneckConfig | None = None,
    ) -> None:
        self.persona = persona
        self.game_data = game_data
        self.config = config or DecisionConfig()
        self.bottleneck_config = bottleneck_config or BottleneckConfig()
        self.last_check_in: Optional[float] = None
        # ranking seen at the last check-in; use bottlenecks() for the current one
        self.last_bottlenecks: List[Bottleneck] = []

    def bottlenecks(self, state: GameState) -> List[Bottleneck]:
        """Persona-ranked shortages for ``state``, computed fresh."""

        found = get_bottleneck_priorities(state, self.bottleneck_config, self.game_data)
        return rank_for_persona(found, self.persona)

    def due(self, state: GameState) -> bool:
        if self.last_check_in is None:
            return True
        return state.time.total_minutes - self.last_check_in >= self.persona.check_in_minutes

    def decide(self, state: GameState) -> List[Action]:
        if not self.due(state):
            return []
        self.last_check_in = state.time.total_minutes
        self.last_bottlenecks = self.bottlenecks(state)

        candidates: List[Candidate] = []
        for rank, bottleneck in enumerate(self.last_bottlenecks):
            remedy = self._remedy(bottleneck, state)
            if remedy is not None:
                candidates.append((100.0 - rank, remedy))
        candidates.extend(self._routine(state))

        chosen: List[Action] = []
        seen: set[tuple[str, Optional[str]]] = set()
        for _, action in sorted(candidates, key=lambda item: -item[0]):
            key = (action.type_name, action.target)
            if key in seen and action.type is not ActionType.PLANT:
                continue
            seen.add(key)
            chosen.append(action)
            if len(chosen) >= self.persona.max_actions:
                break
        return self._with_moves(chosen, state.location.current_screen)

    # ------------------------------------------------------------------
    def _remedy(self, bottleneck: Bottleneck, state: GameState) -> Optional[Action]:
        resources = state.resources
        if bottleneck.type == "water" and resources.water.missing > 0:
            return Action(ActionType.PUMP, description="Refill the water tank")
        if bottleneck.type == "seeds":
            pack = self._seed_pack(state)
            if pack is not None:
                return Action(ActionType.PURCHASE, target=pack, description="Restock seeds")
            return Action(ActionType.CATCH_SEEDS, duration=self.config.catch_minutes, description="Catch seeds")
        if bottleneck.type == "energy" and state.farm.ready_plots():
            return Action(ActionType.HARVEST, description="Harvest for energy")
        if bottleneck.type == "gold":
            material = self._best_material(state)
            if material is not None:
                return Action(ActionType.SELL_MATERIAL, target=material, description="Raise gold")
        return None

    def _seed_pack(self, state: GameState) -> Optional[str]:
        if self.persona.spend_ratio < 0.8:
            return None
        packs = [
            item
            for item in self.game_data.by_type("seed")
            if item.gold_cost * 2 <= state.resources.gold
        ]
        if not packs:
            return None
        return sorted(packs, key=lambda item: (item.gold_cost, item.id))[0].id

    def _best_material(self, state: GameState) -> Optional[str]:
        held = [
            (qty * self.game_data.sell_price(material), material)
            for material, qty in state.resources.materials.items()
            if material != "wood"
        ]
        if not held:
            return None
        return sorted(held, key=lambda pair: (-pair[0], pair[1]))[0][1]

    def _routine(self, state: GameState) -> List[Candidate]:
        cfg = self.config
        persona = self.persona
        resources = state.resources
        farm = state.farm
        out: List[Candidate] = []

        if farm.ready_plots():
            out.append((60.0, Action(ActionType.HARVEST, description="Collect ready crops")))

        thirsty = [plot for plot in farm.growing_plots() if plot.water_level < cfg.thirsty_below]
        if thirsty and resources.water.current > 0:
            out.append((55.0, Action(ActionType.WATER, description="Water thirsty crops")))

        free = farm.free_plots()
        crop = resources.seeds.dominant()
        if free and crop:
            for index in range(min(len(free), resources.seeds.get(crop))):
                out.append((50.0 - index * 0.1, Action(ActionType.PLANT, target=crop)))

        item = next_purchase(state, self.game_data)
        if item is not None and item.gold_cost <= resources.gold * persona.spend_ratio:
            out.append((35.0 + 10.0 * persona.spend_ratio, Action(ActionType.PURCHASE, target=item.id)))

        structure = self._buildable(state)
        if structure is not None:
            out.append((33.0, Action(ActionType.BUILD, target=structure)))

        recipe = self._craftable(state)
        if recipe is not None:
            out.append((30.0, Action(ActionType.CRAFT, target=recipe)))

        route = self._route(state)
        if route is not None and resources.energy.current >= cfg.adventure_energy:
            out.append(
                (
                    20.0 + 20.0 * persona.risk_tolerance,
                    Action(ActionType.ADVENTURE, target=route, params={"variant": persona.preferred_variant}),
                )
            )

        if (
            state.processes.is_free("mine")
            and resources.energy.current >= cfg.mining_energy
            and any(tool.endswith("pickaxe") for tool in state.inventory.tools)
        ):
            out.append((18.0, Action(ActionType.MINE, duration=cfg.mining_minutes)))

        if resources.energy.current >= cfg.cleanup_energy and any(plot.debris for plot in farm.plots.values()):
            out.append((15.0, Action(ActionType.CLEANUP)))

        withered = [plot for plot in farm.ordered() if plot.withered]
        if withered:
            out.append((58.0, Action(ActionType.CLEANUP, target=withered[0].plot_id)))

        if len(state.helpers.gnomes) < state.helpers.housing_capacity:
            out.append((12.0, Action(ActionType.RESCUE)))
        idle = [gnome for _, gnome in sorted(state.helpers.gnomes.items()) if gnome.role is None]
        if idle:
            out.append(
                (11.0, Action(ActionType.ASSIGN_ROLE, target=idle[0].gnome_id, params={"role": "waterer"}))
            )
        return out

    def _buildable(self, state: GameState) -> Optional[str]:
        owned = state.owned_ids()
        for item in self.game_data.by_type("structure"):
            if item.id in state.progression.built_structures:
                continue
            if not self.game_data.prerequisites_met(item, owned):
                continue
            if state.resources.materials.can_afford(item.materials_cost) and state.resources.energy.has(
                item.energy_cost + 20.0
            ):
                return item.id
        return None

    def _craftable(self, state: GameState) -> Optional[str]:
        if not state.processes.is_free("forge_1"):
            return None
        owned = state.owned_ids()
        for item in self.game_data.by_type("craftable"):
            if state.inventory.owns(item.id) or not self.game_data.prerequisites_met(item, owned):
                continue
            if state.resources.materials.can_afford(item.materials_cost) and state.resources.energy.has(
                item.energy_cost
            ):
                return item.id
        return None

    def _route(self, state: GameState) -> Optional[str]:
        if not state.inventory.weapons or not state.processes.is_free("adventure"):
            return None
        owned = state.owned_ids()
        open_routes = [
            item for item in self.game_data.by_type("route") if self.game_data.prerequisites_met(item, owned)
        ]
        if not open_routes:
            return None
        # hardest open route first, judged by its energy cost
        return sorted(open_routes, key=lambda item: (-item.energy_cost, item.id))[0].id

    def _with_moves(self, actions: List[Action], screen: str) -> List[Action]:
        sequenced: List[Action] = []
        current = screen
        for action in actions:
            wanted = SCREEN_FOR_ACTION.get(action.type)  # type: ignore[arg-type]
            if wanted is not None and wanted != current:
                sequenced.append(
                    Action(ActionType.MOVE, target=wanted, description=f"Heading to {wanted} to {action.type_name}")
                )
                current = wanted
            sequenced.append(action)
        return sequenced


__all__ = ["DecisionConfig", "DecisionLoop"]
