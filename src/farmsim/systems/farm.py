from __future__ import annotations

from ..actions.base import Action, ActionResult, ActionType, action_failed
from ..effects import effect_total
from ..processes.base import ProcessKind
from ..processes.handlers import FULL_WATER, harvest_plot
from ..state import GameState
from .base import DomainSystem


class FarmSystem(DomainSystem):
    name = "farm"
    handles = frozenset(
        {ActionType.PLANT, ActionType.HARVEST, ActionType.WATER, ActionType.PUMP, ActionType.CLEANUP}
    )

    def _do_plant(self, action: Action, state: GameState) -> ActionResult:
        crop = action.target or action.param("crop")
        if not crop:
            return action_failed("No crop specified")
        seeds = state.resources.seeds
        if seeds.get(crop) <= 0:
            return action_failed(f"No {crop} seeds available")
        if not state.resources.energy.has(action.energy_cost):
            return action_failed("Not enough energy")
        manager = self.services.processes
        if manager is None:
            return action_failed("Planting needs a process manager")
        process = manager.start_process(
            ProcessKind.CROP_GROWTH,
            {"crop": crop, "plot": action.param("plot")},
            state,
            self.game_data,
        )
        if process is None:
            return action_failed(f"Cannot plant {crop}: {manager.last_refusal}")
        remaining = seeds.adjust(crop, -1)
        state.resources.energy.consume(action.energy_cost)
        return self.ok(
            state,
            f"Planted {crop} on {process.slot_ref}",
            event_type="crop_planted",
            changes={
                f"resources.seeds.{crop}": remaining,
                f"farm.plots.{process.slot_ref}.crop_id": crop,
            },
            plot=process.slot_ref,
            crop=crop,
            process_id=process.process_id,
        )

    def _do_harvest(self, action: Action, state: GameState) -> ActionResult:
        if action.target:
            plot = state.farm.plots.get(action.target)
            plots = [plot] if plot is not None and plot.ready else []
        else:
            plots = state.farm.ready_plots()
        if not plots:
            return action_failed("No crops ready to harvest")
        energy = 0.0
        gold = 0.0
        crops = []
        for plot in plots:
            gains = harvest_plot(state, plot, self.game_data)
            energy += gains["energy"]
            gold += gains["gold"]
            crops.append(gains["crop"])
        return self.ok(
            state,
            f"Harvested {len(crops)} crops",
            event_type="crops_harvested",
            changes={
                "resources.energy.current": state.resources.energy.current,
                "resources.gold": state.resources.gold,
            },
            crops=crops,
            energy=energy,
            gold=gold,
        )

    def _do_water(self, action: Action, state: GameState) -> ActionResult:
        growing = sorted(state.farm.growing_plots(), key=lambda plot: (plot.water_level, plot.plot_id))
        thirsty = [plot for plot in growing if plot.water_level < FULL_WATER]
        if not thirsty:
            return action_failed("No crops need water")
        pool = state.resources.water
        if pool.current <= 0:
            return action_failed("No water in the tank")
        budget = min(pool.current, float(action.param("amount", pool.current)))
        poured = 0.0
        changes = {}
        for plot in thirsty:
            share = min(FULL_WATER - plot.water_level, budget - poured)
            if share <= 0:
                break
            plot.water_level += share
            plot.drought_minutes = 0.0
            poured += share
            changes[f"farm.plots.{plot.plot_id}.water_level"] = plot.water_level
        pool.consume(poured)
        changes["resources.water.current"] = pool.current
        return self.ok(state, f"Watered {len(changes) - 1} plots", event_type="crops_watered", changes=changes, water=poured)

    def _do_pump(self, action: Action, state: GameState) -> ActionResult:
        pool = state.resources.water
        if pool.missing <= 0:
            return action_failed("Water tank is already full")
        if not state.resources.energy.has(action.energy_cost):
            return action_failed("Not enough energy")
        amount = self.config.pump_amount + effect_total(state, self.game_data, "pump_bonus")
        added = pool.add(amount)
        state.resources.energy.consume(action.energy_cost)
        return self.ok(
            state,
            f"Pumped {added:.0f} water",
            event_type="water_pumped",
            changes={"resources.water.current": pool.current},
            amount=added,
        )

    def _do_cleanup(self, action: Action, state: GameState) -> ActionResult:
        if action.target:
            plot = state.farm.plots.get(action.target)
            if plot is None:
                return action_failed(f"Unknown plot {action.target}")
        else:
            candidates = [p for p in state.farm.ordered() if p.withered or p.debris]
            if not candidates:
                return action_failed("Nothing to clean up")
            plot = candidates[0]
        if plot.withered:
            plot.clear()
            return self.ok(
                state,
                f"Cleared withered crop from {plot.plot_id}",
                event_type="plot_cleared",
                changes={f"farm.plots.{plot.plot_id}.crop_id": None},
                plot=plot.plot_id,
            )
        if not plot.debris:
            return action_failed(f"{plot.plot_id} has nothing to clean up")
        cost = action.energy_cost or self.config.cleanup_energy
        if not state.resources.energy.has(cost):
            return action_failed("Not enough energy")
        state.resources.energy.consume(cost)
        debris = plot.debris
        plot.debris = None
        plot.unlocked = True
        return self.ok(
            state,
            f"Cleared {debris} from {plot.plot_id}",
            event_type="plot_unlocked",
            changes={
                f"farm.plots.{plot.plot_id}.unlocked": True,
                "resources.energy.current": state.resources.energy.current,
            },
            plot=plot.plot_id,
            debris=debris,
        )


__all__ = ["FarmSystem"]
