from __future__ import annotations

from ..actions.base import Action, ActionResult, ActionType, action_failed
from ..processes.base import ProcessKind
from ..state import GameState
from .base import DomainSystem


class ForgeSystem(DomainSystem):
    name = "forge"
    handles = frozenset({ActionType.CRAFT, ActionType.STOKE})

    def _do_craft(self, action: Action, state: GameState) -> ActionResult:
        if not action.target:
            return action_failed("No recipe specified")
        manager = self.services.processes
        if manager is None:
            return action_failed("Crafting needs a process manager")
        process = manager.start_process(ProcessKind.CRAFTING, {"item": action.target}, state, self.game_data)
        if process is None:
            return action_failed(f"Cannot craft {action.target}: {manager.last_refusal}")
        return self.ok(
            state,
            f"Started crafting {action.target}",
            event_type="crafting_started",
            changes={
                "resources.energy.current": state.resources.energy.current,
                f"processes.occupied.{process.slot_ref}": process.process_id,
            },
            item=action.target,
            duration=process.duration,
            process_id=process.process_id,
        )

    def _do_stoke(self, action: Action, state: GameState) -> ActionResult:
        forge = state.forge
        if forge.heat >= forge.max_heat:
            return action_failed("The forge is already at full heat")
        cfg = self.config
        if not state.resources.energy.has(cfg.stoke_energy):
            return action_failed("Not enough energy")
        if state.resources.materials.get("wood") < cfg.stoke_wood:
            return action_failed("Need wood to stoke the forge")
        state.resources.energy.consume(cfg.stoke_energy)
        state.resources.materials.remove("wood", cfg.stoke_wood)
        before = forge.heat
        forge.heat = min(forge.max_heat, forge.heat + cfg.stoke_heat)
        return self.ok(
            state,
            f"Stoked the forge to {forge.heat:.0f}",
            event_type="forge_stoked",
            changes={"forge.heat": forge.heat, "resources.materials.wood": state.resources.materials.get("wood")},
            heat_gained=forge.heat - before,
        )


__all__ = ["ForgeSystem"]
