from __future__ import annotations

from ..actions.base import Action, ActionResult, ActionType, action_failed
from ..processes.base import ProcessKind
from ..state import GameState
from .base import DomainSystem


class MineSystem(DomainSystem):
    name = "mine"
    handles = frozenset({ActionType.MINE})

    def _do_mine(self, action: Action, state: GameState) -> ActionResult:
        manager = self.services.processes
        if manager is None:
            return action_failed("Mining needs a process manager")
        minutes = float(action.duration or action.param("minutes", 60.0))
        process = manager.start_process(ProcessKind.MINING, {"duration": minutes}, state, self.game_data)
        if process is None:
            return action_failed(f"Cannot start mining: {manager.last_refusal}")
        return self.ok(
            state,
            f"Started a {minutes:.0f} minute mining session",
            event_type="mining_started",
            changes={f"processes.occupied.{process.slot_ref}": process.process_id},
            duration=minutes,
            process_id=process.process_id,
        )


__all__ = ["MineSystem"]
