"""Dispatch of player intents to the domain system that owns them."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from ..state import GameState
from ..systems.base import DomainSystem
from .base import (
    Action,
    ActionResult,
    ActionType,
    GameEvent,
    action_failed,
    action_ok,
    coerce_action_type,
)

INLINE_ACTIONS = frozenset({ActionType.MOVE, ActionType.WAIT})


class ActionRouter:
    """Routes actions through a table built once at construction.

    ``move`` and ``wait`` are handled here; every other type belongs to
    exactly one system.  Failures of any kind come back as results.
    """

    def __init__(self, systems: Iterable[DomainSystem]) -> None:
        table: Dict[ActionType, DomainSystem] = {}
        by_name: Dict[str, DomainSystem] = {}
        for system in systems:
            if system.name in by_name:
                raise ValueError(f"System {system.name!r} registered twice")
            by_name[system.name] = system
            for action_type in sorted(system.handles, key=lambda kind: kind.value):
                if action_type in INLINE_ACTIONS:
                    raise ValueError(f"{action_type.value} is handled by the router itself")
                owner = table.get(action_type)
                if owner is not None:
                    raise ValueError(f"{action_type.value} claimed by both {owner.name} and {system.name}")
                table[action_type] = system
        self._table = table
        self._systems = by_name

    def route(self, action: Action, state: GameState) -> ActionResult:
        if action.type is ActionType.MOVE:
            return self._move(action, state)
        if action.type is ActionType.WAIT:
            return self._wait(action, state)
        system = self._table.get(action.type) if isinstance(action.type, ActionType) else None
        if system is None:
            return action_failed(f"No system handles action type: {action.type_name}")
        try:
            return system.execute(action, state)
        except Exception as exc:
            return action_failed(f"Execution error: {exc}")

    def _move(self, action: Action, state: GameState) -> ActionResult:
        target = action.target or action.param("to_screen")
        if not target:
            return action_failed("No target screen specified")
        location = state.location
        origin = location.current_screen
        reason = action.description or f"Moved to {target}"
        location.previous_screen = origin
        location.current_screen = target
        location.time_on_screen = 0.0
        location.screen_history.append(target)
        location.navigation_reason = reason
        return action_ok(
            reason,
            event_type="movement",
            timestamp=state.time.total_minutes,
            changes={"location.current_screen": target, "location.time_on_screen": 0.0},
            data={"from": origin, "to": target, "reason": reason},
        )

    def _wait(self, action: Action, state: GameState) -> ActionResult:
        duration = float(action.duration or 0.0)
        return ActionResult(
            success=True,
            events=[
                GameEvent(
                    type="wait",
                    description=f"Waited for {duration:g} minutes",
                    data={"duration": duration},
                    timestamp=state.time.total_minutes,
                )
            ],
        )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    def system_for_action(self, action_type: ActionType | str) -> Optional[str]:
        kind = coerce_action_type(action_type)
        system = self._table.get(kind) if kind is not None else None
        return system.name if system is not None else None

    def actions_for_system(self, name: str) -> List[str]:
        return sorted(kind.value for kind, system in self._table.items() if system.name == name)

    def registered_systems(self) -> List[str]:
        return sorted(self._systems)

    def can_route(self, action_type: ActionType | str) -> bool:
        kind = coerce_action_type(action_type)
        return kind is not None and (kind in INLINE_ACTIONS or kind in self._table)

    def routing_table(self) -> Dict[str, str]:
        return {kind.value: system.name for kind, system in sorted(self._table.items(), key=lambda item: item[0].value)}


__all__ = ["ActionRouter", "INLINE_ACTIONS"]
