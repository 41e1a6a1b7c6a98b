"""Action intents, events and results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple


class ActionType(Enum):
    PLANT = "plant"
    HARVEST = "harvest"
    WATER = "water"
    PUMP = "pump"
    CLEANUP = "cleanup"
    CATCH_SEEDS = "catch_seeds"
    PURCHASE = "purchase"
    BUILD = "build"
    SELL_MATERIAL = "sell_material"
    TRAIN = "train"
    ADVENTURE = "adventure"
    MINE = "mine"
    CRAFT = "craft"
    STOKE = "stoke"
    ASSIGN_ROLE = "assign_role"
    TRAIN_HELPER = "train_helper"
    RESCUE = "rescue"
    MOVE = "move"
    WAIT = "wait"


def coerce_action_type(value: object) -> ActionType | None:
    if isinstance(value, ActionType):
        return value
    if isinstance(value, str):
        try:
            return ActionType(value.strip().lower())
        except ValueError:
            return None
    return None


def action_type_name(value: object) -> str:
    if isinstance(value, ActionType):
        return value.value
    return str(value)


def _normalize_params(params: object) -> Tuple[Tuple[str, Any], ...]:
    if not params:
        return ()
    if isinstance(params, Mapping):
        items = params.items()
    else:
        items = params  # already a sequence of pairs
    return tuple(sorted(((str(key), value) for key, value in items), key=lambda pair: pair[0]))


@dataclass(frozen=True)
class Action:
    """Immutable player intent.

    ``type`` holds an :class:`ActionType` when the string is recognised and
    the raw string otherwise, so the router can refuse it with a message.
    """

    type: ActionType | str
    target: Optional[str] = None
    duration: float = 0.0
    description: str = ""
    energy_cost: float = 0.0
    gold_cost: float = 0.0
    params: Tuple[Tuple[str, Any], ...] = ()

    def __post_init__(self) -> None:
        coerced = coerce_action_type(self.type)
        object.__setattr__(self, "type", coerced if coerced is not None else str(self.type))
        object.__setattr__(self, "params", _normalize_params(self.params))

    @property
    def type_name(self) -> str:
        return action_type_name(self.type)

    def param(self, key: str, default: Any = None) -> Any:
        for name, value in self.params:
            if name == key:
                return value
        return default


@dataclass(frozen=True)
class GameEvent:
    type: str
    description: str
    data: Mapping[str, Any] = field(default_factory=dict)
    timestamp: float = 0.0
    importance: str = "low"


@dataclass
class ActionResult:
    success: bool
    events: List[GameEvent] = field(default_factory=list)
    state_changes: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.success:
            if self.state_changes:
                raise ValueError("A failed action result cannot carry state changes")
            if not self.error:
                raise ValueError("A failed action result needs an error message")


def action_ok(
    description: str,
    *,
    event_type: str,
    timestamp: float = 0.0,
    changes: Optional[Mapping[str, Any]] = None,
    data: Optional[Mapping[str, Any]] = None,
    importance: str = "low",
    extra_events: Tuple[GameEvent, ...] = (),
) -> ActionResult:
    event = GameEvent(
        type=event_type,
        description=description,
        data=dict(data or {}),
        timestamp=timestamp,
        importance=importance,
    )
    return ActionResult(success=True, events=[event, *extra_events], state_changes=dict(changes or {}))


def action_failed(error: str) -> ActionResult:
    return ActionResult(success=False, error=error)


__all__ = [
    "Action",
    "ActionResult",
    "ActionType",
    "GameEvent",
    "action_failed",
    "action_ok",
    "action_type_name",
    "coerce_action_type",
]
