from .base import Action, ActionResult, ActionType, GameEvent, action_failed, action_ok, coerce_action_type

__all__ = [
    "Action",
    "ActionResult",
    "ActionType",
    "GameEvent",
    "action_failed",
    "action_ok",
    "coerce_action_type",
]
