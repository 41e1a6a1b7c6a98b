"""Player personas driving the decision loop."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping

DEFAULT_STRATEGY = "balanced_growth"


@dataclass(frozen=True)
class PersonaProfile:
    """Tunable play style for a simulated player."""

    id: str
    label: str
    description: str
    strategy: str
    check_in_minutes: float  # how often the player looks at the game
    spend_ratio: float  # 0-1: share of gold the player is willing to spend at once
    risk_tolerance: float  # 0-1: appetite for adventures and long routes
    preferred_variant: str
    max_actions: int
    bottleneck_weights: Mapping[str, float] = field(default_factory=dict)

    def weight_for(self, bottleneck_type: str) -> float:
        return float(self.bottleneck_weights.get(bottleneck_type, 1.0))


PERSONAS: Dict[str, PersonaProfile] = {
    "speedrunner": PersonaProfile(
        id="speedrunner",
        label="Speedrunner",
        description="Checks in constantly and reinvests every coin into expansion.",
        strategy="aggressive_expansion",
        check_in_minutes=1.0,
        spend_ratio=1.0,
        risk_tolerance=0.8,
        preferred_variant="Medium",
        max_actions=3,
        bottleneck_weights={"water": 1.0, "seeds": 1.2, "energy": 0.8, "gold": 1.3},
    ),
    "casual": PersonaProfile(
        id="casual",
        label="Casual Player",
        description="Drops in twice an hour, keeps the farm alive, spends carefully.",
        strategy="casual_maintenance",
        check_in_minutes=30.0,
        spend_ratio=0.5,
        risk_tolerance=0.3,
        preferred_variant="Short",
        max_actions=2,
        bottleneck_weights={"water": 1.3, "seeds": 1.0, "energy": 1.1, "gold": 0.7},
    ),
    "weekend_warrior": PersonaProfile(
        id="weekend_warrior",
        label="Weekend Warrior",
        description="Long, infrequent sessions with many actions queued at once.",
        strategy="batch_sessions",
        check_in_minutes=120.0,
        spend_ratio=0.8,
        risk_tolerance=0.6,
        preferred_variant="Long",
        max_actions=6,
        bottleneck_weights={"water": 1.1, "seeds": 1.1, "energy": 1.0, "gold": 1.0},
    ),
    "balanced": PersonaProfile(
        id="balanced",
        label="Balanced Player",
        description="Regular check-ins and steady growth.",
        strategy=DEFAULT_STRATEGY,
        check_in_minutes=10.0,
        spend_ratio=0.7,
        risk_tolerance=0.5,
        preferred_variant="Short",
        max_actions=3,
    ),
}


def get_persona(persona_id: str) -> PersonaProfile:
    return PERSONAS.get(persona_id, PERSONAS["balanced"])


def get_persona_strategy(persona_id: str) -> str:
    persona = PERSONAS.get(persona_id)
    return persona.strategy if persona is not None else DEFAULT_STRATEGY


__all__ = ["DEFAULT_STRATEGY", "PERSONAS", "PersonaProfile", "get_persona", "get_persona_strategy"]
