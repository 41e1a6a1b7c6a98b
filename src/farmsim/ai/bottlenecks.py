"""Shortage detection for the decision loop.

Each bottleneck compares a demand against what the player holds.  Severity
is the shortfall ratio ``(demand - available) / demand`` in ``[0, 1]``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from ..game_data import GameData, ItemRecord
from ..state import GameState
from .personas import PersonaProfile

BOTTLENECK_ORDER: Tuple[str, ...] = ("water", "seeds", "energy", "gold")
SHOPPABLE_TYPES = ("upgrade", "tool", "weapon", "armor", "blueprint")


@dataclass(slots=True)
class BottleneckConfig:
    min_severity: float = 0.1
    water_per_plot: float = 2.0
    energy_reserve: float = 20.0


@dataclass(frozen=True)
class Bottleneck:
    type: str
    severity: float
    demand: float
    available: float
    detail: str = ""


def _shortfall(demand: float, available: float) -> float:
    if demand <= 0:
        return 0.0
    return max(0.0, min(1.0, (demand - available) / demand))


def next_purchase(state: GameState, game_data: GameData | None) -> Optional[ItemRecord]:
    """Cheapest catalogue item the player could buy next."""

    if game_data is None:
        return None
    owned = state.owned_ids()
    options = [
        item
        for item in game_data.by_type(*SHOPPABLE_TYPES)
        if item.id not in owned and item.gold_cost > 0 and game_data.prerequisites_met(item, owned)
    ]
    if not options:
        return None
    return sorted(options, key=lambda item: (item.gold_cost, item.id))[0]


def get_bottleneck_priorities(
    state: GameState,
    config: BottleneckConfig | None = None,
    game_data: GameData | None = None,
) -> List[Bottleneck]:
    cfg = config or BottleneckConfig()
    plots = state.farm.plot_count
    resources = state.resources
    found: List[Bottleneck] = []

    water_demand = plots * cfg.water_per_plot
    found.append(
        Bottleneck("water", _shortfall(water_demand, resources.water.current), water_demand, resources.water.current)
    )

    crop = resources.seeds.dominant()
    held = resources.seeds.get(crop) if crop else 0
    found.append(Bottleneck("seeds", _shortfall(plots, held), float(plots), float(held), crop or ""))

    found.append(
        Bottleneck(
            "energy",
            _shortfall(cfg.energy_reserve, resources.energy.current),
            cfg.energy_reserve,
            resources.energy.current,
        )
    )

    item = next_purchase(state, game_data)
    if item is not None:
        found.append(
            Bottleneck("gold", _shortfall(item.gold_cost, resources.gold), item.gold_cost, resources.gold, item.id)
        )

    active = [b for b in found if b.severity > 0 and b.severity >= cfg.min_severity]
    return sorted(active, key=lambda b: (-b.severity, BOTTLENECK_ORDER.index(b.type)))


def rank_for_persona(bottlenecks: Sequence[Bottleneck], persona: PersonaProfile) -> List[Bottleneck]:
    """Reorder by persona-weighted severity, keeping the fixed tie order."""

    return sorted(
        bottlenecks,
        key=lambda b: (-b.severity * persona.weight_for(b.type), BOTTLENECK_ORDER.index(b.type)),
    )


__all__ = [
    "BOTTLENECK_ORDER",
    "Bottleneck",
    "BottleneckConfig",
    "get_bottleneck_priorities",
    "next_purchase",
    "rank_for_persona",
]
