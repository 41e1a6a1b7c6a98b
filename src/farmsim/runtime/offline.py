"""Closed-form catch-up for automation while the player is away.

The estimator never steps a tick loop: every contribution is a product of an
unlocked automation rate and the elapsed time, clamped by capacity, seeds or
water.  Totals are computed first and then committed to the state in one go.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, List, Mapping

from ..game_data import GameData
from ..state import GameState

AUTO_PUMP_RATES = {
    "auto_pump": 0.5,
    "auto_pump_2": 1.0,
    "auto_pump_3": 1.75,
    "crystal_auto_pump": 2.5,
}

AUTO_CATCHER_RATES = {
    "auto_catcher_1": 0.1,
    "auto_catcher_2": 0.2,
    "auto_catcher_3": 0.5,
}


@dataclass(slots=True)
class OfflineConfig:
    min_offline_minutes: float = 5.0
    water_per_cycle: float = 5.0
    auto_pump_rates: Mapping[str, float] = field(default_factory=lambda: dict(AUTO_PUMP_RATES))
    auto_catcher_rates: Mapping[str, float] = field(default_factory=lambda: dict(AUTO_CATCHER_RATES))


@dataclass(slots=True)
class OfflineSection:
    category: str
    lines: List[str] = field(default_factory=list)


@dataclass(slots=True)
class OfflineResult:
    elapsed_minutes: float
    applied: bool = False
    water_generated: float = 0.0
    water_consumed: float = 0.0
    energy_gained: float = 0.0
    gold_gained: float = 0.0
    crops_auto_harvested: int = 0
    seeds_planted: Dict[str, int] = field(default_factory=dict)
    seeds_caught: Dict[str, int] = field(default_factory=dict)
    virtual_actions: int = 0
    sections: List[OfflineSection] = field(default_factory=list)

    @property
    def title(self) -> str:
        return f"While you were away ({format_duration(self.elapsed_minutes)})"

    @property
    def resources_gained(self) -> Dict[str, float]:
        gained: Dict[str, float] = {
            "water": self.water_generated,
            "energy": self.energy_gained,
            "gold": self.gold_gained,
        }
        for crop, qty in sorted(self.seeds_caught.items()):
            gained[f"seeds.{crop}"] = float(qty)
        return gained

    def summary(self) -> str:
        lines = [self.title]
        for section in self.sections:
            lines.append(f"{section.category}:")
            lines.extend(f"  {line}" for line in section.lines)
        if not self.sections:
            lines.append("Nothing happened.")
        return "\n".join(lines)


def format_duration(minutes: float) -> str:
    total = int(minutes)
    if total < 60:
        return f"{total} minute" if total == 1 else f"{total} minutes"
    if total < 24 * 60:
        hours, mins = divmod(total, 60)
        return f"{hours}h {mins}m"
    days, rest = divmod(total, 24 * 60)
    return f"{days}d {rest // 60}h"


def best_rate(unlocked: set[str], rates: Mapping[str, float]) -> float:
    return max((rate for upgrade, rate in rates.items() if upgrade in unlocked), default=0.0)


class OfflineProgressionEstimator:
    def __init__(self, config: OfflineConfig | None = None, game_data: GameData | None = None) -> None:
        self.config = config or OfflineConfig()
        self.game_data = game_data or GameData()

    def _unlocked(self, state: GameState) -> set[str]:
        return set(state.progression.unlocked_upgrades) | set(state.progression.built_structures)

    def calculate(self, state: GameState, elapsed_minutes: float) -> OfflineResult:
        result = OfflineResult(elapsed_minutes=float(elapsed_minutes))
        if elapsed_minutes < self.config.min_offline_minutes:
            return result

        unlocked = self._unlocked(state)
        resources = state.resources
        elapsed = float(elapsed_minutes)

        pump_rate = best_rate(unlocked, self.config.auto_pump_rates)
        result.water_generated = min(resources.water.missing, pump_rate * elapsed)
        water_budget = resources.water.current + result.water_generated

        energy_income = resources.energy.regen_rate * elapsed
        seeds_left = resources.seeds.as_dict()
        harvested_plots: List[str] = []
        auto_harvest = "auto_harvest" in unlocked or bool(state.helpers.with_role("harvester"))
        auto_plant = auto_harvest and "auto_plant" in unlocked

        if auto_harvest:
            for plot in state.farm.ready_plots():
                profile = self.game_data.crop_profile(plot.crop_id or "unknown")
                energy_income += profile.energy
                result.gold_gained += profile.gold
                result.crops_auto_harvested += 1
                harvested_plots.append(plot.plot_id)

        if auto_plant:
            idle = [
                plot
                for plot in state.farm.unlocked_plots()
                if plot.is_free or plot.plot_id in harvested_plots
            ]
            for plot in idle:
                crop = _dominant(seeds_left)
                if crop is None:
                    break
                profile = self.game_data.crop_profile(crop)
                cycles = int(math.floor(elapsed / profile.growth_minutes))
                cycles = min(cycles, seeds_left[crop])
                if self.config.water_per_cycle > 0:
                    cycles = min(cycles, int(math.floor(water_budget / self.config.water_per_cycle)))
                if cycles <= 0:
                    continue
                seeds_left[crop] -= cycles
                water_budget -= cycles * self.config.water_per_cycle
                result.water_consumed += cycles * self.config.water_per_cycle
                result.seeds_planted[crop] = result.seeds_planted.get(crop, 0) + cycles
                result.crops_auto_harvested += cycles
                energy_income += cycles * profile.energy
                result.gold_gained += cycles * profile.gold

        catch_rate = best_rate(unlocked, self.config.auto_catcher_rates)
        caught = int(math.floor(catch_rate * elapsed))
        if caught > 0:
            result.seeds_caught = spread_evenly(caught, self.game_data.crops_for_reach(state.progression.tower_reach))

        result.energy_gained = min(resources.energy.missing, energy_income)
        result.virtual_actions = (
            (1 if result.water_generated > 0 else 0)
            + result.crops_auto_harvested
            + sum(result.seeds_planted.values())
            + (1 if caught > 0 else 0)
        )
        result.sections = self._sections(result)
        self._commit(state, result, harvested_plots)
        return result

    def _commit(self, state: GameState, result: OfflineResult, harvested_plots: List[str]) -> None:
        resources = state.resources
        resources.water.add(result.water_generated)
        resources.water.consume(result.water_consumed)
        resources.energy.add(result.energy_gained)
        resources.earn_gold(result.gold_gained)
        for crop, qty in result.seeds_planted.items():
            resources.seeds.remove(crop, qty)
        for crop, qty in result.seeds_caught.items():
            resources.seeds.add(crop, qty)
        for plot_id in harvested_plots:
            state.farm.plots[plot_id].clear()
        state.progression.crops_harvested += result.crops_auto_harvested
        state.time.advance(result.elapsed_minutes)
        result.applied = True

    def _sections(self, result: OfflineResult) -> List[OfflineSection]:
        sections: List[OfflineSection] = []
        farm = OfflineSection("Farm")
        if result.water_generated > 0:
            farm.lines.append(f"Auto-pump collected {result.water_generated:.0f} water")
        if result.crops_auto_harvested:
            farm.lines.append(f"Harvested {result.crops_auto_harvested} crops")
        if result.seeds_planted:
            planted = ", ".join(f"{qty} {crop}" for crop, qty in sorted(result.seeds_planted.items()))
            farm.lines.append(f"Replanted {planted}")
        if farm.lines:
            sections.append(farm)
        if result.seeds_caught:
            caught = ", ".join(f"{qty} {crop}" for crop, qty in sorted(result.seeds_caught.items()))
            sections.append(OfflineSection("Tower", [f"Auto-catcher caught {caught}"]))
        if result.energy_gained > 0 or result.gold_gained > 0:
            lines = []
            if result.energy_gained > 0:
                lines.append(f"+{result.energy_gained:.0f} energy")
            if result.gold_gained > 0:
                lines.append(f"+{result.gold_gained:.0f} gold")
            sections.append(OfflineSection("Resources", lines))
        return sections


def _dominant(seeds: Dict[str, int]) -> str | None:
    available = [(crop, qty) for crop, qty in seeds.items() if qty > 0]
    if not available:
        return None
    return sorted(available, key=lambda pair: (-pair[1], pair[0]))[0][0]


def spread_evenly(total: int, kinds: List[str]) -> Dict[str, int]:
    if total <= 0 or not kinds:
        return {}
    base, remainder = divmod(total, len(kinds))
    spread = {}
    for index, kind in enumerate(kinds):
        qty = base + (1 if index < remainder else 0)
        if qty > 0:
            spread[kind] = qty
    return spread


__all__ = [
    "AUTO_CATCHER_RATES",
    "AUTO_PUMP_RATES",
    "OfflineConfig",
    "OfflineProgressionEstimator",
    "OfflineResult",
    "OfflineSection",
    "format_duration",
    "spread_evenly",
]
