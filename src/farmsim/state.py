"""Mutable game state for a single simulated player."""

from __future__ import annotations

from dataclasses import dataclass, field
from hashlib import sha256
from typing import Dict, Iterable, Iterator, List, Mapping, Optional


@dataclass(slots=True)
class TimeState:
    day: int = 1
    hour: int = 8
    minute: float = 0.0
    total_minutes: float = 480.0
    speed: float = 1.0

    def advance(self, minutes: float) -> None:
        if minutes <= 0:
            return
        self.total_minutes += minutes
        day_index, minute_of_day = divmod(self.total_minutes, 24 * 60)
        self.day = int(day_index) + 1
        self.hour = int(minute_of_day // 60)
        self.minute = minute_of_day - self.hour * 60

    @property
    def days_passed(self) -> int:
        return self.day - 1

    def label(self) -> str:
        return f"Day {self.day} {self.hour:02d}:{int(self.minute):02d}"


@dataclass(slots=True)
class ResourcePool:
    current: float
    maximum: float
    regen_rate: float = 0.0

    def add(self, amount: float) -> float:
        if amount <= 0:
            return 0.0
        applied = min(amount, max(0.0, self.maximum - self.current))
        self.current += applied
        return applied

    def consume(self, amount: float) -> float:
        if amount <= 0:
            return 0.0
        applied = min(amount, self.current)
        self.current -= applied
        return applied

    def has(self, amount: float) -> bool:
        return self.current >= amount

    @property
    def missing(self) -> float:
        return max(0.0, self.maximum - self.current)


@dataclass(slots=True)
class CountPool:
    """Item counts that can never go negative.

    Every mutation goes through :meth:`adjust`.
    """

    counts: Dict[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        raw = dict(self.counts)
        self.counts = {}
        for item, qty in raw.items():
            self.adjust(item, int(qty))

    def __iter__(self) -> Iterator[str]:
        return iter(self.counts)

    def __len__(self) -> int:
        return len(self.counts)

    def __contains__(self, item: object) -> bool:
        return self.counts.get(item, 0) > 0  # type: ignore[arg-type]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CountPool):
            return NotImplemented
        return self.as_dict() == other.as_dict()

    def get(self, item: str) -> int:
        return int(self.counts.get(item, 0))

    def adjust(self, item: str, delta: int) -> int:
        """Apply ``delta`` clamped at zero and return the new count."""

        new_value = max(0, self.get(item) + int(delta))
        if new_value == 0:
            self.counts.pop(item, None)
        else:
            self.counts[item] = new_value
        return new_value

    def add(self, item: str, qty: int) -> int:
        if qty <= 0:
            return self.get(item)
        return self.adjust(item, qty)

    def remove(self, item: str, qty: int) -> int:
        """Remove up to ``qty`` and return how many were actually taken."""

        if qty <= 0:
            return 0
        before = self.get(item)
        after = self.adjust(item, -qty)
        return before - after

    def can_afford(self, cost: Mapping[str, int]) -> bool:
        return all(self.get(item) >= int(qty) for item, qty in cost.items())

    def apply_cost(self, cost: Mapping[str, int]) -> None:
        for item, qty in cost.items():
            self.remove(item, int(qty))

    def total(self) -> int:
        return sum(self.counts.values())

    def items(self) -> List[tuple[str, int]]:
        return sorted(self.counts.items())

    def as_dict(self) -> Dict[str, int]:
        return dict(sorted(self.counts.items()))

    def dominant(self) -> Optional[str]:
        if not self.counts:
            return None
        return sorted(self.counts.items(), key=lambda pair: (-pair[1], pair[0]))[0][0]

    def signature(self) -> str:
        return sha256(str(self.as_dict()).encode("utf-8")).hexdigest()


@dataclass(slots=True)
class ResourceState:
    energy: ResourcePool = field(default_factory=lambda: ResourcePool(100.0, 100.0, 0.1))
    gold: float = 100.0
    water: ResourcePool = field(default_factory=lambda: ResourcePool(50.0, 100.0, 0.0))
    seeds: CountPool = field(default_factory=CountPool)
    materials: CountPool = field(default_factory=CountPool)

    def earn_gold(self, amount: float) -> float:
        if amount <= 0:
            return 0.0
        self.gold += amount
        return amount

    def spend_gold(self, amount: float) -> bool:
        if amount < 0 or self.gold < amount:
            return False
        self.gold -= amount
        return True


@dataclass(slots=True)
class ProgressionState:
    hero_level: int = 1
    hero_xp: float = 0.0
    unlocked_upgrades: set[str] = field(default_factory=set)
    built_structures: set[str] = field(default_factory=set)
    completed_milestones: set[str] = field(default_factory=set)
    current_phase: str = "early"
    tower_reach: int = 1
    crops_harvested: int = 0
    adventures_completed: int = 0

    def gain_xp(self, amount: float) -> int:
        if amount <= 0:
            return 0
        self.hero_xp += amount
        levels = 0
        while self.hero_xp >= self.hero_level * 100:
            self.hero_xp -= self.hero_level * 100
            self.hero_level += 1
            levels += 1
        return levels

    def has_upgrade(self, upgrade_id: str) -> bool:
        return upgrade_id in self.unlocked_upgrades


@dataclass(slots=True)
class ItemInstance:
    item_id: str
    durability: float = 100.0
    max_durability: float = 100.0
    level: int = 1
    equipped: bool = False


@dataclass(slots=True)
class InventoryState:
    tools: Dict[str, ItemInstance] = field(default_factory=dict)
    weapons: Dict[str, ItemInstance] = field(default_factory=dict)
    armor: Dict[str, ItemInstance] = field(default_factory=dict)
    blueprints: set[str] = field(default_factory=set)

    def bucket(self, item_type: str) -> Dict[str, ItemInstance]:
        if item_type == "tool":
            return self.tools
        if item_type == "weapon":
            return self.weapons
        if item_type == "armor":
            return self.armor
        raise KeyError(f"No inventory bucket for {item_type!r}")

    def add_item(self, item_type: str, item_id: str) -> ItemInstance:
        bucket = self.bucket(item_type)
        existing = bucket.get(item_id)
        if existing is not None:
            existing.durability = existing.max_durability
            return existing
        instance = ItemInstance(item_id=item_id, equipped=not bucket)
        bucket[item_id] = instance
        return instance

    def owns(self, item_id: str) -> bool:
        return item_id in self.tools or item_id in self.weapons or item_id in self.armor

    def owned_ids(self) -> set[str]:
        return set(self.tools) | set(self.weapons) | set(self.armor) | set(self.blueprints)


@dataclass(slots=True)
class PlotState:
    plot_id: str
    unlocked: bool = True
    debris: Optional[str] = None
    crop_id: Optional[str] = None
    water_level: float = 0.0
    ready: bool = False
    withered: bool = False
    drought_minutes: float = 0.0
    process_id: Optional[str] = None

    @property
    def is_free(self) -> bool:
        return self.unlocked and self.crop_id is None and self.process_id is None

    @property
    def is_growing(self) -> bool:
        return self.process_id is not None

    def clear(self) -> None:
        self.crop_id = None
        self.water_level = 0.0
        self.ready = False
        self.withered = False
        self.drought_minutes = 0.0
        self.process_id = None


@dataclass(slots=True)
class FarmState:
    plots: Dict[str, PlotState] = field(default_factory=dict)

    def unlocked_plots(self) -> List[PlotState]:
        return [plot for plot in self.ordered() if plot.unlocked]

    def ordered(self) -> List[PlotState]:
        return [self.plots[key] for key in sorted(self.plots, key=_plot_sort_key)]

    def free_plots(self) -> List[PlotState]:
        return [plot for plot in self.ordered() if plot.is_free]

    def ready_plots(self) -> List[PlotState]:
        return [plot for plot in self.ordered() if plot.ready]

    def growing_plots(self) -> List[PlotState]:
        return [plot for plot in self.ordered() if plot.is_growing]

    @property
    def plot_count(self) -> int:
        return len(self.unlocked_plots())

    def add_plots(self, count: int, *, debris: Optional[str] = None) -> List[PlotState]:
        created: List[PlotState] = []
        for _ in range(max(0, int(count))):
            plot_id = f"plot_{len(self.plots) + 1}"
            plot = PlotState(plot_id=plot_id, unlocked=debris is None, debris=debris)
            self.plots[plot_id] = plot
            created.append(plot)
        return created


def _plot_sort_key(plot_id: str) -> tuple[int, str]:
    _, _, suffix = plot_id.rpartition("_")
    return (int(suffix), plot_id) if suffix.isdigit() else (10**9, plot_id)


@dataclass(slots=True)
class ForgeState:
    heat: float = 50.0
    max_heat: float = 100.0


@dataclass(slots=True)
class ProcessSlots:
    capacity: Dict[str, int] = field(
        default_factory=lambda: {"crop_growth": 50, "crafting": 1, "mining": 1, "adventure": 1}
    )
    occupied: Dict[str, str] = field(default_factory=dict)

    def is_free(self, slot_ref: str) -> bool:
        return slot_ref not in self.occupied

    def occupy(self, slot_ref: str, process_id: str) -> None:
        self.occupied[slot_ref] = process_id

    def release(self, slot_ref: str) -> None:
        self.occupied.pop(slot_ref, None)

    def limit(self, kind: str) -> int:
        return int(self.capacity.get(kind, 0))


@dataclass(slots=True)
class Gnome:
    gnome_id: str
    name: str
    role: Optional[str] = None
    efficiency: float = 1.0
    experience: float = 0.0


@dataclass(slots=True)
class HelperState:
    gnomes: Dict[str, Gnome] = field(default_factory=dict)
    housing_capacity: int = 1
    rescue_queue: List[str] = field(default_factory=list)

    def with_role(self, role: str) -> List[Gnome]:
        return [gnome for _, gnome in sorted(self.gnomes.items()) if gnome.role == role]

    def role_strength(self, role: str) -> float:
        return sum(gnome.efficiency for gnome in self.with_role(role))


@dataclass(slots=True)
class LocationState:
    current_screen: str = "farm"
    previous_screen: Optional[str] = None
    time_on_screen: float = 0.0
    screen_history: List[str] = field(default_factory=lambda: ["farm"])
    navigation_reason: str = ""


@dataclass(slots=True)
class GameState:
    time: TimeState = field(default_factory=TimeState)
    resources: ResourceState = field(default_factory=ResourceState)
    progression: ProgressionState = field(default_factory=ProgressionState)
    inventory: InventoryState = field(default_factory=InventoryState)
    farm: FarmState = field(default_factory=FarmState)
    forge: ForgeState = field(default_factory=ForgeState)
    processes: ProcessSlots = field(default_factory=ProcessSlots)
    helpers: HelperState = field(default_factory=HelperState)
    location: LocationState = field(default_factory=LocationState)

    def owned_ids(self) -> set[str]:
        """Everything prerequisites may refer to."""

        owned = set(self.progression.unlocked_upgrades)
        owned |= self.progression.built_structures
        owned |= self.progression.completed_milestones
        owned |= self.inventory.owned_ids()
        return owned


def new_game_state(
    *,
    plots: int = 3,
    debris_plots: Iterable[str] = ("weeds", "rocks", "stumps"),
    gold: float = 100.0,
    energy: float = 100.0,
    energy_max: float = 100.0,
    energy_regen: float = 0.1,
    water: float = 50.0,
    water_max: float = 100.0,
    seeds: Mapping[str, int] | None = None,
    materials: Mapping[str, int] | None = None,
    upgrades: Iterable[str] = (),
) -> GameState:
    state = GameState()
    state.resources.gold = float(gold)
    state.resources.energy = ResourcePool(float(min(energy, energy_max)), float(energy_max), float(energy_regen))
    state.resources.water = ResourcePool(float(min(water, water_max)), float(water_max))
    state.resources.seeds = CountPool(dict(seeds or {}))
    state.resources.materials = CountPool(dict(materials or {}))
    state.progression.unlocked_upgrades = set(upgrades)
    state.farm.add_plots(plots)
    for kind in debris_plots:
        state.farm.add_plots(1, debris=kind)
    return state


__all__ = [
    "CountPool",
    "FarmState",
    "ForgeState",
    "GameState",
    "Gnome",
    "HelperState",
    "InventoryState",
    "ItemInstance",
    "LocationState",
    "PlotState",
    "ProcessSlots",
    "ProgressionState",
    "ResourcePool",
    "ResourceState",
    "TimeState",
    "new_game_state",
]
