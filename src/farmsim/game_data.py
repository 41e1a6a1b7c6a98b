"""Flat item catalogue consumed by the simulation core.

Game data arrives as a list of item records with prerequisite edges.  The
core never loads spreadsheets itself; hosts convert whatever they read into
mappings and hand them to :meth:`GameData.from_records`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

ITEM_TYPES = frozenset(
    {
        "crop",
        "seed",
        "upgrade",
        "structure",
        "blueprint",
        "tool",
        "weapon",
        "armor",
        "material",
        "route",
        "craftable",
    }
)

EQUIPMENT_TYPES = frozenset({"tool", "weapon", "armor"})


class GameDataError(ValueError):
    """Raised when a catalogue record cannot be interpreted."""


@dataclass(frozen=True)
class ItemRecord:
    id: str
    name: str
    type: str
    gold_cost: float = 0.0
    energy_cost: float = 0.0
    time: float = 0.0
    materials_cost: Mapping[str, int] = field(default_factory=dict)
    prerequisites: Tuple[str, ...] = ()
    effects: Mapping[str, float] = field(default_factory=dict)
    extra: Mapping[str, Any] = field(default_factory=dict)

    @property
    def repeatable(self) -> bool:
        return bool(self.extra.get("repeatable", self.type in {"seed", "material"}))

    def effect(self, name: str, default: float = 0.0) -> float:
        return float(self.effects.get(name, default))


@dataclass(frozen=True)
class CropProfile:
    crop_id: str
    growth_minutes: float
    energy: float
    gold: float
    reach: int = 1


@dataclass(frozen=True)
class RouteProfile:
    route_id: str
    energy_cost: float
    base_minutes: float
    gold_per_enemy: float
    xp_per_enemy: float
    enemy_strength: float


DEFAULT_CROP = CropProfile(crop_id="unknown", growth_minutes=30.0, energy=5.0, gold=1.0)
DEFAULT_ROUTE = RouteProfile(
    route_id="unknown",
    energy_cost=10.0,
    base_minutes=20.0,
    gold_per_enemy=2.0,
    xp_per_enemy=5.0,
    enemy_strength=1.0,
)
DEFAULT_SELL_PRICE = 1.0


def _split_ids(raw: object) -> Tuple[str, ...]:
    if raw is None or raw == "":
        return ()
    if isinstance(raw, str):
        parts = raw.replace(",", ";").split(";")
        return tuple(part.strip() for part in parts if part.strip())
    if isinstance(raw, Iterable):
        return tuple(str(part).strip() for part in raw if str(part).strip())
    raise GameDataError(f"Unsupported prerequisite value: {raw!r}")


def _number_map(raw: object, *, as_int: bool = False) -> Dict[str, Any]:
    if not raw:
        return {}
    if not isinstance(raw, Mapping):
        raise GameDataError(f"Expected a mapping, got {type(raw).__name__}")
    converted: Dict[str, Any] = {}
    for key, value in raw.items():
        try:
            number = int(value) if as_int else float(value)
        except (TypeError, ValueError) as exc:
            raise GameDataError(f"Non-numeric value for {key!r}: {value!r}") from exc
        converted[str(key)] = number
    return converted


def record_from_mapping(raw: Mapping[str, Any]) -> ItemRecord:
    item_id = str(raw.get("id") or "").strip()
    if not item_id:
        raise GameDataError("Item record is missing an id")
    item_type = str(raw.get("type") or "").strip()
    if item_type not in ITEM_TYPES:
        raise GameDataError(f"Item {item_id!r} has unknown type {item_type!r}")
    known = {
        "id",
        "name",
        "type",
        "gold_cost",
        "energy_cost",
        "time",
        "materials_cost",
        "prerequisites",
        "effects",
    }
    extra = {key: value for key, value in raw.items() if key not in known}
    extra.update(raw.get("extra") or {})
    extra.pop("extra", None)
    try:
        gold_cost = float(raw.get("gold_cost") or 0.0)
        energy_cost = float(raw.get("energy_cost") or 0.0)
        time = float(raw.get("time") or 0.0)
    except (TypeError, ValueError) as exc:
        raise GameDataError(f"Item {item_id!r} has a non-numeric cost") from exc
    return ItemRecord(
        id=item_id,
        name=str(raw.get("name") or item_id),
        type=item_type,
        gold_cost=gold_cost,
        energy_cost=energy_cost,
        time=time,
        materials_cost=_number_map(raw.get("materials_cost"), as_int=True),
        prerequisites=_split_ids(raw.get("prerequisites")),
        effects=_number_map(raw.get("effects")),
        extra=extra,
    )


class GameData:
    """Read-only index over item records."""

    def __init__(self, items: Iterable[ItemRecord] = ()) -> None:
        self._items: Dict[str, ItemRecord] = {}
        for item in items:
            if item.id in self._items:
                raise GameDataError(f"Duplicate item id {item.id!r}")
            self._items[item.id] = item

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> "GameData":
        return cls(record_from_mapping(raw) for raw in records)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self._items.values())

    def get(self, item_id: str | None) -> Optional[ItemRecord]:
        if item_id is None:
            return None
        return self._items.get(item_id)

    def by_type(self, *item_types: str) -> List[ItemRecord]:
        wanted = set(item_types)
        return sorted(
            (item for item in self._items.values() if item.type in wanted),
            key=lambda item: item.id,
        )

    def missing_prerequisites(self, item: ItemRecord, owned: Iterable[str]) -> List[str]:
        owned_set = set(owned)
        return [prereq for prereq in item.prerequisites if prereq not in owned_set]

    def prerequisites_met(self, item: ItemRecord, owned: Iterable[str]) -> bool:
        return not self.missing_prerequisites(item, owned)

    def crop_profile(self, crop_id: str) -> CropProfile:
        item = self._items.get(crop_id)
        if item is None or item.type != "crop":
            return CropProfile(
                crop_id=crop_id,
                growth_minutes=DEFAULT_CROP.growth_minutes,
                energy=DEFAULT_CROP.energy,
                gold=DEFAULT_CROP.gold,
            )
        return CropProfile(
            crop_id=crop_id,
            growth_minutes=item.time or DEFAULT_CROP.growth_minutes,
            energy=item.effect("energy", DEFAULT_CROP.energy),
            gold=item.effect("gold", DEFAULT_CROP.gold),
            reach=int(item.extra.get("reach", 1)),
        )

    def crops_for_reach(self, reach: int) -> List[str]:
        crops = [item for item in self.by_type("crop") if int(item.extra.get("reach", 1)) <= reach]
        crops.sort(key=lambda item: (int(item.extra.get("reach", 1)), item.id))
        return [item.id for item in crops]

    def route_profile(self, route_id: str) -> RouteProfile:
        item = self._items.get(route_id)
        if item is None or item.type != "route":
            return RouteProfile(
                route_id=route_id,
                energy_cost=DEFAULT_ROUTE.energy_cost,
                base_minutes=DEFAULT_ROUTE.base_minutes,
                gold_per_enemy=DEFAULT_ROUTE.gold_per_enemy,
                xp_per_enemy=DEFAULT_ROUTE.xp_per_enemy,
                enemy_strength=DEFAULT_ROUTE.enemy_strength,
            )
        return RouteProfile(
            route_id=route_id,
            energy_cost=item.energy_cost or DEFAULT_ROUTE.energy_cost,
            base_minutes=item.time or DEFAULT_ROUTE.base_minutes,
            gold_per_enemy=item.effect("gold_per_enemy", DEFAULT_ROUTE.gold_per_enemy),
            xp_per_enemy=item.effect("xp_per_enemy", DEFAULT_ROUTE.xp_per_enemy),
            enemy_strength=item.effect("enemy_strength", DEFAULT_ROUTE.enemy_strength),
        )

    def sell_price(self, material: str) -> float:
        item = self._items.get(material)
        if item is None:
            return DEFAULT_SELL_PRICE
        return float(item.extra.get("sell_price", DEFAULT_SELL_PRICE))


def _item(item_id: str, item_type: str, **kwargs: Any) -> Dict[str, Any]:
    record: Dict[str, Any] = {"id": item_id, "type": item_type}
    record.update(kwargs)
    return record


DEFAULT_RECORDS: Sequence[Mapping[str, Any]] = (
    # crops: time is growth minutes, effects are harvest yields
    _item("radish", "crop", name="Radish", time=20, effects={"energy": 5, "gold": 1}, reach=1),
    _item("carrot", "crop", name="Carrot", time=30, effects={"energy": 8, "gold": 2}, reach=1),
    _item("turnip", "crop", name="Turnip", time=25, effects={"energy": 6, "gold": 2}, reach=2),
    _item("beet", "crop", name="Beet", time=40, effects={"energy": 10, "gold": 3}, reach=3),
    _item("potato", "crop", name="Potato", time=60, effects={"energy": 15, "gold": 4}, reach=4),
    _item("carrot_pack", "seed", name="Carrot Seeds", gold_cost=10, crop="carrot", quantity=5),
    _item("radish_pack", "seed", name="Radish Seeds", gold_cost=6, crop="radish", quantity=5),
    # materials
    _item("wood", "material", name="Wood", sell_price=2),
    _item("stone", "material", name="Stone", sell_price=1),
    _item("iron", "material", name="Iron", sell_price=5),
    _item("silver", "material", name="Silver", sell_price=12),
    _item("crystal", "material", name="Crystal", sell_price=25),
    # farm and tower upgrades
    _item("water_tank_1", "upgrade", name="Water Tank", gold_cost=40, effects={"water_max": 50}),
    _item("better_pump", "upgrade", name="Better Pump", gold_cost=35, effects={"pump_bonus": 10}),
    _item("fertilizer", "upgrade", name="Fertilizer", gold_cost=60, effects={"growth_rate": 0.25}),
    _item("plot_expansion_1", "upgrade", name="Plot Expansion", gold_cost=50, effects={"plots": 2}),
    _item("auto_pump", "upgrade", name="Auto Pump", gold_cost=150, prerequisites="water_tank_1"),
    _item("auto_pump_2", "upgrade", name="Auto Pump II", gold_cost=400, prerequisites="auto_pump"),
    _item("tower_reach_2", "upgrade", name="Taller Tower", gold_cost=80, effects={"tower_reach": 1}),
    _item("seed_net", "upgrade", name="Seed Net", gold_cost=45, effects={"catch_rate": 0.1}),
    _item("auto_catcher_1", "upgrade", name="Auto Catcher", gold_cost=120),
    _item("auto_catcher_2", "upgrade", name="Auto Catcher II", gold_cost=300, prerequisites="auto_catcher_1"),
    _item("auto_harvest", "upgrade", name="Harvest Helper", gold_cost=300),
    _item("auto_plant", "upgrade", name="Planting Helper", gold_cost=250, prerequisites="auto_harvest"),
    _item("forge_bellows", "upgrade", name="Forge Bellows", gold_cost=90, effects={"crafting_slots": 1}),
    # structures
    _item("blueprint_gnome_hut", "blueprint", name="Gnome Hut Plans", gold_cost=40),
    _item(
        "gnome_hut",
        "structure",
        name="Gnome Hut",
        energy_cost=20,
        materials_cost={"wood": 10, "stone": 5},
        prerequisites="blueprint_gnome_hut",
        effects={"housing": 1},
    ),
    _item(
        "rain_barrel",
        "structure",
        name="Rain Barrel",
        energy_cost=10,
        materials_cost={"wood": 6},
        effects={"water_max": 25},
    ),
    # equipment
    _item("watering_can", "tool", name="Watering Can", gold_cost=20, effects={"growth_rate": 0.1}),
    _item("pickaxe", "tool", name="Pickaxe", gold_cost=30, effects={"mine_rate": 0.0}),
    _item("wooden_sword", "weapon", name="Wooden Sword", gold_cost=25, weapon_type="sword", effects={"attack": 2}),
    _item(
        "leather_armor", "armor", name="Leather Armor", gold_cost=40, armor_effect="regeneration", effects={"defense": 2}
    ),
    _item(
        "iron_pickaxe",
        "craftable",
        name="Iron Pickaxe",
        energy_cost=10,
        time=30,
        materials_cost={"iron": 3, "wood": 2},
        produces="tool",
        effects={"mine_rate": 0.5},
    ),
    _item(
        "iron_sword",
        "craftable",
        name="Iron Sword",
        energy_cost=12,
        time=45,
        materials_cost={"iron": 4, "wood": 1},
        produces="weapon",
        effects={"attack": 5},
    ),
    # adventure routes: time is the Short-variant duration
    _item(
        "meadow_path",
        "route",
        name="Meadow Path",
        energy_cost=10,
        time=15,
        effects={"gold_per_enemy": 3, "xp_per_enemy": 10, "enemy_strength": 1},
    ),
    _item(
        "pine_vale",
        "route",
        name="Pine Vale",
        energy_cost=15,
        time=20,
        prerequisites="adventure:meadow_path",
        effects={"gold_per_enemy": 5, "xp_per_enemy": 18, "enemy_strength": 2},
    ),
    _item(
        "crystal_caverns",
        "route",
        name="Crystal Caverns",
        energy_cost=20,
        time=25,
        prerequisites="adventure:pine_vale",
        effects={"gold_per_enemy": 8, "xp_per_enemy": 30, "enemy_strength": 3},
    ),
)


def default_game_data() -> GameData:
    return GameData.from_records(DEFAULT_RECORDS)


__all__ = [
    "CropProfile",
    "DEFAULT_RECORDS",
    "EQUIPMENT_TYPES",
    "GameData",
    "GameDataError",
    "ITEM_TYPES",
    "ItemRecord",
    "RouteProfile",
    "default_game_data",
    "record_from_mapping",
]
