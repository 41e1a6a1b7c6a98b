"""Deterministic adventure encounter rolls keyed by route and variant.

A roll is derived from a sha256 seed over the cache's base seed, the route
and the variant, so asking again returns the identical roll until it is
cleared.  The cache is an owned object: the engine holds one, tests build
their own.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from ..admin_log import ROLL_CLEARED, AdminEventLog
from .rng_service import derive_seed

VARIANTS = ("Short", "Medium", "Long")
VARIANT_MULTIPLIERS = {"Short": 1.0, "Medium": 1.5, "Long": 2.0}
UNKNOWN_ROUTE_COUNTS = {"Short": 3, "Medium": 5, "Long": 8}
CLEAR_REASONS = ("complete", "failed", "abandoned", "expired")
ROLL_ACTIVE = "active"
ROLL_CLEARED_STATUS = "cleared"


@dataclass(frozen=True)
class RouteComposition:
    enemy_types: Tuple[str, ...]
    weights: Tuple[float, ...]
    min_counts: Tuple[int, ...]
    max_counts: Tuple[int, ...]
    waves: int
    boss: str = "mysterious_boss"


ROUTE_COMPOSITIONS: Dict[str, RouteComposition] = {
    "meadow_path": RouteComposition(
        ("rabbit", "squirrel", "field_mouse"), (50, 30, 20), (2, 1, 1), (4, 3, 2), 3, "giant_rabbit"
    ),
    "pine_vale": RouteComposition(
        ("wolf", "bear", "forest_sprite"), (40, 35, 25), (1, 1, 0), (3, 2, 2), 4, "forest_guardian"
    ),
    "crystal_caverns": RouteComposition(
        ("cave_spider", "crystal_golem", "bat_swarm"), (45, 30, 25), (2, 1, 1), (4, 2, 3), 5, "crystal_overlord"
    ),
    "shadow_peaks": RouteComposition(
        ("shadow_wolf", "mountain_troll", "ice_elemental"), (35, 40, 25), (1, 1, 1), (3, 2, 2), 6, "shadow_king"
    ),
    "void_realm": RouteComposition(
        ("void_spawn", "chaos_demon", "void_lord"), (50, 35, 15), (2, 1, 0), (5, 3, 1), 8, "void_emperor"
    ),
}


@dataclass(frozen=True)
class EnemyGroup:
    enemy_type: str
    count: int
    percentage: float


@dataclass(frozen=True)
class RouteRoll:
    route_id: str
    variant: str
    seed: int
    enemies: Tuple[EnemyGroup, ...]
    boss: Optional[str] = None
    attempt: int = 0
    created_at: float = 0.0
    status: str = ROLL_ACTIVE

    @property
    def key(self) -> str:
        return roll_key(self.route_id, self.variant)

    @property
    def total_enemies(self) -> int:
        return sum(group.count for group in self.enemies) + (1 if self.boss else 0)

    def to_record(self) -> Dict[str, Any]:
        return {
            "route_id": self.route_id,
            "variant": self.variant,
            "seed": self.seed,
            "attempt": self.attempt,
            "created_at": self.created_at,
            "status": self.status,
            "boss": self.boss,
            "enemies": [
                {"type": group.enemy_type, "count": group.count, "percentage": group.percentage}
                for group in self.enemies
            ],
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "RouteRoll":
        return cls(
            route_id=str(record["route_id"]),
            variant=str(record["variant"]),
            seed=int(record["seed"]),
            enemies=tuple(
                EnemyGroup(str(item["type"]), int(item["count"]), float(item["percentage"]))
                for item in record.get("enemies", [])
            ),
            boss=record.get("boss"),
            attempt=int(record.get("attempt", 0)),
            created_at=float(record.get("created_at", 0.0)),
            status=str(record.get("status", ROLL_ACTIVE)),
        )


def roll_key(route_id: str, variant: str) -> str:
    return f"{route_id}:{variant}"


def generate_enemies(
    composition: RouteComposition | None,
    variant: str,
    seed: int,
) -> Tuple[Tuple[EnemyGroup, ...], Optional[str]]:
    if composition is None:
        return (EnemyGroup("unknown_enemy", UNKNOWN_ROUTE_COUNTS[variant], 100.0),), None
    rng = random.Random(seed)
    multiplier = VARIANT_MULTIPLIERS[variant]
    counts: List[Tuple[str, int]] = []
    for index, enemy_type in enumerate(composition.enemy_types):
        low = math.ceil(composition.min_counts[index] * multiplier)
        high = max(low, math.floor(composition.max_counts[index] * multiplier))
        count = rng.randint(low, high)
        if rng.random() < composition.weights[index] / 100.0:
            count = min(count + 1, high)
        if count > 0:
            counts.append((enemy_type, count))
    total = sum(count for _, count in counts) or 1
    enemies = tuple(
        EnemyGroup(enemy_type, count, round(count / total * 100.0, 1))
        for enemy_type, count in counts
    )
    boss = composition.boss if variant == "Long" else None
    return enemies, boss


@dataclass(slots=True)
class RollConfig:
    salt: str = "route-roll-v1"
    ttl_minutes: float = 24 * 60.0
    # False: a cleared roll comes back with the same seed
    vary_after_clear: bool = False


class RouteRollCache:
    def __init__(
        self,
        seed: int = 0,
        config: RollConfig | None = None,
        *,
        compositions: Mapping[str, RouteComposition] | None = None,
        log: AdminEventLog | None = None,
    ) -> None:
        self.seed = int(seed)
        self.config = config or RollConfig()
        self.compositions: Dict[str, RouteComposition] = dict(ROUTE_COMPOSITIONS if compositions is None else compositions)
        self.log = log
        self._rolls: Dict[str, RouteRoll] = {}
        self._attempts: Dict[str, int] = {}
        self.cleared_by_reason: Dict[str, int] = {reason: 0 for reason in CLEAR_REASONS}

    def _check_variant(self, variant: str) -> None:
        if variant not in VARIANT_MULTIPLIERS:
            raise ValueError(f"Unknown route variant {variant!r}; expected one of {', '.join(VARIANTS)}")

    def _seed_for(self, route_id: str, variant: str, attempt: int) -> int:
        if self.config.vary_after_clear:
            return derive_seed(self.config.salt, self.seed, route_id, variant, attempt)
        return derive_seed(self.config.salt, self.seed, route_id, variant)

    def get_roll(self, route_id: str, variant: str, *, now: float = 0.0) -> RouteRoll:
        self._check_variant(variant)
        key = roll_key(route_id, variant)
        cached = self._rolls.get(key)
        if cached is not None:
            return cached
        attempt = self._attempts.get(key, 0)
        seed = self._seed_for(route_id, variant, attempt)
        enemies, boss = generate_enemies(self.compositions.get(route_id), variant, seed)
        roll = RouteRoll(
            route_id=route_id,
            variant=variant,
            seed=seed,
            enemies=enemies,
            boss=boss,
            attempt=attempt,
            created_at=float(now),
        )
        self._rolls[key] = roll
        return roll

    def has_active_roll(self, route_id: str, variant: str) -> bool:
        return roll_key(route_id, variant) in self._rolls

    def clear_roll(
        self, route_id: str, variant: str, reason: str = "complete", *, now: float = 0.0
    ) -> Optional[RouteRoll]:
        """Drop the active roll and return it marked ``cleared``, or None if there was none."""
        if reason not in CLEAR_REASONS:
            raise ValueError(f"Unknown clear reason {reason!r}")
        key = roll_key(route_id, variant)
        roll = self._rolls.pop(key, None)
        if roll is None:
            return None
        cleared = replace(roll, status=ROLL_CLEARED_STATUS)
        self._attempts[key] = roll.attempt + 1
        self.cleared_by_reason[reason] += 1
        if self.log is not None:
            self.log.record(
                minute=now,
                event_type=ROLL_CLEARED,
                payload={
                    "key": key,
                    "reason": reason,
                    "seed": roll.seed,
                    "attempt": roll.attempt,
                    "status": cleared.status,
                },
                system="rolls",
            )
        return cleared

    def active_rolls(self) -> List[RouteRoll]:
        return [self._rolls[key] for key in sorted(self._rolls)]

    def evict_expired(self, now: float) -> List[str]:
        cutoff = float(now) - self.config.ttl_minutes
        expired = [key for key, roll in sorted(self._rolls.items()) if roll.created_at < cutoff]
        for key in expired:
            roll = self._rolls[key]
            self.clear_roll(roll.route_id, roll.variant, "expired", now=now)
        return expired

    def register_route(self, route_id: str, composition: RouteComposition) -> None:
        if not (
            len(composition.enemy_types)
            == len(composition.weights)
            == len(composition.min_counts)
            == len(composition.max_counts)
        ):
            raise ValueError(f"Composition for {route_id!r} has mismatched column lengths")
        self.compositions[route_id] = composition

    def route_preview(self, route_id: str) -> Dict[str, Any]:
        composition = self.compositions.get(route_id)
        if composition is None:
            return {
                "route_id": route_id,
                "known": False,
                "enemy_types": ["unknown_enemy"],
                "waves": 1,
                "totals": {variant: (count, count) for variant, count in UNKNOWN_ROUTE_COUNTS.items()},
            }
        totals = {}
        for variant, multiplier in VARIANT_MULTIPLIERS.items():
            low = sum(math.ceil(value * multiplier) for value in composition.min_counts)
            high = sum(
                max(math.ceil(lo * multiplier), math.floor(hi * multiplier))
                for lo, hi in zip(composition.min_counts, composition.max_counts)
            )
            if variant == "Long":
                low, high = low + 1, high + 1
            totals[variant] = (low, high)
        return {
            "route_id": route_id,
            "known": True,
            "enemy_types": list(composition.enemy_types),
            "waves": composition.waves,
            "boss": composition.boss,
            "totals": totals,
        }

    def get_statistics(self) -> Dict[str, Any]:
        rolls = list(self._rolls.values())
        by_variant = {variant: 0 for variant in VARIANTS}
        for roll in rolls:
            by_variant[roll.variant] += 1
        return {
            "total_active_rolls": len(rolls),
            "rolls_by_variant": by_variant,
            "oldest_roll": min((roll.created_at for roll in rolls), default=None),
            "newest_roll": max((roll.created_at for roll in rolls), default=None),
            "cleared_by_reason": dict(self.cleared_by_reason),
        }

    def to_records(self) -> List[Dict[str, Any]]:
        return [roll.to_record() for roll in self.active_rolls()]

    def load_records(self, records: Iterable[Mapping[str, Any]]) -> int:
        loaded = 0
        for record in records:
            roll = RouteRoll.from_record(record)
            self._check_variant(roll.variant)
            if roll.status == ROLL_CLEARED_STATUS:
                self._attempts[roll.key] = max(self._attempts.get(roll.key, 0), roll.attempt + 1)
                continue
            self._rolls[roll.key] = roll
            self._attempts[roll.key] = roll.attempt
            loaded += 1
        return loaded


__all__ = [
    "EnemyGroup",
    "ROLL_ACTIVE",
    "ROLL_CLEARED_STATUS",
    "ROUTE_COMPOSITIONS",
    "RollConfig",
    "RouteComposition",
    "RouteRoll",
    "RouteRollCache",
    "VARIANTS",
    "VARIANT_MULTIPLIERS",
    "generate_enemies",
    "roll_key",
]
