"""Wave-by-wave adventure combat.

Enemies from a route roll are split into waves and fought one at a time.
Each fight picks the owned weapon with the best matchup against the
enemy's family, and damage taken scales with how long the kill takes.
Armor soaks a share of every hit and may carry one special effect.  Long
routes end with a boss whose quirk punishes missing counter gear.

Every chance roll draws from a ``random.Random`` seeded with the route
roll's seed, so the same roll and loadout always fight the same way.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from ..game_data import GameData
from ..runtime.route_rolls import VARIANT_MULTIPLIERS
from ..state import GameState

WEAPON_TYPES = ("crossbow", "spear", "sword", "bow", "wand")

WEAPON_ADVANTAGES = {
    "spear": "armored_insects",
    "sword": "predatory_beasts",
    "bow": "flying_predators",
    "crossbow": "venomous_crawlers",
    "wand": "living_plants",
}
WEAPON_RESISTANCES = {
    "spear": "living_plants",
    "sword": "flying_predators",
    "bow": "predatory_beasts",
    "crossbow": "armored_insects",
    "wand": "venomous_crawlers",
}
ADVANTAGE_MULTIPLIER = 1.5
RESISTANCE_MULTIPLIER = 0.5

BASE_WEAPON_DAMAGE = 5.0
DAMAGE_PER_ATTACK = 2.0
DAMAGE_PER_LEVEL = 2.0
# item "defense" effect points to armor rating; rating 100 would block everything
ARMOR_RATING_PER_DEFENSE = 5.0
MAX_ARMOR_REDUCTION = 0.8

BOSS_GOLD = 50.0
BOSS_XP = 20.0


@dataclass(frozen=True)
class EnemyStats:
    hp: float
    damage: float
    attack_speed: float


FAMILY_STATS: Dict[str, EnemyStats] = {
    "slimes": EnemyStats(20.0, 3.0, 1.0),
    "armored_insects": EnemyStats(30.0, 4.0, 0.8),
    "predatory_beasts": EnemyStats(25.0, 6.0, 1.2),
    "flying_predators": EnemyStats(20.0, 5.0, 1.5),
    "venomous_crawlers": EnemyStats(35.0, 4.0, 1.0),
    "living_plants": EnemyStats(40.0, 3.0, 0.7),
}

ENEMY_FAMILIES = {
    "rabbit": "slimes",
    "squirrel": "slimes",
    "field_mouse": "slimes",
    "wolf": "predatory_beasts",
    "bear": "armored_insects",
    "forest_sprite": "living_plants",
    "cave_spider": "venomous_crawlers",
    "crystal_golem": "armored_insects",
    "bat_swarm": "flying_predators",
    "shadow_wolf": "predatory_beasts",
    "mountain_troll": "armored_insects",
    "ice_elemental": "living_plants",
    "void_spawn": "slimes",
    "chaos_demon": "flying_predators",
    "void_lord": "venomous_crawlers",
}


def family_for(enemy_type: str) -> str:
    return ENEMY_FAMILIES.get(enemy_type, "slimes")


@dataclass(frozen=True)
class BossProfile:
    name: str
    hp: float
    damage: float
    attack_speed: float
    quirk: str
    weakness: Optional[str] = None


BOSSES: Dict[str, BossProfile] = {
    "giant_rabbit": BossProfile("Giant Slime", 150.0, 8.0, 0.5, "split"),
    "forest_guardian": BossProfile("Alpha Wolf", 250.0, 12.0, 0.8, "pack", "sword"),
    "crystal_overlord": BossProfile("Crystal Spider", 400.0, 12.0, 0.6, "web", "crossbow"),
    "shadow_king": BossProfile("Sky Serpent", 300.0, 10.0, 1.0, "aerial", "bow"),
    "void_emperor": BossProfile("Lava Titan", 600.0, 18.0, 0.5, "burn", "wand"),
    "frost_wyrm": BossProfile("Frost Wyrm", 500.0, 15.0, 0.7, "frost", "wand"),
    "mysterious_boss": BossProfile("Beetle Lord", 200.0, 10.0, 0.4, "shell", "spear"),
}


def boss_profile(boss_id: str) -> BossProfile:
    return BOSSES.get(boss_id, BOSSES["mysterious_boss"])


# chance, share of the hit removed
COMBAT_ARMOR_EFFECTS: Dict[str, Tuple[float, float]] = {
    "reflection": (0.15, 0.30),
    "evasion": (0.10, 1.0),
    "critical_shield": (0.20, 1.0),
    "type_resist": (0.25, 0.40),
}
REFLECT_SHARE = 0.30
REGENERATION_HEAL = 3
VAMPIRIC_HEAL = 1
VAMPIRIC_MAX_PER_WAVE = 5
GOLD_MAGNET_BONUS = 0.25


@dataclass(frozen=True)
class Weapon:
    item_id: Optional[str]
    weapon_type: Optional[str]
    damage: float
    attack_speed: float = 1.0

    def damage_against(self, family: str) -> float:
        return self.damage * self.attack_speed * matchup(self.weapon_type, family)


@dataclass(frozen=True)
class Loadout:
    weapons: Tuple[Weapon, ...]
    armor_rating: float = 0.0
    armor_effect: Optional[str] = None

    @property
    def reduction(self) -> float:
        return min(MAX_ARMOR_REDUCTION, self.armor_rating / 100.0)

    def best_weapon(self, family: str) -> Weapon:
        for weapon in self.weapons:
            if WEAPON_ADVANTAGES.get(weapon.weapon_type or "") == family:
                return weapon
        for weapon in self.weapons:
            if WEAPON_RESISTANCES.get(weapon.weapon_type or "") != family:
                return weapon
        return self.weapons[0]


def matchup(weapon_type: Optional[str], family: str) -> float:
    if weapon_type is None:
        return 1.0
    if WEAPON_ADVANTAGES.get(weapon_type) == family:
        return ADVANTAGE_MULTIPLIER
    if WEAPON_RESISTANCES.get(weapon_type) == family:
        return RESISTANCE_MULTIPLIER
    return 1.0


def weapon_type_for(item_id: str, declared: object = None) -> Optional[str]:
    if declared:
        return str(declared)
    for weapon_type in WEAPON_TYPES:
        if item_id.endswith(weapon_type):
            return weapon_type
    return None


def build_loadout(state: GameState, game_data: GameData | None) -> Loadout:
    """Owned, unbroken weapons (best first) plus the equipped armor."""

    level_bonus = state.progression.hero_level * DAMAGE_PER_LEVEL
    weapons: List[Weapon] = []
    for item_id, instance in sorted(state.inventory.weapons.items()):
        if instance.durability <= 0:
            continue
        record = game_data.get(item_id) if game_data is not None else None
        attack = record.effect("attack") if record is not None else 0.0
        extra = record.extra if record is not None else {}
        weapons.append(
            Weapon(
                item_id=item_id,
                weapon_type=weapon_type_for(item_id, extra.get("weapon_type")),
                damage=BASE_WEAPON_DAMAGE + level_bonus + attack * DAMAGE_PER_ATTACK,
                attack_speed=float(extra.get("attack_speed", 1.0)),
            )
        )
    weapons.sort(key=lambda weapon: (-weapon.damage * weapon.attack_speed, weapon.item_id or ""))
    if not weapons:
        weapons.append(Weapon(item_id=None, weapon_type=None, damage=BASE_WEAPON_DAMAGE + level_bonus))

    rating = 0.0
    effect = None
    for item_id, instance in sorted(state.inventory.armor.items()):
        if not instance.equipped or instance.durability <= 0:
            continue
        record = game_data.get(item_id) if game_data is not None else None
        if record is None:
            continue
        rating += record.effect("defense") * ARMOR_RATING_PER_DEFENSE
        effect = effect or record.extra.get("armor_effect")
    return Loadout(weapons=tuple(weapons), armor_rating=rating, armor_effect=effect)


def wave_count(base_waves: int, variant: str, enemies: int) -> int:
    if enemies <= 0:
        return 0
    scaled = math.ceil(max(1, base_waves) * VARIANT_MULTIPLIERS.get(variant, 1.0))
    return max(1, min(enemies, scaled))


def build_waves(
    groups: Sequence[Tuple[str, int]],
    base_waves: int,
    variant: str,
    rng: random.Random,
) -> List[List[str]]:
    enemies = [enemy_type for enemy_type, count in groups for _ in range(int(count))]
    rng.shuffle(enemies)
    count = wave_count(base_waves, variant, len(enemies))
    waves: List[List[str]] = [[] for _ in range(count)]
    for index, enemy_type in enumerate(enemies):
        waves[index % count].append(enemy_type)
    return waves


@dataclass
class WaveReport:
    index: int
    enemies: int
    kills: int = 0
    damage_taken: int = 0
    healed: int = 0
    blocked: int = 0
    reflected: float = 0.0


@dataclass
class BossReport:
    boss_id: str
    name: str
    used_weakness: bool
    damage_taken: int
    unavoidable: float
    defeated: bool


@dataclass
class CombatResult:
    victory: bool
    max_hp: int
    hero_hp: float
    kills: int
    waves: List[WaveReport] = field(default_factory=list)
    boss: Optional[BossReport] = None
    weapons_used: List[str] = field(default_factory=list)

    @property
    def defeated_in_wave(self) -> Optional[int]:
        for wave in self.waves:
            if wave.kills < wave.enemies:
                return wave.index
        return None


def hero_max_hp(level: int) -> int:
    return 100 + 20 * int(level)


def _absorb(effect: Optional[str], damage: float, rng: random.Random, report: WaveReport) -> float:
    proc = COMBAT_ARMOR_EFFECTS.get(effect or "")
    if proc is None:
        return damage
    chance, share = proc
    if rng.random() >= chance:
        return damage
    if effect == "reflection":
        report.reflected += damage * REFLECT_SHARE
    if share >= 1.0:
        report.blocked += 1
    return damage * (1.0 - share)


def _boss_penalties(boss: BossProfile, weapon: Weapon, loadout: Loadout, max_hp: int) -> Tuple[float, float, float]:
    """Bonus damage, duration multiplier and unavoidable damage for one boss fight."""

    bonus, duration, unavoidable = 0.0, 1.0, 0.0
    if boss.quirk == "split":
        bonus = max_hp * 0.5
    elif boss.quirk == "shell" and weapon.weapon_type != "spear":
        duration = 2.0
    elif boss.quirk == "pack":
        bonus = max_hp * 0.3
    elif boss.quirk == "aerial" and weapon.weapon_type != "bow":
        unavoidable = max_hp * 0.2
    elif boss.quirk == "web":
        duration = 1.15
    elif boss.quirk == "frost" and weapon.weapon_type != "wand":
        duration = 1.5
    elif boss.quirk == "burn" and loadout.armor_effect != "regeneration":
        unavoidable = max_hp * 0.1
    return bonus, duration, unavoidable


def fight_boss(
    boss_id: str,
    loadout: Loadout,
    hero_hp: float,
    max_hp: int,
    strength: float,
) -> Tuple[float, BossReport]:
    boss = boss_profile(boss_id)
    weapon = next(
        (candidate for candidate in loadout.weapons if boss.weakness and candidate.weapon_type == boss.weakness),
        None,
    )
    used_weakness = weapon is not None
    if weapon is None:
        weapon = loadout.best_weapon("slimes")
    damage = weapon.damage * weapon.attack_speed * (ADVANTAGE_MULTIPLIER if used_weakness else 1.0)
    fight_minutes = boss.hp * strength / damage
    taken = boss.damage * strength * boss.attack_speed * fight_minutes * (1.0 - loadout.reduction)
    bonus, duration, unavoidable = _boss_penalties(boss, weapon, loadout, max_hp)
    taken = (taken + bonus) * duration
    hero_hp -= unavoidable
    dealt = 0
    if hero_hp > 0:
        dealt = math.ceil(taken)
        hero_hp -= dealt
    report = BossReport(
        boss_id=boss_id,
        name=boss.name,
        used_weakness=used_weakness,
        damage_taken=dealt,
        unavoidable=unavoidable,
        defeated=hero_hp > 0,
    )
    return max(0.0, hero_hp), report


def resolve_combat(
    groups: Sequence[Tuple[str, int]],
    boss_id: Optional[str],
    loadout: Loadout,
    *,
    hero_level: int,
    base_waves: int,
    variant: str,
    strength: float = 1.0,
    seed: int = 0,
) -> CombatResult:
    rng = random.Random(seed)
    max_hp = hero_max_hp(hero_level)
    hero_hp = float(max_hp)
    waves = build_waves(groups, base_waves, variant, rng)
    result = CombatResult(victory=False, max_hp=max_hp, hero_hp=hero_hp, kills=0)
    used: Dict[str, None] = {}

    for index, wave in enumerate(waves, start=1):
        report = WaveReport(index=index, enemies=len(wave))
        result.waves.append(report)
        for enemy_type in wave:
            family = family_for(enemy_type)
            stats = FAMILY_STATS[family]
            weapon = loadout.best_weapon(family)
            if weapon.item_id is not None:
                used[weapon.item_id] = None
            time_to_kill = stats.hp * strength / weapon.damage_against(family)
            taken = stats.damage * strength * stats.attack_speed * time_to_kill * (1.0 - loadout.reduction)
            taken = _absorb(loadout.armor_effect, taken, rng, report)
            dealt = math.ceil(taken)
            hero_hp -= dealt
            report.damage_taken += dealt
            if hero_hp <= 0:
                result.hero_hp = 0.0
                result.weapons_used = list(used)
                return result
            report.kills += 1
            result.kills += 1
            if loadout.armor_effect == "vampiric" and report.kills <= VAMPIRIC_MAX_PER_WAVE:
                healed = min(VAMPIRIC_HEAL, max_hp - hero_hp)
                hero_hp += healed
                report.healed += healed
        if index < len(waves) and loadout.armor_effect == "regeneration":
            healed = min(REGENERATION_HEAL, max_hp - hero_hp)
            hero_hp += healed
            report.healed += healed

    if boss_id:
        hero_hp, result.boss = fight_boss(boss_id, loadout, hero_hp, max_hp, strength)
        if result.boss.defeated:
            result.kills += 1
        else:
            result.hero_hp = 0.0
            result.weapons_used = list(used)
            return result
    result.victory = True
    result.hero_hp = hero_hp
    result.weapons_used = list(used)
    return result


def gold_with_bonus(loadout: Loadout, gold: float) -> float:
    if loadout.armor_effect == "gold_magnet":
        return gold + math.floor(gold * GOLD_MAGNET_BONUS)
    return gold


__all__ = [
    "BOSSES",
    "BOSS_GOLD",
    "BOSS_XP",
    "BossProfile",
    "BossReport",
    "CombatResult",
    "ENEMY_FAMILIES",
    "FAMILY_STATS",
    "Loadout",
    "WaveReport",
    "Weapon",
    "boss_profile",
    "build_loadout",
    "build_waves",
    "family_for",
    "fight_boss",
    "gold_with_bonus",
    "hero_max_hp",
    "matchup",
    "resolve_combat",
    "wave_count",
    "weapon_type_for",
]
