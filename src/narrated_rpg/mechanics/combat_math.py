"""Combat math: pure functions, no I/O."""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

from narrated_rpg.mechanics.dice import chance
from narrated_rpg.utils import clamp, int_num, num


class RollTier(str, Enum):
    FAIL = "fail"
    MISS = "miss"
    LOW = "low"
    MID = "mid"
    HIGH = "high"
    CRIT = "crit"


TIER_MULTIPLIER: dict[RollTier, float] = {
    RollTier.FAIL: 0.0,
    RollTier.MISS: 0.0,
    RollTier.LOW: 0.6,
    RollTier.MID: 1.0,
    RollTier.HIGH: 1.25,
    RollTier.CRIT: 1.75,
}

CRIT_PRECISION_BONUS = 1.15
MAGIC_RESISTED_MULTIPLIER = 0.5
WEAKNESS_MULTIPLIER = 1.5
RESISTANCE_MULTIPLIER = 0.5

HIT_LOCATIONS = ["torso", "arm", "leg", "head"]


@dataclass
class DamageRoll:
    amount: int
    tier: RollTier
    is_crit: bool
    hit_location: str


def roll_tier(nat: int) -> RollTier:
    """Map a natural d20 to its success tier."""
    if nat <= 1:
        return RollTier.FAIL
    if nat <= 4:
        return RollTier.MISS
    if nat <= 9:
        return RollTier.LOW
    if nat <= 14:
        return RollTier.MID
    if nat <= 19:
        return RollTier.HIGH
    return RollTier.CRIT


def is_hit(tier: RollTier) -> bool:
    return tier not in (RollTier.FAIL, RollTier.MISS)


def hit_location(nat: int) -> str:
    return HIT_LOCATIONS[nat % len(HIT_LOCATIONS)]


def scaled_base_damage(base: float, level: int) -> int:
    """Base damage grows by a fifth of a point per level."""
    return max(1, math.floor(num(base) + math.floor(int_num(level) * 0.2)))


def compute_damage_from_nat(base: float, level: int, nat: int) -> DamageRoll:
    """Turn a natural roll into raw (pre-mitigation) damage.

    Args:
        base: weapon or ability damage
        level: attacker level
        nat: natural d20 value
    Returns:
        DamageRoll; ``amount`` is 0 on a fail or miss.
    """
    tier = roll_tier(nat)
    amount = scaled_base_damage(base, level) * TIER_MULTIPLIER[tier]
    if tier == RollTier.CRIT:
        amount *= CRIT_PRECISION_BONUS
    return DamageRoll(
        amount=int(math.floor(amount)),
        tier=tier,
        is_crit=tier == RollTier.CRIT,
        hit_location=hit_location(nat),
    )


def armor_reduction(armor: float) -> float:
    """Fraction of damage absorbed by armor: armor / (armor + 100)."""
    armor = max(0.0, num(armor))
    return armor / (armor + 100)


def apply_armor(damage: float, armor: float) -> int:
    """Mitigate a landed hit by armor. A hit always deals at least 1."""
    damage = num(damage)
    if damage <= 0:
        return 0
    return max(1, math.floor(damage * (1 - armor_reduction(armor))))


def apply_guard(damage: int, reduction: float) -> int:
    """Scale post-armor damage by a guard reduction (multiplicative with armor)."""
    if damage <= 0:
        return 0
    return max(1, math.floor(damage * (1 - clamp(num(reduction), 0.0, 1.0))))


def modify_damage(damage: float, flat: float = 0, percent: float = 0) -> float:
    """Apply buff/debuff damage modifiers; never below zero."""
    return max(0.0, (num(damage) + num(flat)) * (1 + num(percent) / 100))


def elemental_multiplier(element: str | None, weaknesses: list[str], resistances: list[str],
                         is_magic: bool = False) -> float:
    """Weakness/resistance scaling for an elemental or magic hit."""
    mult = 1.0
    if element:
        el = element.lower()
        if el in [w.lower() for w in weaknesses]:
            mult *= WEAKNESS_MULTIPLIER
        if el in [r.lower() for r in resistances]:
            mult *= RESISTANCE_MULTIPLIER
    if is_magic and "magic" in [r.lower() for r in resistances]:
        mult *= MAGIC_RESISTED_MULTIPLIER
    return mult


def stamina_multiplier(available: float, cost: float, floor: float) -> float:
    """Damage scale when an attack is paid for with too little stamina."""
    cost = num(cost)
    if cost <= 0:
        return 1.0
    available = max(0.0, num(available))
    if available >= cost:
        return 1.0
    return max(floor, available / cost)


def regen_amount(rate_per_second: float, seconds: float) -> int:
    return max(0, math.floor(num(rate_per_second) * num(seconds)))


def percent_check(percent: float, rng=None) -> bool:
    """True with ``percent``/100 probability; 100 always passes, 0 never."""
    percent = num(percent)
    if percent >= 100:
        return True
    if percent <= 0:
        return False
    return chance(rng) * 100 < percent


def dodge_check(dodge_chance: float, rng=None) -> bool:
    return percent_check(min(num(dodge_chance), 75), rng)


def flee_chance(player_level: int, enemy_levels: list[int]) -> float:
    """Chance to escape: 50% shifted 5% per level of advantage, kept in 10–90%."""
    if not enemy_levels:
        return 0.9
    avg = sum(enemy_levels) / len(enemy_levels)
    return clamp(0.5 + 0.05 * (player_level - avg), 0.1, 0.9)
