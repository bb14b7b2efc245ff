"""Special ammunition effects layered on a ranged hit; pure functions, no I/O."""
from __future__ import annotations

import math
from dataclasses import dataclass, field

from narrated_rpg.mechanics.combat_math import TIER_MULTIPLIER, RollTier, is_hit, percent_check
from narrated_rpg.models.ability import DebuffEffect, DotEffect, Effect, StunEffect
from narrated_rpg.models.item import InventoryItem

ARROW_IDS: dict[str, str] = {
    "fire_arrows": "fire",
    "ice_arrows": "ice",
    "shock_arrows": "shock",
    "paralyze_arrows": "paralyze",
    "allycall_arrows": "command",
}

_NAME_KEYWORDS: list[tuple[str, str]] = [
    ("fire", "fire"),
    ("flame", "fire"),
    ("ice", "ice"),
    ("frost", "ice"),
    ("shock", "shock"),
    ("lightning", "shock"),
    ("paraly", "paralyze"),
    ("allycall", "command"),
    ("command", "command"),
]

BURN_TURNS = {RollTier.LOW: 2, RollTier.MID: 2, RollTier.HIGH: 3, RollTier.CRIT: 4}
SHOCK_STUN_CHANCE = {RollTier.CRIT: 50, RollTier.HIGH: 35, RollTier.MID: 20}
PARALYZE_CHANCE = {RollTier.CRIT: 85, RollTier.HIGH: 60, RollTier.MID: 40}


@dataclass
class ArrowOutcome:
    kind: str
    bonus_damage: int = 0
    effects: list[Effect] = field(default_factory=list)
    ally_attack: bool = False
    narrative: str = ""


def arrow_kind(item: InventoryItem | None) -> str | None:
    """Identify a special arrow stack by id, then by name."""
    if item is None:
        return None
    if item.id in ARROW_IDS:
        return ARROW_IDS[item.id]
    name = item.name.lower()
    if "arrow" not in name and "bolt" not in name:
        return None
    for keyword, kind in _NAME_KEYWORDS:
        if keyword in name:
            return kind
    return None


def resolve_arrow(kind: str, damage: int, tier: RollTier, rng=None) -> ArrowOutcome:
    """Extra damage and effects for a special arrow that landed with ``damage``."""
    outcome = ArrowOutcome(kind=kind)
    if not is_hit(tier):
        outcome.narrative = "The special arrow is wasted."
        return outcome
    t = TIER_MULTIPLIER[tier]

    if kind == "fire":
        outcome.bonus_damage = max(1, math.floor(damage * 0.35 * t))
        outcome.effects.append(DotEffect(
            name="Burning", value=max(1, math.floor(damage * 0.12 * t)), duration=BURN_TURNS[tier],
        ))
        outcome.narrative = "The arrow bursts into flame and sets the target burning."
    elif kind == "ice":
        outcome.bonus_damage = math.floor(damage * 0.25 * t)
        outcome.effects.append(DebuffEffect(
            name="Chilled - Weakened", stat="damage", value=-15, percent=True, duration=2,
        ))
        outcome.narrative = "Frost spreads from the wound, weakening the target's blows."
    elif kind == "shock":
        outcome.bonus_damage = math.floor(damage * 0.30 * t)
        outcome.effects.append(DotEffect(
            name="Electrocution", value=max(1, math.floor(damage * 0.10 * t)), duration=2,
        ))
        outcome.narrative = "Lightning arcs through the target."
        if percent_check(SHOCK_STUN_CHANCE.get(tier, 10), rng):
            outcome.effects.append(StunEffect(name="Shocked", duration=1))
            outcome.narrative += " Its muscles lock up."
    elif kind == "paralyze":
        outcome.bonus_damage = math.floor(damage * 0.20 * t)
        outcome.narrative = "A numbing venom seeps into the wound."
        if percent_check(PARALYZE_CHANCE.get(tier, 20), rng):
            outcome.effects.append(StunEffect(name="Paralyzed", duration=2))
            outcome.narrative += " The target is paralyzed."
    elif kind == "command":
        outcome.ally_attack = True
        outcome.narrative = "The arrow's call rallies an ally to strike."
    return outcome
