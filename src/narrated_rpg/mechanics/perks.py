"""Perk registry and perk-driven tunables; pure data, no I/O."""
from __future__ import annotations

from typing import Any

from narrated_rpg.config import CombatSettings, get_settings
from narrated_rpg.models.character import CharacterSheet
from narrated_rpg.models.skills import PerkId, SkillName

PERK_REGISTRY: dict[PerkId, dict[str, Any]] = {
    PerkId.TACTICAL_GUARD_MASTERY: {
        "name": "Tactical Guard Mastery",
        "skill": SkillName.BLOCK,
        "max_rank": 2,
        "description": "Tactical Guard lasts one extra round per rank.",
    },
    PerkId.TWIN_SOULS: {
        "name": "Twin Souls",
        "skill": SkillName.CONJURATION,
        "max_rank": 2,
        "description": "One additional active summon per rank.",
    },
    PerkId.RIPOSTE_MASTERY: {
        "name": "Riposte Mastery",
        "skill": SkillName.ONE_HANDED,
        "max_rank": 1,
        "description": "Unlocks Riposte.",
    },
    PerkId.SLASH_MASTERY: {
        "name": "Slash Mastery",
        "skill": SkillName.ONE_HANDED,
        "max_rank": 1,
        "description": "Unlocks Slash.",
    },
    PerkId.MORTAL_STRIKE_MASTERY: {
        "name": "Mortal Strike Mastery",
        "skill": SkillName.ONE_HANDED,
        "max_rank": 1,
        "description": "Unlocks Mortal Strike.",
    },
    PerkId.WHIRLWIND_MASTERY: {
        "name": "Whirlwind Mastery",
        "skill": SkillName.TWO_HANDED,
        "max_rank": 1,
        "description": "Unlocks Whirlwind Attack.",
    },
    PerkId.CLEAVING_MASTERY: {
        "name": "Cleaving Mastery",
        "skill": SkillName.TWO_HANDED,
        "max_rank": 1,
        "description": "Unlocks Cleaving Strike.",
    },
    PerkId.UNARMED_MASTERY: {
        "name": "Unarmed Mastery",
        "skill": SkillName.UNARMED,
        "max_rank": 1,
        "description": "Unlocks Unarmed Strike regardless of skill.",
    },
}

# Abilities that only a perk can unlock; skill level alone never suffices.
PERK_GATED_ABILITIES: dict[str, PerkId] = {
    "riposte": PerkId.RIPOSTE_MASTERY,
    "slash": PerkId.SLASH_MASTERY,
    "mortal_strike": PerkId.MORTAL_STRIKE_MASTERY,
    "whirlwind_attack": PerkId.WHIRLWIND_MASTERY,
    "cleaving_strike": PerkId.CLEAVING_MASTERY,
}


def _validate_registry() -> None:
    missing = [p for p in PerkId if p not in PERK_REGISTRY]
    missing += [p for p in PERK_GATED_ABILITIES.values() if p not in PERK_REGISTRY]
    if missing:
        raise RuntimeError(f"Perks missing from registry: {sorted(set(missing))}")


_validate_registry()


def perk_rank(character: CharacterSheet | None, perk_id: PerkId) -> int:
    """Rank the character holds in a perk, clamped to the registry maximum."""
    if character is None:
        return 0
    rank = 0
    for perk in character.perks:
        if perk.id == perk_id:
            rank = max(rank, perk.rank)
    return max(0, min(rank, PERK_REGISTRY[perk_id]["max_rank"]))


def has_perk(character: CharacterSheet | None, perk_id: PerkId) -> bool:
    return perk_rank(character, perk_id) > 0


def guard_rounds(character: CharacterSheet | None, settings: CombatSettings | None = None) -> int:
    """Tactical Guard duration: base rounds plus one per mastery rank."""
    settings = settings or get_settings()
    rank = perk_rank(character, PerkId.TACTICAL_GUARD_MASTERY)
    return min(settings.guard_max_rounds, settings.guard_base_rounds + rank)


def summon_cap(character: CharacterSheet | None, settings: CombatSettings | None = None) -> int:
    """Concurrent summon limit: one, plus one per Twin Souls rank."""
    settings = settings or get_settings()
    rank = perk_rank(character, PerkId.TWIN_SOULS)
    return min(settings.max_summon_cap, settings.base_summon_cap + rank)
