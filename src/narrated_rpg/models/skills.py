"""Skill and perk identifiers known to the combat engine."""
from __future__ import annotations

from enum import Enum


class SkillName(str, Enum):
    ONE_HANDED = "one_handed"
    TWO_HANDED = "two_handed"
    ARCHERY = "archery"
    BLOCK = "block"
    HEAVY_ARMOR = "heavy_armor"
    LIGHT_ARMOR = "light_armor"
    SNEAK = "sneak"
    DESTRUCTION = "destruction"
    RESTORATION = "restoration"
    CONJURATION = "conjuration"
    ALTERATION = "alteration"
    ILLUSION = "illusion"
    UNARMED = "unarmed"


class PerkId(str, Enum):
    TACTICAL_GUARD_MASTERY = "tactical_guard_mastery"
    TWIN_SOULS = "twin_souls"
    RIPOSTE_MASTERY = "riposte_mastery"
    SLASH_MASTERY = "slash_mastery"
    MORTAL_STRIKE_MASTERY = "mortal_strike_mastery"
    WHIRLWIND_MASTERY = "whirlwind_mastery"
    CLEAVING_MASTERY = "cleaving_mastery"
    UNARMED_MASTERY = "unarmed_mastery"


def normalize_key(raw: str) -> str:
    """'One-Handed' / 'one handed' -> 'one_handed'."""
    return str(raw).strip().lower().replace("-", "_").replace(" ", "_")
