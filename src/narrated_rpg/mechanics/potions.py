"""Potion and food resolution; pure functions, no I/O."""
from __future__ import annotations

import re
from dataclasses import dataclass

from narrated_rpg.models.character import PlayerCombatStats
from narrated_rpg.models.item import InventoryItem, ItemType

VITAL_KEYWORDS: dict[str, tuple[str, ...]] = {
    "health": ("health", "heal", "healing", "vitality", "hp"),
    "magicka": ("magicka", "mana", "magick", "spell"),
    "stamina": ("stamina", "endurance", "energy", "fatigue"),
}

_NUMBER_RE = re.compile(r"(\d+)")


@dataclass
class PotionEffect:
    stat: str | None
    amount: int
    reason: str = ""


def _words(text: str) -> set[str]:
    return set(re.findall(r"[a-z]+", text.lower()))


def infer_vital(item: InventoryItem) -> str | None:
    """Which vital a potion restores: explicit subtype first, then keywords."""
    if item.subtype and item.subtype.lower() in VITAL_KEYWORDS:
        return item.subtype.lower()
    words = _words(f"{item.name} {item.description}")
    for stat, keywords in VITAL_KEYWORDS.items():
        if words.intersection(keywords):
            return stat
    return None


def infer_amount(item: InventoryItem) -> int:
    if item.damage:
        return max(0, item.damage)
    for text in (item.description, item.name):
        m = _NUMBER_RE.search(text or "")
        if m:
            return int(m.group(1))
    words = _words(item.name)
    if words & {"minor", "small"}:
        return 25
    if words & {"major", "plentiful", "grand", "ultimate"}:
        return 100
    return 50


def resolve_potion_effect(item: InventoryItem, food_heal: int = 15) -> PotionEffect:
    """Decide what consuming ``item`` restores, before clamping."""
    if item.type in (ItemType.FOOD, ItemType.DRINK):
        return PotionEffect(stat="health", amount=food_heal)
    if item.type != ItemType.POTION:
        return PotionEffect(stat=None, amount=0, reason="not_consumable")
    stat = infer_vital(item)
    if stat is None:
        return PotionEffect(stat=None, amount=0, reason="unknown_potion")
    return PotionEffect(stat=stat, amount=infer_amount(item))


def apply_restore(stats: PlayerCombatStats, stat: str, amount: int) -> int:
    """Restore a vital in place, clamped to what is missing. Returns the gain."""
    current = getattr(stats, f"current_{stat}")
    maximum = getattr(stats, f"max_{stat}")
    gain = max(0, min(amount, maximum - current))
    setattr(stats, f"current_{stat}", current + gain)
    return gain
