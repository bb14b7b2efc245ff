"""XP and loot rolls for defeated enemies; pure functions, no I/O."""
from __future__ import annotations

import logging
import math
from typing import Any

from narrated_rpg.content.loader import load_loot_tables
from narrated_rpg.mechanics.dice import chance, roll_range
from narrated_rpg.models.actor import Actor
from narrated_rpg.models.item import InventoryItem

logger = logging.getLogger(__name__)

MAX_LOOT_ATTEMPTS = 4
BOSS_CHANCE_BONUS = 10
FALLBACK_NAME = "Coin Pouch"


def compute_enemy_xp(enemy: Actor) -> int:
    base = max(1, math.floor(max(1, enemy.level) * 3))
    return base * 2 if enemy.is_boss else base


def loot_table_for(actor_type: str, is_boss: bool = False) -> list[dict[str, Any]]:
    """The weighted table for an actor type, with boss extras merged in."""
    tables = load_loot_tables()
    entries = list(tables["tables"].get(actor_type, []))
    if is_boss:
        entries += tables["boss_tables"].get(actor_type, [])
    return entries


def effective_weight(entry: dict[str, Any], rarity_multiplier: dict[str, float]) -> float:
    return max(0.0, entry.get("weight", 1) * rarity_multiplier.get(entry.get("rarity", "common"), 1.0))


def pick_weighted(table: list[dict[str, Any]], rarity_multiplier: dict[str, float], rng=None):
    weighted = [(entry, effective_weight(entry, rarity_multiplier)) for entry in table]
    total = sum(w for _, w in weighted)
    if total <= 0:
        return None
    r = chance(rng) * total
    for entry, w in weighted:
        r -= w
        if r < 0:
            return entry
    return weighted[-1][0]


def drop_chance(entry: dict[str, Any], level: int, is_boss: bool,
                rarity_multiplier: dict[str, float]) -> float:
    """Percent chance that a picked entry actually drops."""
    bonus = level * 0.5 + (BOSS_CHANCE_BONUS if is_boss else 0)
    if "base_chance" in entry:
        base = min(100.0, max(0.0, entry["base_chance"] + bonus))
    else:
        base = min(95.0, max(1.0, entry.get("weight", 1) * 4 + bonus))
    return base * rarity_multiplier.get(entry.get("rarity", "common"), 1.0)


def _entry_to_item(entry: dict[str, Any], quantity: int) -> InventoryItem:
    return InventoryItem(
        name=entry["name"],
        type=entry.get("type", "misc"),
        subtype=entry.get("subtype"),
        description=entry.get("description", ""),
        quantity=quantity,
        rarity=entry.get("rarity", "common"),
        damage=entry.get("damage"),
        armor=entry.get("armor"),
    )


def merge_by_name(items: list[InventoryItem]) -> list[InventoryItem]:
    """Collapse same-named entries into one, summing quantities."""
    merged: dict[str, InventoryItem] = {}
    for item in items:
        if item.name in merged:
            merged[item.name].quantity += item.quantity
        else:
            merged[item.name] = item.model_copy()
    return list(merged.values())


def generate_enemy_loot(enemy: Actor, rng=None) -> list[InventoryItem]:
    """Roll an enemy's drops: its own loot list, then its type's weighted table.

    Never returns an empty list; a coin pouch is the fallback.
    """
    tables = load_loot_tables()
    multipliers = tables["rarity_multiplier"]
    level = max(1, enemy.level)
    items: list[InventoryItem] = []

    for drop in enemy.loot:
        if chance(rng) * 100 < drop.drop_chance:
            items.append(InventoryItem.model_validate(drop.model_dump(exclude={"drop_chance", "id"})))

    table = loot_table_for(enemy.type.value, enemy.is_boss)
    attempts = max(1, min(MAX_LOOT_ATTEMPTS, math.floor(1 + level / 3 + (1 if enemy.is_boss else 0))))
    for _ in range(attempts):
        entry = pick_weighted(table, multipliers, rng)
        if entry is None:
            continue
        if chance(rng) * 100 < drop_chance(entry, level, enemy.is_boss, multipliers):
            lo = entry.get("min_qty", 1)
            hi = max(lo, entry.get("max_qty", lo))
            items.append(_entry_to_item(entry, roll_range(lo, hi, rng)))

    if not items:
        gold = max(1, math.floor((enemy.gold_reward or level * 2) * (2 if enemy.is_boss else 1)))
        items.append(InventoryItem(name=FALLBACK_NAME, type="misc", description="Collected coins.",
                                   quantity=gold))
    logger.debug(f"Loot for {enemy.name}: {[(i.name, i.quantity) for i in items]}")
    return merge_by_name(items)
