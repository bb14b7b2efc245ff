"""Equipment stat lookup: static tables first, keyword estimates after."""
from __future__ import annotations

from dataclasses import dataclass

from narrated_rpg.content.loader import load_item_stats
from narrated_rpg.models.item import InventoryItem, ItemType

# (keywords, damage, value, weight); first match wins
WEAPON_KEYWORDS: list[tuple[tuple[str, ...], int, int, float]] = [
    (("dagger", "knife"), 5, 20, 2.0),
    (("sword", "blade", "katana"), 8, 50, 10.0),
    (("axe",), 9, 55, 12.0),
    (("mace", "club"), 10, 60, 13.0),
    (("hammer",), 12, 70, 20.0),
    (("bow", "crossbow"), 8, 40, 8.0),
    (("staff",), 10, 100, 8.0),
]

APPAREL_KEYWORDS: list[tuple[tuple[str, ...], int, int, float]] = [
    (("helmet", "hood", "helm"), 10, 30, 4.0),
    (("armor", "armour", "cuirass"), 25, 100, 20.0),
    (("boot", "shoe"), 8, 25, 4.0),
    (("gauntlet", "glove"), 8, 25, 3.0),
    (("shield", "buckler"), 20, 50, 10.0),
    (("ring", "necklace", "amulet"), 0, 50, 0.25),
    (("robe", "clothes", "tunic"), 0, 30, 1.0),
]

WEAPON_NAME_HINTS = ("sword", "axe", "mace", "bow", "dagger", "hammer", "staff", "blade", "spear")
APPAREL_NAME_HINTS = ("armor", "armour", "cuirass", "helmet", "boots", "gauntlets", "shield",
                      "robe", "ring", "necklace", "amulet", "hood", "gloves")


@dataclass
class ItemStats:
    damage: int | None = None
    armor: int | None = None
    value: int | None = None
    weight: float | None = None


def infer_item_type(name: str, declared: ItemType | str | None = None) -> ItemType:
    """Trust an explicit weapon/apparel type; otherwise guess from the name."""
    if declared in (ItemType.WEAPON, ItemType.APPAREL, "weapon", "apparel"):
        return ItemType(declared)
    lower = name.lower()
    if any(k in lower for k in WEAPON_NAME_HINTS):
        return ItemType.WEAPON
    if any(k in lower for k in APPAREL_NAME_HINTS):
        return ItemType.APPAREL
    return ItemType(declared) if declared else ItemType.MISC


def _from_table(name: str, item_type: ItemType | None) -> ItemStats | None:
    tables = load_item_stats()
    if item_type in (ItemType.WEAPON, None):
        row = tables["weapons"].get(name)
        if row:
            return ItemStats(damage=row.get("damage"), value=row.get("value"), weight=row.get("weight"))
    if item_type in (ItemType.APPAREL, None):
        row = tables["armor"].get(name)
        if row:
            return ItemStats(armor=row.get("armor"), value=row.get("value"), weight=row.get("weight"))
    return None


def lookup_item_stats(name: str, item_type: ItemType | str | None = None) -> ItemStats:
    """Stats for a named item; empty for anything that is neither weapon nor apparel."""
    lower = name.lower().strip()
    kind = ItemType(item_type) if item_type else None
    found = _from_table(lower, kind)
    if found is not None:
        return found

    if kind == ItemType.WEAPON:
        for keywords, damage, value, weight in WEAPON_KEYWORDS:
            if any(k in lower for k in keywords):
                return ItemStats(damage=damage, value=value, weight=weight)
        return ItemStats(damage=5, value=20, weight=5.0)
    if kind == ItemType.APPAREL:
        for keywords, armor, value, weight in APPAREL_KEYWORDS:
            if any(k in lower for k in keywords):
                return ItemStats(armor=armor, value=value, weight=weight)
        return ItemStats(armor=10, value=25, weight=5.0)
    return ItemStats()


def enrich_item(item: InventoryItem) -> InventoryItem:
    """Fill missing damage/armor/value/weight on a newly granted item.

    Explicit values on the item always win over looked-up ones.
    """
    item_type = infer_item_type(item.name, item.type)
    stats = lookup_item_stats(item.name, item_type)
    updates: dict = {"type": item_type}
    if item.damage is None and stats.damage is not None:
        updates["damage"] = stats.damage
    if item.armor is None and stats.armor is not None:
        updates["armor"] = stats.armor
    if not item.value and stats.value is not None:
        updates["value"] = stats.value
    if not item.weight and stats.weight is not None:
        updates["weight"] = stats.weight
    return item.model_copy(update=updates)
