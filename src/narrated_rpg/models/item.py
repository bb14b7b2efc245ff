from __future__ import annotations

import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from narrated_rpg.utils import int_num, num


class ItemType(str, Enum):
    WEAPON = "weapon"
    APPAREL = "apparel"
    POTION = "potion"
    FOOD = "food"
    DRINK = "drink"
    INGREDIENT = "ingredient"
    AMMUNITION = "ammunition"
    KEY = "key"
    MISC = "misc"


class EquipSlot(str, Enum):
    WEAPON = "weapon"
    OFFHAND = "offhand"
    HEAD = "head"
    CHEST = "chest"
    HANDS = "hands"
    FEET = "feet"
    RING = "ring"
    NECK = "neck"


class InventoryItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    character_id: str = ""
    name: str
    type: ItemType = ItemType.MISC
    subtype: Optional[str] = None
    description: str = ""
    quantity: int = 1
    equipped: bool = False
    equipped_by: Optional[str] = None
    slot: Optional[EquipSlot] = None
    damage: Optional[int] = None
    armor: Optional[int] = None
    value: int = 0
    weight: float = 0.0
    rarity: str = "common"

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, v):
        if v in ("armor", "armour", "shield", "clothing"):
            return ItemType.APPAREL
        if v in ("arrow", "arrows", "ammo"):
            return ItemType.AMMUNITION
        return v or ItemType.MISC

    @field_validator("quantity", "value", mode="before")
    @classmethod
    def _coerce_ints(cls, v):
        return max(0, int_num(v))

    @field_validator("weight", mode="before")
    @classmethod
    def _coerce_weight(cls, v):
        return num(v)

    @property
    def equipped_by_player(self) -> bool:
        return self.equipped and self.equipped_by in (None, "", "player")


class LootDrop(InventoryItem):
    """An item an enemy may drop, with a percent drop chance."""
    drop_chance: float = 100.0

    @field_validator("drop_chance", mode="before")
    @classmethod
    def _coerce_chance(cls, v):
        return num(v, 100.0)
