from __future__ import annotations

import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from narrated_rpg.models.ability import Ability, ActiveEffect
from narrated_rpg.models.item import LootDrop
from narrated_rpg.utils import int_num, num


class ActorType(str, Enum):
    HUMANOID = "humanoid"
    BEAST = "beast"
    UNDEAD = "undead"
    DAEDRA = "daedra"
    DRAGON = "dragon"
    AUTOMATON = "automaton"


class Behavior(str, Enum):
    AGGRESSIVE = "aggressive"
    BERSERKER = "berserker"
    DEFENSIVE = "defensive"
    TACTICAL = "tactical"
    SUPPORT = "support"


class CompanionMeta(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    companion_id: str = ""
    auto_control: bool = True
    auto_loot: bool = False
    is_summon: bool = False
    decay_active: bool = False
    summoned_by: Optional[str] = None
    is_bonus_minion: bool = False


class Actor(BaseModel):
    """An enemy, companion or summon. The player is tracked separately."""
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=lambda: f"actor_{uuid.uuid4().hex[:10]}")
    name: str
    level: int = 1
    type: ActorType = ActorType.HUMANOID
    behavior: Behavior = Behavior.AGGRESSIVE
    max_health: int = 1
    current_health: int = 1
    max_magicka: Optional[int] = None
    current_magicka: Optional[int] = None
    max_stamina: Optional[int] = None
    current_stamina: Optional[int] = None
    armor: int = 0
    damage: int = 0
    dodge_chance: float = 0
    abilities: list[Ability] = Field(default_factory=list)
    active_effects: list[ActiveEffect] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    resistances: list[str] = Field(default_factory=list)
    is_boss: bool = False
    is_companion: bool = False
    companion_meta: Optional[CompanionMeta] = None
    xp_reward: int = 0
    gold_reward: int = 0
    loot: list[LootDrop] = Field(default_factory=list)
    description: str = ""

    @field_validator("level", "max_health", "current_health", "armor", "damage", "xp_reward",
                     "gold_reward", mode="before")
    @classmethod
    def _coerce_ints(cls, v):
        return int_num(v)

    @field_validator("dodge_chance", mode="before")
    @classmethod
    def _coerce_floats(cls, v):
        return num(v)

    @property
    def is_alive(self) -> bool:
        return self.current_health > 0

    @property
    def is_summon(self) -> bool:
        return bool(self.companion_meta and self.companion_meta.is_summon)
