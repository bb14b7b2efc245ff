from __future__ import annotations

import logging
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from narrated_rpg.models.skills import PerkId, SkillName
from narrated_rpg.utils import int_num, num

logger = logging.getLogger(__name__)


class AbilityType(str, Enum):
    MELEE = "melee"
    RANGED = "ranged"
    MAGIC = "magic"
    UTILITY = "utility"
    AEO = "aeo"


class Resource(str, Enum):
    STAMINA = "stamina"
    MAGICKA = "magicka"


class AoeTarget(str, Enum):
    ALL_ENEMIES = "all_enemies"
    ALL_ALLIES = "all_allies"
    ALL = "all"


# ---------------------------------------------------------------------------
# Effects: one variant per kind, discriminated on ``type``
# ---------------------------------------------------------------------------

class _EffectBase(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore")

    name: str = ""
    duration: int = 0
    chance: float = 100.0  # percent

    @field_validator("duration", mode="before")
    @classmethod
    def _coerce_duration(cls, v):
        return int_num(v)

    @field_validator("chance", mode="before")
    @classmethod
    def _coerce_chance(cls, v):
        return num(v, 100.0)


class DotEffect(_EffectBase):
    type: Literal["dot"] = "dot"
    stat: str = "health"
    value: int = 0

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, v):
        return int_num(v)


class SlowEffect(_EffectBase):
    type: Literal["slow"] = "slow"
    value: float = 0.0

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, v):
        return num(v)


class StunEffect(_EffectBase):
    type: Literal["stun"] = "stun"
    duration: int = 1


class BuffEffect(_EffectBase):
    type: Literal["buff"] = "buff"
    stat: str = "damage"
    value: float = 0.0
    percent: bool = False

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, v):
        return num(v)


class DebuffEffect(_EffectBase):
    type: Literal["debuff"] = "debuff"
    stat: str = "damage"
    value: float = 0.0
    percent: bool = False

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, v):
        return num(v)


class HealEffect(_EffectBase):
    type: Literal["heal"] = "heal"
    stat: str = "health"
    value: int = 0

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, v):
        return int_num(v)


class DrainEffect(_EffectBase):
    type: Literal["drain"] = "drain"
    stat: str = "magicka"
    value: int = 0

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, v):
        return int_num(v)


class SummonEffect(_EffectBase):
    type: Literal["summon"] = "summon"
    player_turns: Optional[int] = None
    base_health: Optional[int] = None
    base_damage: Optional[int] = None


class AoeDamageEffect(_EffectBase):
    type: Literal["aoe_damage"] = "aoe_damage"
    value: int = 0
    aoe_target: AoeTarget = AoeTarget.ALL_ENEMIES

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, v):
        return int_num(v)


class AoeHealEffect(_EffectBase):
    type: Literal["aoe_heal"] = "aoe_heal"
    value: int = 0
    aoe_target: AoeTarget = AoeTarget.ALL_ALLIES

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, v):
        return int_num(v)


class GuardEffect(_EffectBase):
    """Tactical Guard: fraction of post-armor damage removed."""
    type: Literal["guard"] = "guard"
    name: str = "Tactical Guard"
    value: float = 0.0


Effect = Annotated[
    Union[
        DotEffect, SlowEffect, StunEffect, BuffEffect, DebuffEffect, HealEffect,
        DrainEffect, SummonEffect, AoeDamageEffect, AoeHealEffect, GuardEffect,
    ],
    Field(discriminator="type"),
]

EFFECT_TYPES = frozenset({
    "dot", "slow", "stun", "buff", "debuff", "heal", "drain", "summon",
    "aoe_damage", "aoe_heal", "guard",
})


def drop_unknown_effects(raw: list | None) -> list:
    """Filter out effect records whose ``type`` this engine does not know."""
    kept = []
    for effect in raw or []:
        kind = effect.get("type") if isinstance(effect, dict) else getattr(effect, "type", None)
        if kind in EFFECT_TYPES:
            kept.append(effect)
        else:
            logger.warning(f"Ignoring unknown effect type: {kind!r}")
    return kept


class ActiveEffect(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    effect: Effect
    turns_remaining: int = 1
    source: str = ""


# ---------------------------------------------------------------------------
# Abilities
# ---------------------------------------------------------------------------

class Prerequisites(BaseModel):
    level: int = 0
    perks: list[PerkId] = Field(default_factory=list)
    skills: dict[SkillName, int] = Field(default_factory=dict)


class Ability(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    type: AbilityType = AbilityType.MELEE
    cost: int = 0
    cooldown: int = 0
    damage: int = 0
    heal: int = 0
    description: str = ""
    element: Optional[str] = None
    resource: Optional[Resource] = None
    unarmed: bool = False
    effects: list[Effect] = Field(default_factory=list)
    prerequisites: Prerequisites = Field(default_factory=Prerequisites)

    @field_validator("cost", "cooldown", "damage", "heal", mode="before")
    @classmethod
    def _coerce_numbers(cls, v):
        return max(0, int_num(v))

    @field_validator("effects", mode="before")
    @classmethod
    def _known_effects(cls, v):
        return drop_unknown_effects(v)

    @property
    def cost_resource(self) -> Resource:
        if self.resource is not None:
            return self.resource
        if self.type in (AbilityType.MAGIC, AbilityType.AEO):
            return Resource.MAGICKA
        return Resource.STAMINA

    @property
    def heal_amount(self) -> int:
        return self.heal + sum(e.value for e in self.effects if isinstance(e, HealEffect))

    @property
    def is_healing(self) -> bool:
        return self.damage <= 0 and self.heal_amount > 0 and not self.is_aoe

    @property
    def is_aoe(self) -> bool:
        return self.type == AbilityType.AEO or any(
            isinstance(e, (AoeDamageEffect, AoeHealEffect)) for e in self.effects
        )

    @property
    def summon_effect(self) -> Optional[SummonEffect]:
        for e in self.effects:
            if isinstance(e, SummonEffect):
                return e
        return None
