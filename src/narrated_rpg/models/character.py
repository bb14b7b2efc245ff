from __future__ import annotations

import logging
import uuid
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from narrated_rpg.models.ability import Ability
from narrated_rpg.models.skills import PerkId, SkillName, normalize_key
from narrated_rpg.utils import int_num, num

logger = logging.getLogger(__name__)


class PerkRank(BaseModel):
    id: PerkId
    rank: int = 1


class CharacterSheet(BaseModel):
    """The slice of a character the combat engine reads."""
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = "You"
    level: int = 1
    skills: dict[SkillName, int] = Field(default_factory=dict)
    perks: list[PerkRank] = Field(default_factory=list)
    max_health: int = 100
    max_magicka: int = 100
    max_stamina: int = 100

    @field_validator("skills", mode="before")
    @classmethod
    def _normalize_skills(cls, v: Any):
        if isinstance(v, list):
            v = {s.get("name"): s.get("level") for s in v if isinstance(s, dict)}
        known = {s.value for s in SkillName}
        skills: dict[str, int] = {}
        for name, level in (v or {}).items():
            key = normalize_key(name.value if isinstance(name, SkillName) else name)
            if key not in known:
                logger.warning(f"Ignoring unknown skill: {name!r}")
                continue
            skills[key] = int_num(level)
        return skills

    @field_validator("perks", mode="before")
    @classmethod
    def _normalize_perks(cls, v: Any):
        known = {p.value for p in PerkId}
        perks: list[dict] = []
        for perk in v or []:
            if isinstance(perk, PerkRank):
                perks.append(perk.model_dump())
                continue
            if isinstance(perk, dict):
                pid, rank = perk.get("id"), perk.get("rank", 1)
            else:
                pid, rank = perk, 1
            key = normalize_key(pid.value if isinstance(pid, PerkId) else pid)
            if key not in known:
                logger.warning(f"Ignoring unknown perk: {pid!r}")
                continue
            perks.append({"id": key, "rank": int_num(rank, 1)})
        return perks

    def skill(self, name: SkillName, default: int = 15) -> int:
        return self.skills.get(name, default)


class PlayerCombatStats(BaseModel):
    """Derived combat numbers for the player; missing numbers read as zero."""
    model_config = ConfigDict(from_attributes=True)

    max_health: int = 0
    current_health: int = 0
    max_magicka: int = 0
    current_magicka: int = 0
    max_stamina: int = 0
    current_stamina: int = 0
    armor: int = 0
    weapon_damage: int = 0
    crit_chance: float = 0
    dodge_chance: float = 0
    magic_resist: float = 0
    health_regen: float = 0
    magicka_regen: float = 0
    stamina_regen: float = 0
    abilities: list[Ability] = Field(default_factory=list)

    @field_validator(
        "max_health", "current_health", "max_magicka", "current_magicka",
        "max_stamina", "current_stamina", "armor", "weapon_damage", mode="before",
    )
    @classmethod
    def _coerce_ints(cls, v):
        return int_num(v)

    @field_validator(
        "crit_chance", "dodge_chance", "magic_resist",
        "health_regen", "magicka_regen", "stamina_regen", mode="before",
    )
    @classmethod
    def _coerce_floats(cls, v):
        return num(v)
