"""Companion records, actor typing and companion AI."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from narrated_rpg.models.ability import Ability, AbilityType
from narrated_rpg.models.actor import Actor, ActorType, Behavior, CompanionMeta
from narrated_rpg.models.character import PlayerCombatStats
from narrated_rpg.models.combat import PLAYER_ID, CombatState
from narrated_rpg.utils import int_num


# Checked in order; the first matching group wins.
TYPE_KEYWORDS: list[tuple[ActorType, tuple[str, ...]]] = [
    (ActorType.DRAGON, ("dragon", "drake", "wyrm")),
    (ActorType.AUTOMATON, ("dwarven", "centurion", "sphere", "automaton", "construct", "golem")),
    (ActorType.DAEDRA, ("atronach", "dremora", "daedra", "scamp", "seeker", "lurker")),
    (ActorType.UNDEAD, ("skeleton", "draugr", "zombie", "ghost", "vampire", "lich", "revenant",
                        "wight", "wraith", "spectre", "specter", "thrall")),
    (ActorType.BEAST, ("wolf", "bear", "sabre", "cat", "spider", "skeever", "troll", "horker",
                       "fox", "dog", "hound", "mudcrab", "slaughterfish", "elk", "boar", "beast",
                       "mammoth", "chaurus", "hawk")),
]

ANIMAL_SPECIES = {"wolf", "dog", "hound", "bear", "cat", "sabre_cat", "fox", "horse", "hawk", "boar"}


def derive_actor_type(name: str, species: str | None = None, is_animal: bool = False) -> ActorType:
    """Classify an actor from its name/species; never trusts an author-set type."""
    if is_animal or (species and species.lower() in ANIMAL_SPECIES):
        return ActorType.BEAST
    words = re.findall(r"[a-z]+", f"{name} {species or ''}".lower())
    for actor_type, keywords in TYPE_KEYWORDS:
        if any(w.startswith(k) for w in words for k in keywords):
            return actor_type
    return ActorType.HUMANOID


def _default_companion_ability(actor_type: ActorType, damage: int) -> Ability:
    if actor_type == ActorType.BEAST:
        return Ability(id="bite", name="Bite", type=AbilityType.MELEE, damage=damage, cost=0)
    return Ability(id="companion_strike", name="Strike", type=AbilityType.MELEE, damage=damage, cost=0)


def build_companion_actor(companion: dict[str, Any]) -> Actor:
    """Build an ally Actor from a companion record.

    ``auto_control`` / ``auto_loot`` are copied verbatim, including explicit False.
    """
    name = companion.get("name", "Companion")
    actor_type = derive_actor_type(name, companion.get("species"), bool(companion.get("is_animal")))
    max_health = int_num(companion.get("max_health") or companion.get("health"), 50) or 50
    damage = int_num(companion.get("damage"), 8) or 8
    abilities = [Ability.model_validate(a) for a in companion.get("abilities", [])]
    if not abilities:
        abilities = [_default_companion_ability(actor_type, damage)]

    return Actor(
        id=companion.get("id") or f"companion_{companion.get('companion_id', name).lower()}",
        name=name,
        level=int_num(companion.get("level"), 1) or 1,
        type=actor_type,
        behavior=companion.get("behavior", Behavior.TACTICAL),
        max_health=max_health,
        current_health=min(max_health, int_num(companion.get("current_health"), max_health) or max_health),
        armor=int_num(companion.get("armor")),
        damage=damage,
        abilities=abilities,
        is_companion=True,
        companion_meta=CompanionMeta(
            companion_id=companion.get("companion_id") or companion.get("id") or name,
            auto_control=companion.get("auto_control", True),
            auto_loot=companion.get("auto_loot", False),
        ),
    )


@dataclass
class CompanionDecision:
    ability: Ability | None
    target_id: str | None


def companion_ai_action(
    companion: Actor,
    state: CombatState,
    player_stats: PlayerCombatStats | None = None,
) -> CompanionDecision:
    """Pick a companion's action: heal a badly hurt friend, else hit the weakest enemy."""
    heals = [a for a in companion.abilities if a.is_healing]
    if heals:
        wounded: list[tuple[float, str]] = []
        if player_stats and player_stats.max_health > 0:
            wounded.append((player_stats.current_health / player_stats.max_health, PLAYER_ID))
        for ally in state.living_allies():
            wounded.append((ally.current_health / max(1, ally.max_health), ally.id))
        ratio, target_id = min(wounded, default=(1.0, None))
        if target_id and ratio < 0.4:
            return CompanionDecision(ability=heals[0], target_id=target_id)

    enemies = state.living_enemies()
    if not enemies:
        return CompanionDecision(ability=None, target_id=None)
    target = min(enemies, key=lambda e: e.current_health)
    attacks = [a for a in companion.abilities if not a.is_healing and a.summon_effect is None]
    ability = max(attacks, key=lambda a: a.damage, default=None)
    return CompanionDecision(ability=ability, target_id=target.id)
