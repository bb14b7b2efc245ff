"""Encounter sizing and enemy generation from templates."""
from __future__ import annotations

import logging
import math
import uuid
from typing import Any

from narrated_rpg.content.loader import load_enemy_templates
from narrated_rpg.mechanics.dice import chance, pick, roll_range
from narrated_rpg.models.ability import Ability
from narrated_rpg.models.actor import Actor, ActorType, Behavior
from narrated_rpg.models.item import LootDrop
from narrated_rpg.utils import clamp

logger = logging.getLogger(__name__)

MIN_ENEMIES = 1
MAX_ENEMIES = 5
LEVEL_SPREAD = 2
STAT_VARIANCE = 0.15
ELITE_MULTIPLIER = 1.5
DEFAULT_PREFIXES = ["Fierce", "Wary", "Battle-Worn"]
PERSONALITIES = ["snarling", "cautious", "battle-scarred", "wild-eyed", "cold", "hungry"]


def get_enemy_count_for_level(level: int) -> int:
    """Recommended group size for a player level, between 1 and 5."""
    return int(clamp(1 + max(0, level) // 5, MIN_ENEMIES, MAX_ENEMIES))


def _vary(value: float, variance: float, rng=None) -> int:
    return math.floor(value * (1 - variance + chance(rng) * 2 * variance))


def scale_enemy_encounter(enemies: list[Actor], level: int, rng=None) -> list[Actor]:
    """Expand a lone non-boss enemy into a same-type group sized for ``level``.

    Anything else (an empty list, a boss, an authored group) is returned as is.
    """
    if len(enemies) != 1 or enemies[0].is_boss:
        return list(enemies)
    count = get_enemy_count_for_level(level)
    template = enemies[0]
    group = [template]
    for _ in range(count - 1):
        group.append(template.model_copy(
            deep=True, update={"id": f"{template.id}_{uuid.uuid4().hex[:6]}"},
        ))
    logger.debug(f"Scaled encounter of {template.name} to {len(group)} at level {level}")
    return group


def _ability_from_template(raw: dict[str, Any], level_scale: float, elite: bool) -> Ability:
    scaled = dict(raw)
    if raw.get("damage"):
        scaled["damage"] = max(1, math.floor(raw["damage"] * level_scale * (1.2 if elite else 1)))
    return Ability.model_validate(scaled)


def create_enemy_from_template(
    template_id: str,
    target_level: int | None = None,
    force_unique: bool = False,
    elite: bool = False,
    rng=None,
) -> Actor:
    """Build one enemy from a template, scaled around ``target_level``.

    Raises ValueError for an unknown template id.
    """
    templates = load_enemy_templates()
    template = templates.get(template_id)
    if template is None:
        raise ValueError(f"Unknown enemy template: {template_id}")

    base_level = template.get("base_level", 1)
    center = target_level if target_level is not None else base_level
    level = max(1, roll_range(center - LEVEL_SPREAD, center + LEVEL_SPREAD, rng))
    level_scale = max(0.3, 1 + (level - base_level) * 0.1)

    multiplier = ELITE_MULTIPLIER if elite else 1
    health = math.floor(max(10, _vary(template["health"] * level_scale, STAT_VARIANCE, rng)) * multiplier)
    armor = math.floor(max(0, _vary(template.get("armor", 0) * level_scale, STAT_VARIANCE, rng)) * multiplier)
    damage = math.floor(max(5, _vary(template.get("damage", 5) * level_scale, STAT_VARIANCE, rng)) * multiplier)

    name = template["name"]
    if force_unique:
        name = f"{pick(template.get('name_prefixes') or DEFAULT_PREFIXES, rng)} {name}"
    if elite:
        name = f"{name} (Elite)"

    behaviors = template.get("behaviors") or [Behavior.AGGRESSIVE.value]
    magicka = template.get("magicka")
    if magicka is not None:
        magicka = math.floor(magicka * level_scale)
    stamina = 50 + level * 3

    gold = template.get("gold", 0)
    return Actor(
        id=f"{template_id}_{uuid.uuid4().hex[:8]}",
        name=name,
        level=level,
        type=ActorType(template.get("type", "humanoid")),
        behavior=Behavior(pick(behaviors, rng)),
        max_health=health,
        current_health=health,
        max_magicka=magicka,
        current_magicka=magicka,
        max_stamina=stamina,
        current_stamina=stamina,
        armor=armor,
        damage=damage,
        abilities=[_ability_from_template(a, level_scale, elite) for a in template.get("abilities", [])],
        weaknesses=list(template.get("weaknesses", [])),
        resistances=list(template.get("resistances", [])),
        is_boss=bool(template.get("is_boss")) or elite,
        xp_reward=math.floor(template.get("xp", 0) * level_scale * (2 if elite else 1)),
        gold_reward=math.floor(gold * level_scale * (2.5 if elite else 1)) if gold else 0,
        loot=[LootDrop.model_validate(entry) for entry in template.get("loot", [])],
        description=f"A {pick(PERSONALITIES, rng)} {template['name'].lower()}",
    )


def generate_enemy_group(
    template_id: str,
    count: int,
    target_level: int | None = None,
    include_elite: bool = False,
    rng=None,
) -> list[Actor]:
    """A group of ``count`` enemies with pairwise-distinct names where possible."""
    used: set[str] = set()
    group: list[Actor] = []
    for i in range(max(0, count)):
        elite = include_elite and i == 0
        enemy = create_enemy_from_template(template_id, target_level, force_unique=True, elite=elite, rng=rng)
        attempts = 1
        while enemy.name in used and attempts < 10:
            enemy = create_enemy_from_template(template_id, target_level, force_unique=True, elite=elite, rng=rng)
            attempts += 1
        used.add(enemy.name)
        group.append(enemy)
    return group
