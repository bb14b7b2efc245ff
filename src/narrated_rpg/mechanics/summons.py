"""Summon lifecycle: creation, scaling, decay, cleanup and list normalization.

Functions here mutate the ``CombatState`` they are given; callers hand in a
copy they own.
"""
from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass, field

from narrated_rpg.config import CombatSettings, get_settings
from narrated_rpg.mechanics.combat_math import RollTier, roll_tier
from narrated_rpg.mechanics.companion import derive_actor_type
from narrated_rpg.models.ability import Ability, AbilityType, SummonEffect
from narrated_rpg.models.actor import Actor, ActorType, Behavior, CompanionMeta
from narrated_rpg.models.combat import PLAYER_ID, CombatState, PendingSummon

logger = logging.getLogger(__name__)

SUMMON_TIER_SCALE: dict[RollTier, float] = {
    RollTier.MISS: 0.5,
    RollTier.LOW: 0.75,
    RollTier.MID: 1.0,
    RollTier.HIGH: 1.25,
    RollTier.CRIT: 1.5,
}
SUMMON_EXTRA_TURNS: dict[RollTier, int] = {RollTier.HIGH: 1, RollTier.CRIT: 2}
BONUS_MINION_SCALE = 0.4
BASE_SUMMON_HEALTH = 30
SUMMON_HEALTH_PER_LEVEL = 11


@dataclass
class SummonResult:
    created: list[Actor] = field(default_factory=list)
    failed: bool = False
    narrative: str = ""


def summon_base_stats(effect: SummonEffect, caster_level: int) -> tuple[int, int]:
    """Template health/damage; missing values scale with the caster's level."""
    level = max(1, caster_level)
    health = effect.base_health or BASE_SUMMON_HEALTH + (level - 1) * SUMMON_HEALTH_PER_LEVEL
    damage = effect.base_damage or 6 + level // 2
    return max(1, health), max(1, damage)


def _summons_of(state: CombatState, owner_id: str) -> list[Actor]:
    return [
        a for a in state.enemies + state.allies
        if a.is_alive and a.is_summon and a.companion_meta.summoned_by == owner_id
    ]


def count_active_summons(state: CombatState, owner_id: str = PLAYER_ID) -> int:
    """Living primary summons owned by ``owner_id``; bonus minions are not counted."""
    return sum(1 for a in _summons_of(state, owner_id) if not a.companion_meta.is_bonus_minion)


def combat_has_active_summon(state: CombatState) -> bool:
    """Whether any living summon fights on the player's side."""
    return any(a.is_alive and a.is_summon for a in state.allies)


def _summon_actor(name: str, health: int, damage: int, level: int, owner_id: str,
                  bonus: bool = False) -> Actor:
    actor_type = derive_actor_type(name)
    attack_name = "Bite" if actor_type == ActorType.BEAST else "Strike"
    actor_id = f"summon_{uuid.uuid4().hex[:8]}"
    return Actor(
        id=actor_id,
        name=name,
        level=level,
        type=actor_type,
        behavior=Behavior.AGGRESSIVE,
        max_health=health,
        current_health=health,
        damage=damage,
        abilities=[Ability(
            id=f"{actor_id}_attack", name=attack_name, type=AbilityType.MELEE, damage=damage,
        )],
        companion_meta=CompanionMeta(
            companion_id=actor_id,
            auto_control=True,
            is_summon=True,
            summoned_by=owner_id,
            is_bonus_minion=bonus,
        ),
    )


def create_summons(
    state: CombatState,
    effect: SummonEffect,
    caster_id: str,
    caster_level: int,
    nat: int,
    settings: CombatSettings | None = None,
    caster_name: str = "You",
) -> SummonResult:
    """Conjure from a summon effect, scaled by the outcome roll.

    A roll of 1 fails outright. The caster's side decides which list the summon
    joins: player and ally casters fill ``allies``, enemy casters fill ``enemies``.
    """
    settings = settings or get_settings()
    name = effect.name or "Summoned Familiar"
    tier = roll_tier(nat)
    if tier == RollTier.FAIL:
        return SummonResult(failed=True, narrative=f"The conjuration fails; {name} never takes shape.")

    scale = SUMMON_TIER_SCALE[tier]
    base_health, base_damage = summon_base_stats(effect, caster_level)
    turns = (effect.player_turns or effect.duration or settings.summon_base_turns) + SUMMON_EXTRA_TURNS.get(tier, 0)

    primary = _summon_actor(
        name,
        max(1, math.floor(base_health * scale)),
        max(1, math.floor(base_damage * scale)),
        caster_level,
        caster_id,
    )
    created = [primary]
    if tier == RollTier.CRIT:
        created.append(_summon_actor(
            f"Lesser {name}",
            max(1, math.floor(base_health * BONUS_MINION_SCALE)),
            max(1, math.floor(base_damage * BONUS_MINION_SCALE)),
            caster_level,
            caster_id,
            bonus=True,
        ))

    on_enemy_side = state.is_enemy(caster_id)
    for actor in created:
        (state.enemies if on_enemy_side else state.allies).append(actor)
        state.turn_order.append(actor.id)
        state.pending_summons.append(PendingSummon(
            companion_id=actor.id, player_turns_remaining=turns, scale=scale, roll=nat,
        ))

    if tier == RollTier.MISS:
        quality = "a feeble"
    elif tier == RollTier.LOW:
        quality = "a weakened"
    elif tier in (RollTier.HIGH, RollTier.CRIT):
        quality = "an empowered"
    else:
        quality = "a"
    verb = "conjure" if caster_name == "You" else "conjures"
    narrative = f"{caster_name} {verb} {quality} {name} ({primary.max_health} HP) for {turns} turns."
    if len(created) > 1:
        narrative += f" A {created[1].name} answers the call as well."
    logger.debug(f"Summoned {[a.id for a in created]} at roll {nat} (scale {scale})")
    return SummonResult(created=created, narrative=narrative)


def _remove_actor(state: CombatState, actor_id: str) -> None:
    state.allies = [a for a in state.allies if a.id != actor_id]
    state.enemies = [e for e in state.enemies if e.id != actor_id]
    state.turn_order = [t for t in state.turn_order if t != actor_id]
    state.pending_summons = [p for p in state.pending_summons if p.companion_id != actor_id]


def apply_summon_decay(state: CombatState) -> list[str]:
    """Run at each player-turn start. Returns narrative lines.

    Decaying summons lose half their current health (floor) first; then every
    pending countdown ticks, and summons that reach zero start decaying.
    """
    lines: list[str] = []
    for actor in list(state.allies + state.enemies):
        meta = actor.companion_meta
        if not (meta and meta.is_summon and meta.decay_active):
            continue
        actor.current_health = actor.current_health // 2
        if actor.current_health <= 0:
            _remove_actor(state, actor.id)
            lines.append(f"{actor.name} fades back into Oblivion.")
        else:
            lines.append(f"{actor.name} flickers as the binding weakens ({actor.current_health} HP).")

    for pending in list(state.pending_summons):
        pending.player_turns_remaining = max(0, pending.player_turns_remaining - 1)
        if pending.player_turns_remaining > 0:
            continue
        actor = state.find_actor(pending.companion_id)
        if actor is not None and actor.companion_meta and not actor.companion_meta.decay_active:
            actor.companion_meta.decay_active = True
            lines.append(f"The binding on {actor.name} begins to unravel.")
    return lines


def cleanup_dead_summons(state: CombatState) -> list[str]:
    """Remove dead summons and their pending entries. Returns removed names."""
    removed = []
    for actor in list(state.allies + state.enemies):
        if actor.is_summon and not actor.is_alive:
            _remove_actor(state, actor.id)
            removed.append(actor.name)
    live_ids = {a.id for a in state.allies + state.enemies}
    state.pending_summons = [p for p in state.pending_summons if p.companion_id in live_ids]
    return removed


def normalize_misclassified(state: CombatState) -> list[str]:
    """Move companions that ended up in ``enemies`` over to ``allies``."""
    moved = [e for e in state.enemies if e.is_companion]
    if not moved:
        return []
    ally_ids = {a.id for a in state.allies}
    state.enemies = [e for e in state.enemies if not e.is_companion]
    for actor in moved:
        logger.warning(f"Companion {actor.id} found among enemies; moving to allies")
        if actor.id not in ally_ids:
            state.allies.append(actor)
        if actor.id not in state.turn_order:
            state.turn_order.append(actor.id)
    return [a.name for a in moved]
