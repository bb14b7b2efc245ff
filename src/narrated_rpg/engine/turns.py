"""Combat state manager: setup, turn order, per-turn upkeep and end detection."""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from narrated_rpg.config import CombatSettings, get_settings
from narrated_rpg.engine.combatants import Combatant, get_combatant
from narrated_rpg.mechanics.abilities import REGEN_PER_SECOND
from narrated_rpg.mechanics.combat_math import flee_chance, regen_amount
from narrated_rpg.mechanics.companion import build_companion_actor, derive_actor_type
from narrated_rpg.mechanics.conditions import guard_reduction, tick_effects, tick_guard
from narrated_rpg.mechanics.dice import chance
from narrated_rpg.mechanics.summons import (
    apply_summon_decay,
    cleanup_dead_summons,
    normalize_misclassified,
)
from narrated_rpg.models.action import ActionOutcome, ConsumedAction
from narrated_rpg.models.actor import Actor
from narrated_rpg.models.character import PlayerCombatStats
from narrated_rpg.models.combat import PLAYER_ID, CombatResult, CombatState, LogEntry

logger = logging.getLogger(__name__)


@dataclass
class TurnAdvance:
    state: CombatState
    player_stats: PlayerCombatStats | None
    actor_id: str
    narrative: list[str] = field(default_factory=list)


def _log(state: CombatState, actor: str, actor_id: str, action: str, narrative: str, **fields: Any) -> None:
    state.combat_log.append(LogEntry(
        turn=state.turn, actor=actor, actor_id=actor_id, action=action, narrative=narrative, **fields,
    ))


def _as_actor(raw: Actor | dict[str, Any]) -> Actor:
    actor = raw.model_copy(deep=True) if isinstance(raw, Actor) else Actor.model_validate(raw)
    actor.type = derive_actor_type(actor.name)
    actor.max_health = max(1, actor.max_health)
    actor.current_health = max(0, min(actor.current_health, actor.max_health))
    return actor


def disambiguate_names(actors: list[Actor]) -> None:
    """Suffix every member of a duplicated display-name group with 1..n."""
    counts = Counter(a.name for a in actors)
    seen: Counter[str] = Counter()
    for actor in actors:
        if counts[actor.name] > 1:
            base = actor.name
            seen[base] += 1
            actor.name = f"{base} {seen[base]}"


def initialize_combat(
    enemies: list[Actor | dict[str, Any]],
    *,
    location: str = "",
    ambush: bool = False,
    flee_allowed: bool = True,
    surrender_allowed: bool = False,
    companions: list[Actor | dict[str, Any]] | None = None,
    player_level: int = 1,
    player_name: str = "You",
) -> CombatState:
    """Build the opening combat state.

    Turn order is player, allies, enemies; an ambush lets the enemies go first.
    """
    foes = [_as_actor(e) for e in enemies]
    disambiguate_names(foes)

    allies: list[Actor] = []
    for record in companions or []:
        if isinstance(record, Actor):
            ally = record.model_copy(deep=True)
            ally.is_companion = True
        else:
            ally = build_companion_actor(record)
        allies.append(ally)

    state = CombatState(
        location=location,
        enemies=foes,
        allies=allies,
        flee_allowed=flee_allowed,
        surrender_allowed=surrender_allowed,
        player_level=max(1, player_level),
        player_name=player_name,
    )
    normalize_misclassified(state)

    ally_ids = [a.id for a in state.allies]
    enemy_ids = [e.id for e in state.enemies]
    state.turn_order = enemy_ids + [PLAYER_ID] + ally_ids if ambush else [PLAYER_ID] + ally_ids + enemy_ids
    state.current_turn_actor = state.turn_order[0]

    names = ", ".join(e.name for e in state.enemies) or "no one"
    opening = f"Ambush! {names} strike first." if ambush else f"Combat begins against {names}."
    _log(state, player_name, PLAYER_ID, "combat_start", opening)
    logger.info(f"Combat {state.id} started at {location or 'unknown location'}: {names}")
    return state


def _is_living(state: CombatState, actor_id: str, stats: PlayerCombatStats | None) -> bool:
    if actor_id == PLAYER_ID:
        return stats is None or stats.current_health > 0
    actor = state.find_actor(actor_id)
    return actor is not None and actor.is_alive


def _next_actor(state: CombatState, stats: PlayerCombatStats | None) -> str | None:
    order = state.turn_order
    if not order:
        return None
    start = order.index(state.current_turn_actor) if state.current_turn_actor in order else -1
    for step in range(1, len(order) + 1):
        candidate = order[(start + step) % len(order)]
        if _is_living(state, candidate, stats):
            return candidate
    return None


def _tick_cooldowns(state: CombatState) -> None:
    state.ability_cooldowns = {k: v - 1 for k, v in state.ability_cooldowns.items() if v > 1}
    state.actor_cooldowns = {
        actor_id: {k: v - 1 for k, v in cds.items() if v > 1}
        for actor_id, cds in state.actor_cooldowns.items()
    }


def _tick_bearer(state: CombatState, bearer: Combatant) -> list[str]:
    lines: list[str] = []
    if bearer.is_player:
        bearer.effects = tick_guard(bearer.effects)
        if state.player_defending and guard_reduction(bearer.effects) <= 0:
            state.player_defending = False
            lines.append("Your guard drops.")
    tick = tick_effects(bearer.effects)
    bearer.effects = tick.remaining
    if tick.dot_damage:
        dealt = bearer.take_damage(tick.dot_damage)
        who = "You take" if bearer.is_player else f"{bearer.name} takes"
        line = f"{who} {dealt} damage from lingering effects."
        lines.append(line)
        _log(state, bearer.name, bearer.id, "dot", line, damage=dealt)
    for name in tick.expired:
        lines.append(f"{name} wears off {'you' if bearer.is_player else bearer.name}.")
    return lines


def apply_turn_regen(
    state: CombatState,
    player_stats: PlayerCombatStats | None,
    actor_id: str,
    settings: CombatSettings | None = None,
) -> list[str]:
    """Accrue magicka and stamina for ``actor_id`` in place. Logs a ``regen`` entry."""
    settings = settings or get_settings()
    seconds = settings.seconds_per_turn
    gains: dict[str, int] = {}
    if actor_id == PLAYER_ID:
        if player_stats is None:
            return []
        for pool in ("magicka", "stamina"):
            rate = getattr(player_stats, f"{pool}_regen")
            current = getattr(player_stats, f"current_{pool}")
            maximum = getattr(player_stats, f"max_{pool}")
            gain = max(0, min(regen_amount(rate, seconds), maximum - current))
            if gain:
                setattr(player_stats, f"current_{pool}", current + gain)
                gains[pool] = gain
        name = state.player_name
    else:
        actor = state.find_actor(actor_id)
        if actor is None:
            return []
        for pool in ("magicka", "stamina"):
            current = getattr(actor, f"current_{pool}")
            maximum = getattr(actor, f"max_{pool}")
            if current is None or maximum is None:
                continue
            gain = max(0, min(regen_amount(REGEN_PER_SECOND, seconds), maximum - current))
            if gain:
                setattr(actor, f"current_{pool}", current + gain)
                gains[pool] = gain
        name = actor.name
    if not gains:
        return []
    who = "You recover" if name == "You" else f"{name} recovers"
    line = f"{who} " + " and ".join(f"{v} {k}" for k, v in gains.items()) + "."
    _log(state, name, actor_id, "regen", line)
    return [line]


def advance_turn(
    state: CombatState,
    player_stats: PlayerCombatStats | None = None,
    settings: CombatSettings | None = None,
) -> TurnAdvance:
    """Hand the turn to the next living combatant and run its turn-start upkeep.

    Upkeep order: effect ticks, summon decay and cooldowns (player turn only),
    regeneration, then list normalization. The combat-end check runs last.
    """
    settings = settings or get_settings()
    work = state.model_copy(deep=True)
    stats = player_stats.model_copy(deep=True) if player_stats is not None else None
    if work.is_over:
        return TurnAdvance(state=work, player_stats=stats, actor_id=work.current_turn_actor)

    next_id = _next_actor(work, stats)
    if next_id is None:
        work = check_combat_end(work, stats)
        return TurnAdvance(state=work, player_stats=stats, actor_id=work.current_turn_actor)

    lines: list[str] = []
    if next_id == PLAYER_ID:
        work.turn += 1
    work.current_turn_actor = next_id

    bearer = get_combatant(work, next_id, stats)
    lines += _tick_bearer(work, bearer)
    if next_id == PLAYER_ID:
        lines += apply_summon_decay(work)
        _tick_cooldowns(work)
    if bearer.is_alive:
        lines += apply_turn_regen(work, stats, next_id, settings)
    moved = normalize_misclassified(work)
    if moved:
        lines.append(f"{', '.join(moved)} {'rejoins' if len(moved) == 1 else 'rejoin'} your side.")

    work = check_combat_end(work, stats)
    logger.debug(f"Turn {work.turn}: {next_id} to act")
    return TurnAdvance(state=work, player_stats=stats, actor_id=next_id, narrative=lines)


def check_combat_end(state: CombatState, player_stats: PlayerCombatStats | None = None) -> CombatState:
    """Prune the dead and settle the result. Mutates and returns ``state``."""
    cleanup_dead_summons(state)
    state.turn_order = [
        t for t in state.turn_order
        if t == PLAYER_ID or (state.find_actor(t) is not None and state.find_actor(t).is_alive)
    ]
    if state.is_over:
        return state

    if player_stats is not None and player_stats.current_health <= 0:
        state.result = CombatResult.DEFEAT
        _log(state, state.player_name, PLAYER_ID, "combat_end", "You have been defeated.")
    elif not state.living_enemies():
        state.result = CombatResult.VICTORY
        # bound summons leave with the fight
        summon_ids = {a.id for a in state.allies if a.is_summon}
        state.allies = [a for a in state.allies if not a.is_summon]
        state.turn_order = [t for t in state.turn_order if t not in summon_ids]
        state.pending_summons = []
        _log(state, state.player_name, PLAYER_ID, "combat_end", "The last foe falls. Victory!")
    if state.is_over:
        logger.info(f"Combat {state.id} ended: {state.result.value}")
    return state


def _refuse(state: CombatState, stats: PlayerCombatStats | None, narrative: str) -> ActionOutcome:
    logger.info(f"Action rejected: {narrative}")
    return ActionOutcome(new_state=state, new_actor_stats=stats, narrative=narrative,
                         consumed_action=ConsumedAction.NONE, rejected=True)


def attempt_flee(state: CombatState, player_stats: PlayerCombatStats | None = None, rng=None) -> ActionOutcome:
    """Try to escape. A failed attempt still costs the main action."""
    if not state.flee_allowed:
        return _refuse(state, player_stats, "There is no escape from this fight.")
    work = state.model_copy(deep=True)
    odds = flee_chance(work.player_level, [e.level for e in work.living_enemies()])
    if chance(rng) < odds:
        work.result = CombatResult.FLED
        narrative = "You break away and escape the fight."
        _log(work, work.player_name, PLAYER_ID, "flee", narrative)
    else:
        narrative = "You try to flee, but your foes cut off your retreat."
        _log(work, work.player_name, PLAYER_ID, "flee_failed", narrative)
    return ActionOutcome(new_state=work, new_actor_stats=player_stats, narrative=narrative)


def surrender(state: CombatState, player_stats: PlayerCombatStats | None = None) -> ActionOutcome:
    if not state.surrender_allowed:
        return _refuse(state, player_stats, "Your enemies are in no mood to accept surrender.")
    work = state.model_copy(deep=True)
    work.result = CombatResult.SURRENDERED
    narrative = "You lower your weapon and yield."
    _log(work, work.player_name, PLAYER_ID, "surrender", narrative)
    return ActionOutcome(new_state=work, new_actor_stats=player_stats, narrative=narrative)
