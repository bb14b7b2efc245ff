"""Action resolution: one actor's chosen action against a combat snapshot.

Every entry point works on deep copies of the state and player stats it is
given. A rejected action hands the caller's own objects back untouched,
with a narrative that explains the refusal.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from narrated_rpg.config import CombatSettings, get_settings
from narrated_rpg.engine.combatants import (
    Combatant,
    friends_of,
    get_combatant,
    opponents_of,
    player_view,
)
from narrated_rpg.engine.turns import attempt_flee, surrender
from narrated_rpg.mechanics.arrows import arrow_kind, resolve_arrow
from narrated_rpg.mechanics.combat_math import (
    RollTier,
    apply_armor,
    apply_guard,
    compute_damage_from_nat,
    dodge_check,
    elemental_multiplier,
    hit_location,
    is_hit,
    modify_damage,
    percent_check,
    roll_tier,
    stamina_multiplier,
)
from narrated_rpg.mechanics.companion import companion_ai_action
from narrated_rpg.mechanics.conditions import (
    add_effect,
    consume_stun,
    describe_effect,
    guard_reduction,
    is_stunned,
    stat_modifier,
)
from narrated_rpg.mechanics.dice import chance, resolve_outcome_roll
from narrated_rpg.mechanics.enemy_ai import basic_attack_for, select_enemy_action
from narrated_rpg.mechanics.perks import guard_rounds, summon_cap
from narrated_rpg.mechanics.potions import apply_restore, resolve_potion_effect
from narrated_rpg.mechanics.summons import count_active_summons, create_summons
from narrated_rpg.models.ability import (
    Ability,
    AbilityType,
    AoeDamageEffect,
    AoeHealEffect,
    AoeTarget,
    BuffEffect,
    DrainEffect,
    GuardEffect,
    HealEffect,
    Resource,
    StunEffect,
    SummonEffect,
)
from narrated_rpg.models.action import (
    ActionKind,
    ActionOutcome,
    AoeHit,
    AoeSummary,
    ConsumedAction,
)
from narrated_rpg.models.character import CharacterSheet, PlayerCombatStats
from narrated_rpg.models.combat import PLAYER_ID, CombatState, LogEntry
from narrated_rpg.models.item import InventoryItem

logger = logging.getLogger(__name__)

CRIT_STUN_NAME = "Staggered"
_SELF_EFFECTS = (BuffEffect, HealEffect, SummonEffect, GuardEffect, AoeDamageEffect, AoeHealEffect)


@dataclass
class _Context:
    state: CombatState
    stats: Optional[PlayerCombatStats]
    settings: CombatSettings
    rng: Any = None
    character: Optional[CharacterSheet] = None


@dataclass
class _Resolution:
    narrative: str
    consumed: ConsumedAction = ConsumedAction.MAIN
    rejected: bool = False
    no_op: bool = False
    aoe_summary: Optional[AoeSummary] = None


# ---------------------------------------------------------------------------
# Small helpers
# ---------------------------------------------------------------------------

def _subject(c: Combatant) -> str:
    return "You" if c.is_player else c.name


def _verb(c: Combatant, base: str, third: str | None = None) -> str:
    return base if c.is_player else (third or f"{base}s")


def _log(ctx: _Context, actor: Combatant, action: str, *, target: Combatant | None = None,
         auto: bool = False, **fields: Any) -> None:
    ctx.state.combat_log.append(LogEntry(
        turn=ctx.state.turn,
        actor=actor.name,
        actor_id=actor.id,
        action=action,
        target=target.name if target else None,
        target_id=target.id if target else None,
        auto=auto,
        **fields,
    ))


def _reject(state: CombatState, stats: PlayerCombatStats | None, narrative: str) -> ActionOutcome:
    logger.info(f"Action rejected: {narrative}")
    return ActionOutcome(
        new_state=state,
        new_actor_stats=stats,
        narrative=narrative,
        consumed_action=ConsumedAction.NONE,
        rejected=True,
    )


def _copy_inputs(state: CombatState, stats: PlayerCombatStats | None) -> tuple[CombatState, PlayerCombatStats | None]:
    return state.model_copy(deep=True), stats.model_copy(deep=True) if stats is not None else None


def _find_item(inventory: list[InventoryItem] | None, item_id: str | None) -> InventoryItem | None:
    for item in inventory or []:
        if item.id == item_id:
            return item
    return None


def _is_magic(ability: Ability) -> bool:
    return ability.type == AbilityType.MAGIC or (
        ability.type == AbilityType.AEO and ability.cost_resource == Resource.MAGICKA
    )


def _needs_opponent(ability: Ability) -> bool:
    if ability.summon_effect is not None or ability.is_aoe or ability.is_healing:
        return False
    if ability.damage > 0:
        return True
    return any(not isinstance(e, _SELF_EFFECTS) for e in ability.effects)


def _stunned_turn(ctx: _Context, actor: Combatant) -> str:
    actor.effects = consume_stun(actor.effects)
    narrative = f"{_subject(actor)} {_verb(actor, 'are', 'is')} stunned and cannot act."
    _log(ctx, actor, "stunned", narrative=narrative)
    logger.info(f"{actor.name} skips a turn while stunned")
    return narrative


def _skip(ctx: _Context, actor: Combatant, reason: str = "", auto: bool = False) -> str:
    narrative = reason or f"{_subject(actor)} {_verb(actor, 'hold')} back and {_verb(actor, 'wait')}."
    _log(ctx, actor, "skip", narrative=narrative, auto=auto)
    return narrative


# ---------------------------------------------------------------------------
# Damage
# ---------------------------------------------------------------------------

def _hit_amount(attacker: Combatant, target: Combatant, ability: Ability, base: float,
                nat: int, scale: float = 1.0) -> int:
    """Damage one landed hit does to ``target`` after every modifier."""
    roll = compute_damage_from_nat(base, attacker.level, nat)
    if roll.amount <= 0:
        return 0
    flat, percent = stat_modifier(attacker.effects, "damage")
    amount = modify_damage(roll.amount, flat, percent) * scale
    magic = _is_magic(ability)
    amount *= elemental_multiplier(ability.element, target.weaknesses, target.resistances, magic)
    if magic and target.magic_resist > 0:
        amount *= 1 - min(target.magic_resist, 75) / 100
    dealt = apply_armor(amount, target.armor)
    if target.is_player:
        dealt = apply_guard(dealt, guard_reduction(target.effects))
    return dealt


def _apply_rider_effects(ctx: _Context, user: Combatant, target: Combatant | None,
                         ability: Ability) -> list[str]:
    """Status effects an ability carries on a successful use."""
    lines: list[str] = []
    for effect in ability.effects:
        if isinstance(effect, (SummonEffect, AoeDamageEffect, AoeHealEffect, GuardEffect)):
            continue
        if not percent_check(effect.chance, ctx.rng):
            continue
        if isinstance(effect, BuffEffect):
            user.effects = add_effect(user.effects, effect, source=ability.id)
            lines.append(f"{_subject(user)} {_verb(user, 'gain')} {describe_effect(effect)}.")
        elif isinstance(effect, HealEffect):
            gain = user.restore_health(effect.value)
            if gain:
                lines.append(f"{_subject(user)} {_verb(user, 'recover')} {gain} health.")
        elif target is None or not target.is_alive:
            continue
        elif isinstance(effect, DrainEffect):
            if effect.stat in (Resource.MAGICKA.value, Resource.STAMINA.value):
                drained = target.spend(Resource(effect.stat), effect.value)
                if drained:
                    lines.append(f"{target.name} loses {drained} {effect.stat}.")
        else:
            target.effects = add_effect(target.effects, effect, source=user.id)
            lines.append(f"{target.name} suffers {describe_effect(effect)}.")
    return lines


def _command_volley(ctx: _Context, target: Combatant) -> str:
    """One living ally makes an immediate basic attack on ``target``."""
    allies = ctx.state.living_allies()
    if not allies or not target.is_alive:
        return "No ally is able to answer the call."
    ally = Combatant(state=ctx.state, actor=allies[0], stats=ctx.stats)
    ability = basic_attack_for(ally.actor)
    nat = resolve_outcome_roll(None, ctx.rng)
    tier = roll_tier(nat)
    dealt = target.take_damage(_hit_amount(ally, target, ability, ability.damage, nat)) if is_hit(tier) else 0
    line = (f"{ally.name} strikes {target.name} for {dealt} damage." if dealt
            else f"{ally.name} lunges at {target.name} but misses.")
    _log(ctx, ally, ability.name, target=target, damage=dealt, nat=nat, roll_tier=tier.value,
         is_crit=tier == RollTier.CRIT, narrative=line, auto=True)
    return line


# ---------------------------------------------------------------------------
# Ability kinds
# ---------------------------------------------------------------------------

def _resolve_strike(ctx: _Context, user: Combatant, ability: Ability, target: Combatant, nat: int,
                    scale: float, low_stamina: bool, arrow: str | None, auto: bool) -> _Resolution:
    tier = roll_tier(nat)
    subject = _subject(user)
    crit = tier == RollTier.CRIT
    parts: list[str] = []
    dealt = 0

    if not is_hit(tier):
        if tier == RollTier.FAIL:
            parts.append(f"{subject} {_verb(user, 'stumble')} and {ability.name} goes wide of {target.name}.")
        else:
            parts.append(f"{subject} {_verb(user, 'miss', 'misses')} {target.name} with {ability.name}.")
    elif not crit and dodge_check(target.dodge_chance, ctx.rng):
        parts.append(f"{target.name} {'dodge' if target.is_player else 'dodges'} {ability.name}.")
    else:
        dealt = target.take_damage(_hit_amount(user, target, ability, ability.damage, nat, scale))
        target_name = "you" if target.is_player else target.name
        parts.append(f"{subject} {_verb(user, 'hit')} {target_name} in the {hit_location(nat)} "
                     f"with {ability.name} for {dealt} damage.")
        if crit:
            parts.append("Critical hit!")
        parts += _apply_rider_effects(ctx, user, target, ability)
        if crit and ability.type in (AbilityType.MELEE, AbilityType.RANGED) and target.is_alive:
            if chance(ctx.rng) < ctx.settings.crit_stun_chance:
                target.effects = add_effect(target.effects, StunEffect(name=CRIT_STUN_NAME, duration=1),
                                            source=user.id)
                parts.append(f"{target.name} {'are' if target.is_player else 'is'} staggered by the blow.")

    if arrow is not None:
        outcome = resolve_arrow(arrow, dealt, tier, ctx.rng)
        if outcome.bonus_damage and target.is_alive:
            dealt += target.take_damage(outcome.bonus_damage)
        for effect in outcome.effects:
            if target.is_alive:
                target.effects = add_effect(target.effects, effect, source=user.id)
        parts.append(outcome.narrative)
        if outcome.ally_attack and is_hit(tier):
            parts.append(_command_volley(ctx, target))

    if low_stamina:
        parts.append(f"{subject} {_verb(user, 'are', 'is')} exhausted, and the attack lands weakly.")
    if dealt and not target.is_alive:
        parts.append(f"{target.name} {'fall' if target.is_player else 'falls'}.")

    narrative = " ".join(p for p in parts if p)
    _log(ctx, user, ability.name, target=target, damage=dealt, nat=nat, roll_tier=tier.value,
         is_crit=crit, narrative=narrative, auto=auto)
    return _Resolution(narrative)


def _heal_target(ctx: _Context, user: Combatant, target_id: str | None) -> Combatant:
    """Healing lands on an explicitly named friend, otherwise on the caster."""
    if target_id and target_id != user.id:
        for friend in friends_of(ctx.state, user, ctx.stats):
            if friend.id == target_id:
                return friend
        logger.debug(f"Heal target {target_id!r} is not a friend of {user.id}; redirecting to caster")
    return user


def _resolve_heal(ctx: _Context, user: Combatant, ability: Ability, target_id: str | None,
                  nat: int, auto: bool) -> _Resolution:
    target = _heal_target(ctx, user, target_id)
    tier = roll_tier(nat)
    if tier == RollTier.FAIL:
        narrative = f"{_subject(user)} {_verb(user, 'fumble')} the words and {ability.name} fizzles."
        gain = 0
    else:
        gain = target.restore_health(ability.heal_amount)
        who = ("yourself" if user.is_player else "itself") if target is user else target.name
        narrative = f"{_subject(user)} {_verb(user, 'cast')} {ability.name} on {who}, restoring {gain} health."
    _log(ctx, user, ability.name, target=target, healing=gain, nat=nat, roll_tier=tier.value,
         narrative=narrative, auto=auto)
    return _Resolution(narrative)


def _aoe_targets(ctx: _Context, user: Combatant, scope: AoeTarget, healing: bool) -> list[Combatant]:
    friends = friends_of(ctx.state, user, ctx.stats)
    foes = opponents_of(ctx.state, user, ctx.stats)
    if scope == AoeTarget.ALL:
        return foes + friends if healing else foes + [f for f in friends if f.id != user.id]
    if scope == AoeTarget.ALL_ALLIES:
        return friends
    return foes


def _resolve_aoe(ctx: _Context, user: Combatant, ability: Ability, nat: int, scale: float,
                 auto: bool) -> _Resolution:
    summary = AoeSummary()
    damage_effects = [e for e in ability.effects if isinstance(e, AoeDamageEffect)]
    heal_effects = [e for e in ability.effects if isinstance(e, AoeHealEffect)]
    if not damage_effects and not heal_effects and ability.damage > 0:
        damage_effects = [AoeDamageEffect(value=ability.damage)]

    for effect in damage_effects:
        for target in _aoe_targets(ctx, user, effect.aoe_target, healing=False):
            if not target.is_alive:
                continue
            dealt = target.take_damage(_hit_amount(user, target, ability, effect.value, nat, scale))
            summary.damaged.append(AoeHit(id=target.id, name=target.name, amount=dealt))
    for effect in heal_effects:
        for target in _aoe_targets(ctx, user, effect.aoe_target, healing=True):
            gain = target.restore_health(max(0, effect.value))
            summary.healed.append(AoeHit(id=target.id, name=target.name, amount=gain))

    tier = roll_tier(nat)
    total_damage = sum(h.amount for h in summary.damaged)
    total_healing = sum(h.amount for h in summary.healed)
    parts = [f"{_subject(user)} {_verb(user, 'unleash', 'unleashes')} {ability.name}."]
    if summary.damaged:
        hits = ", ".join(f"{h.name} ({h.amount})" for h in summary.damaged)
        parts.append(f"It strikes {hits}." if total_damage else "It washes over its targets harmlessly.")
    if summary.healed:
        parts.append("Healing flows to " + ", ".join(f"{h.name} (+{h.amount})" for h in summary.healed) + ".")
    fallen = [h.name for h in summary.damaged if h.amount and not _alive(ctx, h.id)]
    if fallen:
        parts.append(f"{', '.join(fallen)} {'falls' if len(fallen) == 1 else 'fall'}.")
    narrative = " ".join(parts)
    _log(ctx, user, ability.name, damage=total_damage, healing=total_healing, nat=nat,
         roll_tier=tier.value, is_crit=tier == RollTier.CRIT, effect="aoe", narrative=narrative, auto=auto)
    return _Resolution(narrative, aoe_summary=summary)


def _alive(ctx: _Context, combatant_id: str) -> bool:
    found = get_combatant(ctx.state, combatant_id, ctx.stats)
    return found is not None and found.is_alive


def _resolve_summon(ctx: _Context, user: Combatant, ability: Ability, effect: SummonEffect,
                    nat: int, auto: bool) -> _Resolution:
    result = create_summons(ctx.state, effect, user.id, user.level, nat, ctx.settings, caster_name=_subject(user))
    tier = roll_tier(nat)
    _log(ctx, user, ability.name, nat=nat, roll_tier=tier.value, is_crit=tier == RollTier.CRIT,
         effect="summon", narrative=result.narrative, auto=auto)
    return _Resolution(result.narrative, consumed=ConsumedAction.BONUS)


def _resolve_utility(ctx: _Context, user: Combatant, ability: Ability, target: Combatant | None,
                     nat: int, auto: bool) -> _Resolution:
    tier = roll_tier(nat)
    if tier == RollTier.FAIL:
        narrative = f"{_subject(user)} {_verb(user, 'fumble')} {ability.name}."
    else:
        lines = _apply_rider_effects(ctx, user, target, ability)
        narrative = " ".join([f"{_subject(user)} {_verb(user, 'use')} {ability.name}."] + lines)
    _log(ctx, user, ability.name, target=target, nat=nat, roll_tier=tier.value, narrative=narrative, auto=auto)
    return _Resolution(narrative)


def _pick_opponent(ctx: _Context, user: Combatant, target_id: str | None) -> Combatant | None:
    foes = opponents_of(ctx.state, user, ctx.stats)
    if target_id is None:
        return foes[0] if foes else None
    for foe in foes:
        if foe.id == target_id:
            return foe
    return None


def _use_ability(ctx: _Context, user: Combatant, ability: Ability, target_id: str | None = None,
                 outcome_roll: int | None = None, arrow: str | None = None,
                 auto: bool = False) -> _Resolution:
    """Gate, pay for, roll and apply one ability on the working copy in ``ctx``."""
    remaining = user.cooldowns.get(ability.id, 0)
    if remaining > 0:
        return _Resolution(f"{ability.name} is not ready yet ({remaining} more turn(s)).", rejected=True)

    summon = ability.summon_effect
    if summon is not None:
        cap = summon_cap(ctx.character, ctx.settings) if user.is_player else ctx.settings.base_summon_cap
        active = count_active_summons(ctx.state, user.id)
        if active >= cap:
            return _Resolution(
                f"{_subject(user)} cannot bind another summon: {active} of {cap} already "
                f"{'answers' if active == 1 else 'answer'} the call.",
                rejected=True,
            )

    target = None
    if _needs_opponent(ability):
        target = _pick_opponent(ctx, user, target_id)
        if target is None:
            return _Resolution(f"There is no valid target for {ability.name}.", rejected=True)

    resource = ability.cost_resource
    pool = user.pool(resource)
    scale = 1.0
    low_stamina = False
    if ability.unarmed or ability.cost <= 0 or pool is None:
        pass
    elif resource == Resource.STAMINA and ability.type in (AbilityType.MELEE, AbilityType.RANGED, AbilityType.AEO):
        scale = stamina_multiplier(pool, ability.cost, ctx.settings.low_stamina_floor)
        low_stamina = scale < 1
    elif pool < ability.cost:
        return _Resolution(f"Not enough {resource.value} for {ability.name} ({pool}/{ability.cost}).",
                           rejected=True)

    nat = resolve_outcome_roll(outcome_roll, ctx.rng)
    tier = roll_tier(nat)
    logger.debug(f"{user.name} uses {ability.id}: nat {nat} ({tier.value}), stamina scale {scale:.2f}")

    if ability.is_aoe and tier == RollTier.FAIL:
        return _Resolution(
            f"{_subject(user)} {_verb(user, 'lose')} control of {ability.name}; the spell collapses.",
            no_op=True,
        )

    if not ability.unarmed:
        user.spend(resource, ability.cost)
    if ability.cooldown > 0:
        # one tick happens at the next player-turn start before the ability is checked again
        user.cooldowns[ability.id] = ability.cooldown + 1

    if summon is not None:
        return _resolve_summon(ctx, user, ability, summon, nat, auto)
    if ability.is_aoe:
        return _resolve_aoe(ctx, user, ability, nat, scale, auto)
    if ability.is_healing:
        return _resolve_heal(ctx, user, ability, target_id, nat, auto)
    if ability.damage <= 0:
        return _resolve_utility(ctx, user, ability, target, nat, auto)
    return _resolve_strike(ctx, user, ability, target, nat, scale, low_stamina, arrow, auto)


# ---------------------------------------------------------------------------
# Player actions
# ---------------------------------------------------------------------------

def _defend(ctx: _Context, original: CombatState, original_stats: PlayerCombatStats | None) -> ActionOutcome:
    if ctx.state.player_guard_used:
        return _reject(original, original_stats, "You have already used Tactical Guard this combat.")
    rounds = guard_rounds(ctx.character, ctx.settings)
    guard = GuardEffect(value=ctx.settings.guard_damage_reduction, duration=rounds)
    ctx.state.player_active_effects = add_effect(ctx.state.player_active_effects, guard,
                                                 source=PLAYER_ID, turns=rounds)
    ctx.state.player_defending = True
    ctx.state.player_guard_used = True
    narrative = (f"You settle into Tactical Guard; incoming blows are blunted for "
                 f"{rounds} round{'s' if rounds != 1 else ''}.")
    player = player_view(ctx.state, ctx.stats)
    _log(ctx, player, "defend", effect=guard.name, narrative=narrative)
    return ActionOutcome(new_state=ctx.state, new_actor_stats=ctx.stats, narrative=narrative,
                         consumed_action=ConsumedAction.BONUS)


def _use_item(ctx: _Context, original: CombatState, original_stats: PlayerCombatStats | None,
              item: InventoryItem | None) -> ActionOutcome:
    if item is None or item.quantity <= 0:
        return _reject(original, original_stats, "You reach for it, but there is none left.")
    if ctx.stats is None:
        return _reject(original, original_stats, f"You cannot use {item.name} right now.")
    effect = resolve_potion_effect(item, ctx.settings.food_heal)
    if effect.stat is None:
        return _reject(original, original_stats, f"{item.name} does nothing useful in a fight.")

    gain = apply_restore(ctx.stats, effect.stat, effect.amount)
    used = item.model_copy(update={"quantity": item.quantity - 1})
    narrative = f"You use {item.name} and recover {gain} {effect.stat}."
    player = player_view(ctx.state, ctx.stats)
    _log(ctx, player, "item", healing=gain if effect.stat == "health" else 0, effect=effect.stat,
         narrative=narrative)
    return ActionOutcome(new_state=ctx.state, new_actor_stats=ctx.stats, narrative=narrative,
                         used_item=used, consumed_action=ConsumedAction.BONUS)


def execute_player_action(
    state: CombatState,
    player_stats: PlayerCombatStats | None,
    kind: ActionKind | str,
    target_id: str | None = None,
    ability_id: str | None = None,
    item_id: str | None = None,
    inventory: list[InventoryItem] | None = None,
    outcome_roll: int | None = None,
    character: CharacterSheet | None = None,
    rng=None,
    settings: CombatSettings | None = None,
) -> ActionOutcome:
    """Resolve the player's action.

    ``outcome_roll`` (1..20) pins the d20; otherwise one is drawn from ``rng``.
    Special arrows ride on a ranged ``attack`` via ``item_id``; potions and food
    use ``kind="item"``.
    """
    settings = settings or get_settings()
    kind = ActionKind(kind)
    if state.is_over:
        return _reject(state, player_stats, "The battle is already over.")

    work, stats = _copy_inputs(state, player_stats)
    ctx = _Context(state=work, stats=stats, settings=settings, rng=rng, character=character)
    player = player_view(work, stats)

    if is_stunned(work.player_active_effects):
        narrative = _stunned_turn(ctx, player)
        return ActionOutcome(new_state=work, new_actor_stats=stats, narrative=narrative,
                             turn_forfeited=True)
    if kind == ActionKind.FLEE:
        return attempt_flee(state, player_stats, rng=rng)
    if kind == ActionKind.SURRENDER:
        return surrender(state, player_stats)
    if kind == ActionKind.SKIP:
        narrative = _skip(ctx, player)
        return ActionOutcome(new_state=work, new_actor_stats=stats, narrative=narrative)
    if kind == ActionKind.DEFEND:
        return _defend(ctx, state, player_stats)
    if kind == ActionKind.ITEM:
        return _use_item(ctx, state, player_stats, _find_item(inventory, item_id))

    ability_id = ability_id or ("basic_attack" if kind == ActionKind.ATTACK else None)
    abilities = stats.abilities if stats else []
    ability = next((a for a in abilities if a.id == ability_id), None)
    if ability is None:
        return _reject(state, player_stats, f"You don't know how to do that ({ability_id}).")

    arrow_item = None
    arrow = None
    if item_id and kind == ActionKind.ATTACK:
        arrow_item = _find_item(inventory, item_id)
        if arrow_item is None or arrow_item.quantity <= 0:
            return _reject(state, player_stats, "Your quiver holds none of those arrows.")
        if ability.type != AbilityType.RANGED:
            return _reject(state, player_stats, f"{arrow_item.name} can only be loosed from a bow.")
        arrow = arrow_kind(arrow_item)
        if arrow is None:
            return _reject(state, player_stats, f"{arrow_item.name} is not special ammunition.")

    result = _use_ability(ctx, player, ability, target_id, outcome_roll, arrow)
    if result.rejected:
        return _reject(state, player_stats, result.narrative)
    if result.no_op:
        return ActionOutcome(new_state=state, new_actor_stats=player_stats, narrative=result.narrative)

    work.last_actor_actions[PLAYER_ID] = ability.id
    used_item = None
    if arrow_item is not None:
        used_item = arrow_item.model_copy(update={"quantity": arrow_item.quantity - 1})
    return ActionOutcome(
        new_state=work,
        new_actor_stats=stats,
        narrative=result.narrative,
        used_item=used_item,
        aoe_summary=result.aoe_summary,
        consumed_action=result.consumed,
        bonus_consumed=arrow_item is not None,
    )


resolve_action = execute_player_action


# ---------------------------------------------------------------------------
# Companion and enemy turns
# ---------------------------------------------------------------------------

def execute_companion_action(
    state: CombatState,
    companion_id: str,
    player_stats: PlayerCombatStats | None = None,
    ability_id: str | None = None,
    target_id: str | None = None,
    outcome_roll: int | None = None,
    rng=None,
    settings: CombatSettings | None = None,
) -> ActionOutcome:
    """Act for an ally. Without ``ability_id`` the companion AI chooses."""
    settings = settings or get_settings()
    found = state.find_actor(companion_id)
    if found is None or state.is_enemy(companion_id) or not found.is_alive:
        return _reject(state, player_stats, f"{companion_id} cannot act.")

    work, stats = _copy_inputs(state, player_stats)
    ctx = _Context(state=work, stats=stats, settings=settings, rng=rng)
    ally = get_combatant(work, companion_id, stats)
    if is_stunned(ally.effects):
        return ActionOutcome(new_state=work, new_actor_stats=stats, narrative=_stunned_turn(ctx, ally),
                             turn_forfeited=True)

    auto = ability_id is None
    if auto:
        decision = companion_ai_action(ally.actor, work, stats)
        ability = decision.ability or basic_attack_for(ally.actor)
        target_id = decision.target_id
        if target_id is None:
            narrative = _skip(ctx, ally, f"{ally.name} finds nothing to do.", auto=True)
            return ActionOutcome(new_state=work, new_actor_stats=stats, narrative=narrative)
    else:
        ability = next((a for a in ally.actor.abilities if a.id == ability_id), None)
        if ability is None and ability_id == "basic_attack":
            ability = basic_attack_for(ally.actor)
        if ability is None:
            return _reject(state, player_stats, f"{ally.name} does not know {ability_id}.")

    result = _use_ability(ctx, ally, ability, target_id, outcome_roll, auto=auto)
    if result.rejected and auto and ability.id != "basic_attack":
        logger.info(f"{ally.name} falls back to a basic attack: {result.narrative}")
        ability = basic_attack_for(ally.actor)
        result = _use_ability(ctx, ally, ability, target_id, outcome_roll, auto=True)
    if result.rejected:
        return _reject(state, player_stats, result.narrative)
    if result.no_op:
        return ActionOutcome(new_state=state, new_actor_stats=player_stats, narrative=result.narrative)
    work.last_actor_actions[companion_id] = ability.id
    return ActionOutcome(new_state=work, new_actor_stats=stats, narrative=result.narrative,
                         aoe_summary=result.aoe_summary, consumed_action=result.consumed)


def execute_enemy_turn(
    state: CombatState,
    enemy_id: str,
    player_stats: PlayerCombatStats | None = None,
    outcome_roll: int | None = None,
    rng=None,
    settings: CombatSettings | None = None,
) -> ActionOutcome:
    """Let an enemy pick and resolve its action for this turn."""
    settings = settings or get_settings()
    found = state.find_actor(enemy_id)
    if found is None or not state.is_enemy(enemy_id) or not found.is_alive:
        return _reject(state, player_stats, f"{enemy_id} cannot act.")

    work, stats = _copy_inputs(state, player_stats)
    ctx = _Context(state=work, stats=stats, settings=settings, rng=rng)
    enemy = get_combatant(work, enemy_id, stats)
    if is_stunned(enemy.effects):
        return ActionOutcome(new_state=work, new_actor_stats=stats, narrative=_stunned_turn(ctx, enemy),
                             turn_forfeited=True)

    decision = select_enemy_action(enemy.actor, work, stats, rng, settings)
    if decision.reason == "boss_summon":
        work.boss_summons[enemy_id] = decision.ability.id
    ability = decision.ability or basic_attack_for(enemy.actor)
    result = _use_ability(ctx, enemy, ability, decision.target_id, outcome_roll, auto=True)
    if result.rejected and ability.id != "basic_attack":
        logger.info(f"{enemy.name} falls back to a basic attack: {result.narrative}")
        ability = basic_attack_for(enemy.actor)
        result = _use_ability(ctx, enemy, ability, decision.target_id, outcome_roll, auto=True)
    if result.rejected:
        narrative = _skip(ctx, enemy, f"{enemy.name} hesitates.", auto=True)
        return ActionOutcome(new_state=work, new_actor_stats=stats, narrative=narrative)
    if result.no_op:
        return ActionOutcome(new_state=state, new_actor_stats=player_stats, narrative=result.narrative)
    work.last_actor_actions[enemy_id] = ability.id
    return ActionOutcome(new_state=work, new_actor_stats=stats, narrative=result.narrative,
                         aoe_summary=result.aoe_summary, consumed_action=result.consumed)


def skip_actor_turn(
    state: CombatState,
    actor_id: str,
    player_stats: PlayerCombatStats | None = None,
    reason: str = "",
) -> ActionOutcome:
    """Log a skip for any combatant under its display name."""
    work, stats = _copy_inputs(state, player_stats)
    ctx = _Context(state=work, stats=stats, settings=get_settings())
    actor = get_combatant(work, actor_id, stats)
    if actor is None:
        return _reject(state, player_stats, f"{actor_id} is not in this fight.")
    if is_stunned(actor.effects):
        return ActionOutcome(new_state=work, new_actor_stats=stats, narrative=_stunned_turn(ctx, actor),
                             turn_forfeited=True)
    narrative = _skip(ctx, actor, reason)
    return ActionOutcome(new_state=work, new_actor_stats=stats, narrative=narrative)
