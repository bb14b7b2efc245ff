"""Enemy behavior selection: pure decisions, no state changes."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from narrated_rpg.config import CombatSettings, get_settings
from narrated_rpg.mechanics.dice import chance
from narrated_rpg.mechanics.summons import count_active_summons
from narrated_rpg.models.ability import Ability, AbilityType, Resource, SummonEffect
from narrated_rpg.models.actor import Actor, Behavior
from narrated_rpg.models.character import PlayerCombatStats
from narrated_rpg.models.combat import PLAYER_ID, CombatState

logger = logging.getLogger(__name__)

REACTIVE_HEAL_THRESHOLD = 0.3
SUPPORT_ALLY_THRESHOLD = 0.5

REINFORCEMENTS: dict[str, str] = {
    "humanoid": "Sworn Bodyguard",
    "beast": "Pack Wolf",
    "undead": "Risen Thrall",
    "daedra": "Lesser Dremora",
    "dragon": "Dragon Priest Shade",
    "automaton": "Dwarven Spider",
}


@dataclass
class EnemyDecision:
    ability: Ability | None  # None means a plain basic attack
    target_id: str | None
    reason: str = ""


def basic_attack_for(enemy: Actor) -> Ability:
    return Ability(id="basic_attack", name="Attack", type=AbilityType.MELEE, damage=enemy.damage)


def reinforcement_ability(enemy: Actor) -> Ability:
    """The summon a boss falls back on when it has no conjuration of its own."""
    for ability in enemy.abilities:
        if ability.summon_effect is not None:
            return ability
    name = REINFORCEMENTS.get(enemy.type.value, "Sworn Bodyguard")
    return Ability(
        id="call_reinforcements",
        name="Call Reinforcements",
        type=AbilityType.UTILITY,
        effects=[SummonEffect(
            name=name,
            player_turns=3,
            base_health=max(10, enemy.max_health // 3),
            base_damage=max(3, enemy.damage // 2),
        )],
    )


def can_afford(enemy: Actor, ability: Ability, cooldowns: dict[str, int]) -> bool:
    """Resource and cooldown gate. Untracked pools (None) never block."""
    if cooldowns.get(ability.id, 0) > 0:
        return False
    pool = enemy.current_magicka if ability.cost_resource == Resource.MAGICKA else enemy.current_stamina
    return pool is None or pool >= ability.cost


def pick_target(enemy: Actor, state: CombatState, player_stats: PlayerCombatStats | None) -> str | None:
    """Weakest living opponent; the player counts when still standing."""
    on_enemy_side = state.is_enemy(enemy.id)
    candidates: list[tuple[int, str]] = []
    if on_enemy_side:
        if player_stats is None or player_stats.current_health > 0:
            candidates.append((player_stats.current_health if player_stats else 1 << 30, PLAYER_ID))
        candidates += [(a.current_health, a.id) for a in state.living_allies()]
    else:
        candidates += [(e.current_health, e.id) for e in state.living_enemies()]
    if not candidates:
        return None
    return min(candidates)[1]


def _weight(ability: Ability, behavior: Behavior) -> float:
    if behavior in (Behavior.AGGRESSIVE, Behavior.BERSERKER):
        return 1.0 + ability.damage
    if behavior == Behavior.DEFENSIVE:
        return 1.0 + 30.0 / (1 + ability.cost) + (10 if not ability.damage and ability.effects else 0)
    if behavior == Behavior.TACTICAL:
        return 5.0 + (15 if ability.effects else 0) + ability.damage * 0.5
    if behavior == Behavior.SUPPORT:
        return 5.0 + (20 if ability.is_healing or ability.summon_effect else 0)
    return 5.0


def _weighted_choice(options: list[tuple[Ability, float]], rng=None) -> Ability:
    total = sum(w for _, w in options)
    pick = chance(rng) * total
    for ability, w in options:
        pick -= w
        if pick < 0:
            return ability
    return options[-1][0]


def select_enemy_action(
    enemy: Actor,
    state: CombatState,
    player_stats: PlayerCombatStats | None = None,
    rng=None,
    settings: CombatSettings | None = None,
) -> EnemyDecision:
    """Choose what ``enemy`` attempts this turn.

    Priority: one-time boss reinforcement below the health threshold, reactive
    self-heal, support heals for a hurt friend, then a behavior-weighted pick
    among affordable abilities and the basic attack.
    """
    settings = settings or get_settings()
    cooldowns = state.actor_cooldowns.get(enemy.id, {})
    target_id = pick_target(enemy, state, player_stats)
    health_ratio = enemy.current_health / max(1, enemy.max_health)

    if (enemy.is_boss and health_ratio < settings.boss_summon_threshold
            and enemy.id not in state.boss_summons):
        return EnemyDecision(ability=reinforcement_ability(enemy), target_id=None, reason="boss_summon")

    usable = [a for a in enemy.abilities if can_afford(enemy, a, cooldowns)]
    if count_active_summons(state, enemy.id) > 0:
        usable = [a for a in usable if a.summon_effect is None]

    heals = [a for a in usable if a.is_healing]
    if heals and health_ratio < REACTIVE_HEAL_THRESHOLD and enemy.behavior in (
            Behavior.DEFENSIVE, Behavior.SUPPORT, Behavior.TACTICAL):
        return EnemyDecision(ability=heals[0], target_id=enemy.id, reason="self_heal")
    if heals and enemy.behavior == Behavior.SUPPORT:
        hurt = [e for e in state.living_enemies()
                if e.id != enemy.id and e.current_health / max(1, e.max_health) < SUPPORT_ALLY_THRESHOLD]
        if state.is_enemy(enemy.id) and hurt:
            friend = min(hurt, key=lambda e: e.current_health)
            return EnemyDecision(ability=heals[0], target_id=friend.id, reason="support_heal")

    offensive = [a for a in usable if not a.is_healing]
    if enemy.behavior == Behavior.BERSERKER and offensive:
        best = max(offensive, key=lambda a: a.damage)
        if best.damage > enemy.damage:
            return EnemyDecision(ability=best, target_id=target_id, reason="berserk")

    last = state.last_actor_actions.get(enemy.id)
    options = [(a, _weight(a, enemy.behavior)) for a in offensive if a.id != last]
    if not options:
        options = [(a, _weight(a, enemy.behavior)) for a in offensive]
    if enemy.damage > 0 or not options:
        options.append((basic_attack_for(enemy), _weight(basic_attack_for(enemy), enemy.behavior)))

    choice = _weighted_choice(options, rng)
    logger.debug(f"{enemy.name} ({enemy.behavior.value}) picks {choice.id} from {[a.id for a, _ in options]}")
    if choice.id == "basic_attack":
        return EnemyDecision(ability=None, target_id=target_id, reason="basic")
    return EnemyDecision(ability=choice, target_id=target_id, reason=enemy.behavior.value)
