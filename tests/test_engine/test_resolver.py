"""Tests for src/narrated_rpg/engine/resolver.py."""
from __future__ import annotations

import pytest

from narrated_rpg.config import CombatSettings
from narrated_rpg.engine.resolver import (
    execute_enemy_turn,
    execute_player_action,
    skip_actor_turn,
)
from narrated_rpg.engine.turns import initialize_combat
from narrated_rpg.mechanics.abilities import calculate_player_combat_stats
from narrated_rpg.mechanics.conditions import add_effect, is_stunned
from narrated_rpg.models.ability import Ability, AbilityType, AoeDamageEffect, StunEffect, SummonEffect
from narrated_rpg.models.action import ActionKind, ConsumedAction
from narrated_rpg.models.character import CharacterSheet, PlayerCombatStats
from narrated_rpg.models.combat import CombatResult

SETTINGS = CombatSettings()

HEAL = Ability(id="healing", name="Healing", type=AbilityType.MAGIC, cost=20, heal=20)
STORM = Ability(id="fire_storm", name="Fire Storm", type=AbilityType.AEO, cost=30, cooldown=2,
                effects=[AoeDamageEffect(value=30)])
FAMILIAR = Ability(id="conjure_familiar", name="Conjure Familiar", type=AbilityType.MAGIC, cost=35,
                   effects=[SummonEffect(name="Spectral Wolf")])


def _caster(*abilities: Ability, **vitals) -> PlayerCombatStats:
    fields = dict(max_health=100, current_health=100, max_magicka=100, current_magicka=100,
                  max_stamina=100, current_stamina=100)
    fields.update(vitals)
    return PlayerCombatStats(abilities=list(abilities), **fields)


def _bandit(state):
    return state.enemies[0]


class TestBasicAttack:
    def test_mid_roll_hit(self, duel_state, player_stats):
        outcome = execute_player_action(duel_state, player_stats, ActionKind.ATTACK, outcome_roll=12)
        assert not outcome.rejected
        assert outcome.consumed_action == ConsumedAction.MAIN
        assert _bandit(outcome.new_state).current_health == 40
        assert outcome.new_actor_stats.current_stamina == 90
        assert outcome.new_state.combat_log[-1].nat == 12

    def test_inputs_are_not_mutated(self, duel_state, player_stats):
        execute_player_action(duel_state, player_stats, "attack", outcome_roll=12)
        assert _bandit(duel_state).current_health == 50
        assert player_stats.current_stamina == 100
        assert len(duel_state.combat_log) == 1

    def test_miss_deals_nothing(self, duel_state, player_stats):
        outcome = execute_player_action(duel_state, player_stats, "attack", outcome_roll=3)
        assert _bandit(outcome.new_state).current_health == 50
        assert "miss" in outcome.narrative

    def test_low_stamina_weakens_the_blow(self, duel_state, player_stats):
        player_stats.current_stamina = 0
        outcome = execute_player_action(duel_state, player_stats, "attack", outcome_roll=12)
        assert "exhausted" in outcome.narrative
        assert _bandit(outcome.new_state).current_health == 48

    def test_unarmed_strike_ignores_stamina(self, duel_state, player_stats):
        player_stats.current_stamina = 0
        player_stats.abilities.append(
            Ability(id="unarmed_strike", name="Unarmed Strike", unarmed=True, damage=8))
        outcome = execute_player_action(duel_state, player_stats, "attack", ability_id="unarmed_strike",
                                        outcome_roll=12)
        assert "exhausted" not in outcome.narrative
        assert _bandit(outcome.new_state).current_health == 42

    def test_unknown_ability_is_rejected(self, duel_state, player_stats):
        outcome = execute_player_action(duel_state, player_stats, "magic", ability_id="fireball")
        assert outcome.rejected
        assert outcome.new_state is duel_state
        assert outcome.consumed_action == ConsumedAction.NONE

    def test_finished_battle_rejects(self, duel_state, player_stats):
        duel_state.result = CombatResult.VICTORY
        assert execute_player_action(duel_state, player_stats, "attack").rejected


class TestCriticalStagger:
    def test_player_crit_can_stun(self, duel_state, player_stats, scripted):
        outcome = execute_player_action(duel_state, player_stats, "attack", outcome_roll=20,
                                        rng=scripted([0.1]), settings=SETTINGS)
        bandit = _bandit(outcome.new_state)
        assert bandit.current_health == 30
        assert is_stunned(bandit.active_effects)
        assert "Critical hit!" in outcome.narrative

    def test_crit_stun_roll_can_fail(self, duel_state, player_stats, scripted):
        outcome = execute_player_action(duel_state, player_stats, "attack", outcome_roll=20,
                                        rng=scripted([0.9]), settings=SETTINGS)
        assert not is_stunned(_bandit(outcome.new_state).active_effects)

    def test_stun_chance_is_configurable(self, duel_state, player_stats, scripted):
        outcome = execute_player_action(duel_state, player_stats, "attack", outcome_roll=20,
                                        rng=scripted([0.1]), settings=CombatSettings(crit_stun_chance=0.0))
        assert not is_stunned(_bandit(outcome.new_state).active_effects)

    def test_enemy_crit_staggers_the_player(self, duel_state, player_stats, scripted):
        outcome = execute_enemy_turn(duel_state, "bandit_1", player_stats, outcome_roll=20,
                                     rng=scripted([0.0, 0.1]), settings=SETTINGS)
        assert outcome.new_actor_stats.current_health == 91
        assert is_stunned(outcome.new_state.player_active_effects)

        follow_up = execute_player_action(outcome.new_state, outcome.new_actor_stats, "attack",
                                          outcome_roll=12)
        assert follow_up.narrative == "You are stunned and cannot act."
        assert _bandit(follow_up.new_state).current_health == 50
        assert not is_stunned(follow_up.new_state.player_active_effects)


class TestStun:
    def test_stunned_player_loses_the_turn(self, duel_state, player_stats):
        duel_state.player_active_effects = add_effect([], StunEffect(name="Dazed", duration=1))
        outcome = execute_player_action(duel_state, player_stats, "attack", outcome_roll=20)
        entry = outcome.new_state.combat_log[-1]
        assert entry.action == "stunned"
        assert entry.nat is None
        assert _bandit(outcome.new_state).current_health == 50
        assert outcome.turn_forfeited

    def test_stunned_enemy_loses_the_turn(self, duel_state, player_stats):
        _bandit(duel_state).active_effects = add_effect([], StunEffect(name="Dazed", duration=1))
        outcome = execute_enemy_turn(duel_state, "bandit_1", player_stats, outcome_roll=20)
        assert outcome.narrative == "Bandit is stunned and cannot act."
        assert outcome.new_actor_stats.current_health == 100


class TestHealing:
    def test_heal_restores_caster(self, duel_state):
        stats = _caster(HEAL, current_health=70)
        outcome = execute_player_action(duel_state, stats, "magic", ability_id="healing", outcome_roll=12)
        assert outcome.new_actor_stats.current_health == 90
        assert outcome.new_actor_stats.current_magicka == 80
        assert stats.current_health == 70

    def test_heal_on_enemy_redirects_to_caster(self, duel_state):
        stats = _caster(HEAL, current_health=70)
        outcome = execute_player_action(duel_state, stats, "magic", ability_id="healing",
                                        target_id="bandit_1", outcome_roll=12)
        assert outcome.new_actor_stats.current_health == 90
        assert _bandit(outcome.new_state).current_health == 50

    def test_heal_is_clamped(self, duel_state):
        stats = _caster(HEAL, current_health=95)
        outcome = execute_player_action(duel_state, stats, "magic", ability_id="healing", outcome_roll=12)
        assert outcome.new_actor_stats.current_health == 100

    def test_fumbled_heal_fizzles(self, duel_state):
        stats = _caster(HEAL, current_health=70)
        outcome = execute_player_action(duel_state, stats, "magic", ability_id="healing", outcome_roll=1)
        assert outcome.new_actor_stats.current_health == 70
        assert "fizzles" in outcome.narrative


class TestDefend:
    def test_guard_is_a_bonus_action_once_per_combat(self, duel_state, player_stats):
        outcome = execute_player_action(duel_state, player_stats, "defend")
        assert outcome.consumed_action == ConsumedAction.BONUS
        assert outcome.new_state.player_defending
        assert outcome.new_state.player_guard_used

        again = execute_player_action(outcome.new_state, outcome.new_actor_stats, "defend")
        assert again.rejected
        assert again.new_state is outcome.new_state
        assert again.narrative == "You have already used Tactical Guard this combat."

    def test_guard_stacks_with_armor(self, duel_state, player_stats, scripted):
        unguarded = execute_enemy_turn(duel_state, "bandit_1", player_stats, outcome_roll=12, rng=scripted())
        assert unguarded.new_actor_stats.current_health == 96

        guarded = execute_player_action(duel_state, player_stats, "defend", settings=SETTINGS)
        hit = execute_enemy_turn(guarded.new_state, "bandit_1", guarded.new_actor_stats, outcome_roll=12,
                                 rng=scripted(), settings=SETTINGS)
        assert hit.new_actor_stats.current_health == 98


class TestAreaAbilities:
    @pytest.fixture
    def pair(self, make_enemy):
        return initialize_combat([make_enemy(id="b1"), make_enemy(id="b2")])

    def test_hits_every_enemy_with_one_log_entry(self, pair):
        outcome = execute_player_action(pair, _caster(STORM), "magic", ability_id="fire_storm", outcome_roll=12)
        hits = outcome.aoe_summary.damaged
        assert [(h.id, h.amount) for h in hits] == [("b1", 30), ("b2", 30)]
        assert [e.current_health for e in outcome.new_state.enemies] == [20, 20]
        assert [e.effect for e in outcome.new_state.combat_log].count("aoe") == 1
        assert outcome.new_actor_stats.current_magicka == 70
        assert outcome.new_state.ability_cooldowns == {"fire_storm": 3}

    def test_natural_one_collapses_without_cost(self, pair):
        stats = _caster(STORM)
        outcome = execute_player_action(pair, stats, "magic", ability_id="fire_storm", outcome_roll=1)
        assert not outcome.rejected
        assert outcome.new_state is pair
        assert outcome.new_actor_stats is stats
        assert "collapses" in outcome.narrative
        assert pair.ability_cooldowns == {}

    def test_empty_stats_still_give_whole_numbers(self, pair):
        free_storm = STORM.model_copy(update={"cost": 0})
        outcome = execute_player_action(pair, PlayerCombatStats(abilities=[free_storm]), "magic",
                                        ability_id="fire_storm", outcome_roll=12)
        assert all(isinstance(h.amount, int) and h.amount >= 0 for h in outcome.aoe_summary.damaged)


class TestSummoning:
    def test_natural_one_fails(self, duel_state):
        outcome = execute_player_action(duel_state, _caster(FAMILIAR), "magic",
                                        ability_id="conjure_familiar", outcome_roll=1)
        assert outcome.new_state.allies == []
        assert outcome.narrative.startswith("The conjuration fails")

    def test_summon_is_a_bonus_action(self, duel_state):
        outcome = execute_player_action(duel_state, _caster(FAMILIAR), "magic",
                                        ability_id="conjure_familiar", outcome_roll=12)
        assert outcome.consumed_action == ConsumedAction.BONUS
        assert [a.name for a in outcome.new_state.allies] == ["Spectral Wolf"]

    def test_cap_blocks_a_second_summon(self, duel_state):
        first = execute_player_action(duel_state, _caster(FAMILIAR), "magic",
                                      ability_id="conjure_familiar", outcome_roll=12)
        second = execute_player_action(first.new_state, first.new_actor_stats, "magic",
                                       ability_id="conjure_familiar", outcome_roll=12)
        assert second.rejected
        assert "cannot bind another summon" in second.narrative

    def test_twin_souls_raises_the_cap(self, duel_state):
        mage = CharacterSheet(name="Mage", perks=["twin_souls"])
        first = execute_player_action(duel_state, _caster(FAMILIAR), "magic", ability_id="conjure_familiar",
                                      outcome_roll=12, character=mage)
        second = execute_player_action(first.new_state, first.new_actor_stats, "magic",
                                       ability_id="conjure_familiar", outcome_roll=12, character=mage)
        assert not second.rejected
        assert len(second.new_state.allies) == 2

    def test_boss_calls_reinforcements_once(self, make_enemy, player_stats):
        state = initialize_combat([make_enemy("Bandit Chief", is_boss=True, current_health=20)])
        outcome = execute_enemy_turn(state, "bandit_chief_1", player_stats, outcome_roll=12, settings=SETTINGS)
        guard = outcome.new_state.enemies[1]
        assert guard.name == "Sworn Bodyguard"
        assert guard.is_summon and guard.max_health == 16
        assert outcome.new_state.allies == []
        assert outcome.new_state.boss_summons == {"bandit_chief_1": "call_reinforcements"}
        assert outcome.consumed_action == ConsumedAction.BONUS


class TestItems:
    def test_potion_is_clamped_bonus_action(self, duel_state, player_stats, sword_inventory):
        player_stats.current_health = 90
        outcome = execute_player_action(duel_state, player_stats, "item", item_id="potion",
                                        inventory=sword_inventory)
        assert outcome.new_actor_stats.current_health == 100
        assert outcome.consumed_action == ConsumedAction.BONUS
        assert outcome.used_item.quantity == 1
        assert sword_inventory[2].quantity == 2

    def test_missing_item(self, duel_state, player_stats):
        outcome = execute_player_action(duel_state, player_stats, "item", item_id="potion", inventory=[])
        assert outcome.rejected

    def test_fire_arrow_rides_on_the_main_action(self, duel_state, hero, bow_inventory, scripted):
        stats = calculate_player_combat_stats(hero, bow_inventory)
        outcome = execute_player_action(duel_state, stats, "attack", item_id="fire_arrows",
                                        inventory=bow_inventory, outcome_roll=12, rng=scripted())
        assert outcome.consumed_action == ConsumedAction.MAIN
        assert outcome.bonus_consumed
        assert outcome.used_item.quantity == 4
        bandit = _bandit(outcome.new_state)
        assert bandit.current_health < 42
        assert any(ae.effect.name == "Burning" for ae in bandit.active_effects)

    def test_plain_arrows_are_not_special(self, duel_state, hero, bow_inventory):
        stats = calculate_player_combat_stats(hero, bow_inventory)
        outcome = execute_player_action(duel_state, stats, "attack", item_id="plain_arrows",
                                        inventory=bow_inventory, outcome_roll=12)
        assert outcome.rejected

    def test_arrows_need_a_bow(self, duel_state, player_stats, bow_inventory):
        outcome = execute_player_action(duel_state, player_stats, "attack", item_id="fire_arrows",
                                        inventory=bow_inventory, outcome_roll=12)
        assert outcome.rejected
        assert "bow" in outcome.narrative


class TestCooldowns:
    def test_cooldown_blocks_reuse(self, duel_state, player_stats):
        player_stats.abilities.append(
            Ability(id="power_attack", name="Power Attack", cost=25, cooldown=2, damage=15))
        first = execute_player_action(duel_state, player_stats, "attack", ability_id="power_attack",
                                      outcome_roll=12)
        assert first.new_state.ability_cooldowns == {"power_attack": 3}
        again = execute_player_action(first.new_state, first.new_actor_stats, "attack",
                                      ability_id="power_attack", outcome_roll=12)
        assert again.rejected
        assert "not ready" in again.narrative


class TestEscape:
    def test_flee_success(self, duel_state, player_stats, scripted):
        outcome = execute_player_action(duel_state, player_stats, "flee", rng=scripted([0.0]))
        assert outcome.new_state.result == CombatResult.FLED
        assert outcome.new_state.combat_log[-1].action == "flee"

    def test_failed_flee_costs_the_main_action(self, duel_state, player_stats, scripted):
        outcome = execute_player_action(duel_state, player_stats, "flee", rng=scripted([0.9]))
        assert outcome.new_state.result == CombatResult.ACTIVE
        assert outcome.consumed_action == ConsumedAction.MAIN
        assert outcome.new_state.combat_log[-1].action == "flee_failed"

    def test_flee_can_be_forbidden(self, make_enemy, player_stats):
        state = initialize_combat([make_enemy()], flee_allowed=False)
        assert execute_player_action(state, player_stats, "flee").rejected

    def test_surrender(self, make_enemy, player_stats, duel_state):
        assert execute_player_action(duel_state, player_stats, "surrender").rejected
        state = initialize_combat([make_enemy()], surrender_allowed=True)
        outcome = execute_player_action(state, player_stats, "surrender")
        assert outcome.new_state.result == CombatResult.SURRENDERED


class TestSkip:
    def test_skip_logs_under_display_name(self, duel_state, player_stats):
        outcome = skip_actor_turn(duel_state, "bandit_1", player_stats, reason="Bandit hesitates.")
        entry = outcome.new_state.combat_log[-1]
        assert (entry.action, entry.actor, entry.narrative) == ("skip", "Bandit", "Bandit hesitates.")

    def test_dead_enemy_cannot_act(self, duel_state, player_stats):
        _bandit(duel_state).current_health = 0
        assert execute_enemy_turn(duel_state, "bandit_1", player_stats).rejected
