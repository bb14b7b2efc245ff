"""Tests for src/narrated_rpg/engine/session.py."""
from __future__ import annotations

import pytest

from narrated_rpg.config import CombatSettings
from narrated_rpg.engine.session import CombatSession
from narrated_rpg.engine.turns import initialize_combat
from narrated_rpg.mechanics.abilities import calculate_player_combat_stats
from narrated_rpg.mechanics.conditions import add_effect
from narrated_rpg.models.ability import StunEffect
from narrated_rpg.models.combat import PLAYER_ID, CombatResult


@pytest.fixture
def session(duel_state, player_stats, hero, sword_inventory, scripted):
    return CombatSession(duel_state, player_stats, character=hero, inventory=sword_inventory,
                         rng=scripted(), settings=CombatSettings())


class TestActionEconomy:
    def test_one_main_action_per_turn(self, session):
        first = session.perform("attack", outcome_roll=12)
        assert not first.rejected
        assert session.main_used and not session.bonus_used

        second = session.perform("attack", outcome_roll=12)
        assert second.rejected
        assert "already used your main action" in second.narrative
        assert session.state.enemies[0].current_health == 40

    def test_bonus_action_alongside_main(self, session):
        session.player_stats.current_health = 60
        session.perform("attack", outcome_roll=12)
        drink = session.perform("item", item_id="potion")
        assert not drink.rejected
        assert session.player_stats.current_health == 85
        assert session.perform("defend").narrative == "You have nothing left to do this turn."

    def test_second_bonus_is_refused(self, session):
        session.perform("defend")
        outcome = session.perform("item", item_id="potion")
        assert outcome.rejected
        assert "already used your bonus action" in outcome.narrative
        assert session.inventory[2].quantity == 2

    def test_rejected_action_keeps_the_slot(self, session):
        assert session.perform("magic", ability_id="fireball").rejected
        assert not session.main_used

    def test_spent_item_leaves_inventory(self, session):
        session.perform("item", item_id="bread")
        assert "bread" not in [i.id for i in session.inventory]

    def test_stunned_turn_leaves_no_bonus_action(self, session):
        session.state.player_active_effects = add_effect([], StunEffect(name="Dazed", duration=1))
        session.player_stats.current_health = 60
        stunned = session.perform("attack", outcome_roll=12)
        assert stunned.narrative == "You are stunned and cannot act."
        assert session.main_used and session.bonus_used

        drink = session.perform("item", item_id="potion")
        assert drink.rejected
        assert drink.narrative == "You have nothing left to do this turn."
        assert session.player_stats.current_health == 60
        assert session.inventory[2].quantity == 2

    def test_not_your_turn(self, make_enemy, player_stats):
        ambushed = CombatSession(initialize_combat([make_enemy()], ambush=True), player_stats)
        assert ambushed.perform("attack").narrative == "It is not your turn."


class TestSpecialAmmunition:
    @pytest.fixture
    def archer(self, duel_state, hero, bow_inventory, scripted):
        stats = calculate_player_combat_stats(hero, bow_inventory)
        return CombatSession(duel_state, stats, character=hero, inventory=bow_inventory, rng=scripted())

    def test_arrow_uses_both_slots(self, archer):
        outcome = archer.perform("attack", item_id="fire_arrows", outcome_roll=12)
        assert outcome.bonus_consumed
        assert archer.main_used and archer.bonus_used
        assert archer.inventory[1].quantity == 4

    def test_arrow_needs_the_bonus_slot(self, archer):
        archer.perform("defend")
        outcome = archer.perform("attack", item_id="fire_arrows", outcome_roll=12)
        assert outcome.rejected
        assert archer.inventory[1].quantity == 5
        assert not archer.perform("attack", outcome_roll=12).rejected


class TestTurnLoop:
    def test_enemy_acts_then_player_is_back(self, duel_state, player_stats, scripted):
        session = CombatSession(duel_state, player_stats, rng=scripted([0.0, 0.5]),
                                settings=CombatSettings())
        session.perform("attack", outcome_roll=12)
        lines = session.end_player_turn()
        assert session.is_player_turn
        assert session.state.turn == 2
        assert not session.main_used and not session.bonus_used
        assert session.player_stats.current_health == 96
        assert session.player_stats.current_stamina == 91
        assert any("Bandit" in line for line in lines)

    def test_companion_without_auto_control_waits(self, make_enemy, player_stats, scripted):
        state = initialize_combat([make_enemy()], companions=[
            {"companion_id": "lydia", "name": "Lydia", "auto_control": False},
        ])
        session = CombatSession(state, player_stats, rng=scripted())
        lines = session.end_player_turn()
        assert "Lydia awaits your command." in lines
        assert session.state.current_turn_actor == PLAYER_ID

    def test_auto_companion_fights(self, make_enemy, player_stats, scripted):
        state = initialize_combat([make_enemy()], companions=[{"companion_id": "lydia", "name": "Lydia"}])
        session = CombatSession(state, player_stats, rng=scripted([0.5]))
        session.end_player_turn()
        entries = [e for e in session.state.combat_log if e.actor == "Lydia"]
        assert entries and entries[0].auto


class TestFinish:
    def test_no_payout_while_fighting(self, session):
        assert session.finish() is None

    def test_victory_pays_out_once(self, duel_state, player_stats, hero, scripted):
        duel_state.enemies[0].current_health = 5
        session = CombatSession(duel_state, player_stats, character=hero, rng=scripted())
        session.perform("attack", outcome_roll=12)
        assert session.state.result == CombatResult.VICTORY

        grant = session.finish()
        assert (grant.xp, grant.gold) == (3, 2)
        assert session.state.rewards.transaction_id == grant.transaction_id
        assert session.finish() is grant
