"""Tests for src/narrated_rpg/mechanics/companion.py."""
from __future__ import annotations

import pytest

from narrated_rpg.mechanics.companion import (
    build_companion_actor,
    companion_ai_action,
    derive_actor_type,
)
from narrated_rpg.models.ability import Ability, AbilityType
from narrated_rpg.models.actor import Actor, ActorType
from narrated_rpg.models.character import PlayerCombatStats
from narrated_rpg.models.combat import PLAYER_ID, CombatState


class TestDeriveActorType:
    @pytest.mark.parametrize("name, expected", [
        ("Draugr Deathlord", ActorType.UNDEAD),
        ("Frost Atronach", ActorType.DAEDRA),
        ("Dwarven Sphere", ActorType.AUTOMATON),
        ("Blood Dragon", ActorType.DRAGON),
        ("Skeever", ActorType.BEAST),
        ("Lydia", ActorType.HUMANOID),
    ])
    def test_name_keywords(self, name, expected):
        assert derive_actor_type(name) == expected

    def test_animal_flag_wins(self):
        assert derive_actor_type("Meeko", is_animal=True) == ActorType.BEAST
        assert derive_actor_type("Meeko", species="dog") == ActorType.BEAST


class TestBuildCompanion:
    def test_explicit_false_flags_survive(self):
        actor = build_companion_actor({"companion_id": "lydia", "name": "Lydia", "max_health": 90,
                                       "auto_control": False, "auto_loot": True})
        assert actor.is_companion
        assert actor.companion_meta.auto_control is False
        assert actor.companion_meta.auto_loot is True
        assert actor.id == "companion_lydia"
        assert actor.current_health == 90

    def test_defaults(self):
        actor = build_companion_actor({"name": "Meeko", "species": "dog"})
        assert actor.type == ActorType.BEAST
        assert actor.companion_meta.auto_control is True
        assert actor.max_health == 50
        assert [a.id for a in actor.abilities] == ["bite"]

    def test_current_health_is_clamped(self):
        actor = build_companion_actor({"name": "Lydia", "max_health": 40, "current_health": 75})
        assert actor.current_health == 40


class TestCompanionAi:
    HEAL = Ability(id="healing_hands", name="Healing Hands", type=AbilityType.MAGIC, heal=30)
    SLASH = Ability(id="slash", name="Slash", damage=12)

    def _healer(self):
        return Actor(id="healer", name="Healer", max_health=50, current_health=50, is_companion=True,
                     abilities=[self.HEAL, self.SLASH])

    def test_heals_badly_hurt_player(self, make_enemy):
        healer = self._healer()
        state = CombatState(enemies=[make_enemy()], allies=[healer])
        hurt = PlayerCombatStats(max_health=100, current_health=20)
        decision = companion_ai_action(healer, state, hurt)
        assert decision.ability.id == "healing_hands"
        assert decision.target_id == PLAYER_ID

    def test_attacks_weakest_enemy(self, make_enemy):
        healer = self._healer()
        weak = make_enemy("Wolf", current_health=5)
        state = CombatState(enemies=[make_enemy(), weak], allies=[healer])
        decision = companion_ai_action(healer, state, PlayerCombatStats(max_health=100, current_health=100))
        assert decision.ability.id == "slash"
        assert decision.target_id == weak.id

    def test_nothing_to_fight(self):
        healer = self._healer()
        decision = companion_ai_action(healer, CombatState(allies=[healer]))
        assert decision.target_id is None
