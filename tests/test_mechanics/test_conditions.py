"""Tests for src/narrated_rpg/mechanics/conditions.py."""
from __future__ import annotations

from narrated_rpg.mechanics.conditions import (
    add_effect,
    consume_stun,
    guard_reduction,
    is_stunned,
    stat_modifier,
    tick_effects,
    tick_guard,
)
from narrated_rpg.models.ability import (
    ActiveEffect,
    BuffEffect,
    DebuffEffect,
    DotEffect,
    GuardEffect,
    StunEffect,
)


def _active(effect, turns=1):
    return ActiveEffect(effect=effect, turns_remaining=turns)


class TestAddEffect:
    def test_refreshes_same_named_effect(self):
        effects = add_effect([], DotEffect(name="Burning", value=3, duration=2))
        effects = add_effect(effects, DotEffect(name="Burning", value=5, duration=3))
        assert len(effects) == 1
        assert effects[0].turns_remaining == 3
        assert effects[0].effect.value == 5

    def test_different_effects_stack(self):
        effects = add_effect([], DotEffect(name="Burning", value=3, duration=2))
        effects = add_effect(effects, DotEffect(name="Bleeding", value=2, duration=2))
        assert len(effects) == 2

    def test_zero_duration_lasts_one_turn(self):
        effects = add_effect([], DotEffect(name="Poisoned", value=2))
        assert effects[0].turns_remaining == 1


class TestStun:
    def test_is_stunned(self):
        assert is_stunned([_active(StunEffect(name="Dazed"))])
        assert not is_stunned([_active(DotEffect(name="Burning", value=1))])

    def test_consume_stun_spends_one_turn(self):
        effects = consume_stun([_active(StunEffect(name="Paralyzed"), turns=2)])
        assert effects[0].turns_remaining == 1
        assert consume_stun(effects) == []

    def test_ticks_leave_stuns_alone(self):
        tick = tick_effects([_active(StunEffect(name="Dazed"))])
        assert is_stunned(tick.remaining)


class TestTickEffects:
    def test_dot_damage_and_countdown(self):
        tick = tick_effects([
            _active(DotEffect(name="Burning", value=4), turns=2),
            _active(DotEffect(name="Bleeding", value=2), turns=1),
        ])
        assert tick.dot_damage == 6
        assert [ae.effect.name for ae in tick.remaining] == ["Burning"]
        assert tick.remaining[0].turns_remaining == 1
        assert tick.expired == ["Bleeding"]

    def test_guard_only_ticks_through_tick_guard(self):
        guard = _active(GuardEffect(value=0.4), turns=2)
        assert tick_effects([guard]).remaining[0].turns_remaining == 2
        assert tick_guard([guard])[0].turns_remaining == 1
        assert tick_guard(tick_guard([guard])) == []


class TestModifiers:
    def test_guard_reduction_takes_strongest(self):
        effects = [_active(GuardEffect(name="A", value=0.4)), _active(GuardEffect(name="B", value=0.6))]
        assert guard_reduction(effects) == 0.6
        assert guard_reduction([]) == 0.0

    def test_stat_modifier_signs(self):
        effects = [
            _active(BuffEffect(name="Bound Weapon", stat="damage", value=10)),
            _active(DebuffEffect(name="Chilled", stat="damage", value=15, percent=True)),
            _active(BuffEffect(name="Shield Block", stat="armor", value=30)),
        ]
        assert stat_modifier(effects, "damage") == (10.0, -15.0)
        assert stat_modifier(effects, "armor") == (30.0, 0.0)
