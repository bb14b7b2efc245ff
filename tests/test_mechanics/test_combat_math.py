"""Tests for src/narrated_rpg/mechanics/combat_math.py."""
from __future__ import annotations

import math

import pytest

from narrated_rpg.mechanics.combat_math import (
    RollTier,
    apply_armor,
    apply_guard,
    compute_damage_from_nat,
    dodge_check,
    elemental_multiplier,
    flee_chance,
    hit_location,
    modify_damage,
    percent_check,
    regen_amount,
    roll_tier,
    scaled_base_damage,
    stamina_multiplier,
)


class TestRollTier:
    @pytest.mark.parametrize("nat, tier", [
        (1, RollTier.FAIL),
        (2, RollTier.MISS), (4, RollTier.MISS),
        (5, RollTier.LOW), (9, RollTier.LOW),
        (10, RollTier.MID), (14, RollTier.MID),
        (15, RollTier.HIGH), (19, RollTier.HIGH),
        (20, RollTier.CRIT),
    ])
    def test_boundaries(self, nat, tier):
        assert roll_tier(nat) == tier

    def test_hit_location_cycles(self):
        assert [hit_location(n) for n in (4, 5, 6, 7)] == ["torso", "arm", "leg", "head"]


class TestDamageFromNat:
    def test_level_adds_a_fifth(self):
        assert scaled_base_damage(10, 1) == 10
        assert scaled_base_damage(10, 10) == 12

    def test_fail_and_miss_deal_nothing(self):
        assert compute_damage_from_nat(20, 5, 1).amount == 0
        assert compute_damage_from_nat(20, 5, 3).amount == 0

    def test_tiers_scale(self):
        assert compute_damage_from_nat(20, 1, 7).amount == 12
        assert compute_damage_from_nat(20, 1, 12).amount == 20
        assert compute_damage_from_nat(20, 1, 17).amount == 25

    def test_crit_gets_precision_bonus(self):
        roll = compute_damage_from_nat(20, 1, 20)
        assert roll.is_crit
        assert roll.amount == math.floor(20 * 1.75 * 1.15)

    def test_missing_inputs_are_zero_not_nan(self):
        roll = compute_damage_from_nat(None, None, 12)
        assert roll.amount == 1


class TestMitigation:
    def test_armor_formula(self):
        assert apply_armor(100, 100) == 50
        assert apply_armor(100, 0) == 100

    def test_landed_hit_deals_at_least_one(self):
        assert apply_armor(1, 10_000) == 1
        assert apply_armor(0, 50) == 0

    def test_guard_multiplies_with_armor(self):
        after_armor = apply_armor(100, 100)
        assert apply_guard(after_armor, 0.4) == 30

    def test_guard_without_damage(self):
        assert apply_guard(0, 0.4) == 0

    def test_modify_damage(self):
        assert modify_damage(10, flat=5) == 15
        assert modify_damage(10, percent=-15) == pytest.approx(8.5)
        assert modify_damage(10, flat=-50) == 0

    def test_elemental_multiplier(self):
        assert elemental_multiplier("fire", ["fire"], []) == 1.5
        assert elemental_multiplier("frost", [], ["frost"]) == 0.5
        assert elemental_multiplier(None, [], ["magic"], is_magic=True) == 0.5
        assert elemental_multiplier("shock", ["fire"], []) == 1.0


class TestStaminaAndRegen:
    def test_full_stamina(self):
        assert stamina_multiplier(50, 10, 0.25) == 1.0

    def test_partial_stamina(self):
        assert stamina_multiplier(5, 10, 0.25) == 0.5

    def test_zero_stamina_hits_the_floor(self):
        assert stamina_multiplier(0, 10, 0.25) == 0.25

    def test_free_ability(self):
        assert stamina_multiplier(0, 0, 0.25) == 1.0

    def test_regen_per_turn(self):
        assert regen_amount(0.25, 4) == 1
        assert regen_amount(None, 4) == 0


class TestChecks:
    def test_certain_checks_do_not_draw(self, scripted):
        rng = scripted([0.5])
        assert percent_check(100, rng) is True
        assert percent_check(0, rng) is False
        assert dodge_check(0, rng) is False
        assert rng.values == [0.5]

    def test_percent_check_uses_one_draw(self, scripted):
        assert percent_check(40, scripted([0.39])) is True
        assert percent_check(40, scripted([0.41])) is False

    def test_dodge_is_capped(self, scripted):
        assert dodge_check(500, scripted([0.80])) is False

    def test_flee_chance(self):
        assert flee_chance(5, [5]) == 0.5
        assert flee_chance(10, [5]) == pytest.approx(0.75)
        assert flee_chance(1, [30]) == 0.1
        assert flee_chance(50, [1]) == 0.9
