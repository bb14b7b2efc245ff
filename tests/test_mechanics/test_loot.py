"""Tests for src/narrated_rpg/mechanics/loot.py."""
from __future__ import annotations

import pytest

from narrated_rpg.mechanics.loot import (
    FALLBACK_NAME,
    compute_enemy_xp,
    drop_chance,
    effective_weight,
    generate_enemy_loot,
    loot_table_for,
    merge_by_name,
    pick_weighted,
)
from narrated_rpg.models.item import InventoryItem, LootDrop

RARITY = {"common": 1.0, "uncommon": 0.7, "rare": 0.35, "legendary": 0.12}


class TestXp:
    @pytest.mark.parametrize("level, boss, xp", [(1, False, 3), (5, False, 15), (5, True, 30), (0, False, 3)])
    def test_formula(self, make_enemy, level, boss, xp):
        assert compute_enemy_xp(make_enemy(level=level, is_boss=boss)) == xp


class TestTables:
    def test_boss_tables_merge_in(self):
        plain = loot_table_for("humanoid")
        boss = loot_table_for("humanoid", is_boss=True)
        assert len(boss) > len(plain)

    def test_unknown_type_is_empty(self):
        assert loot_table_for("slime") == []

    def test_rarity_lowers_weight(self):
        assert effective_weight({"weight": 10, "rarity": "rare"}, RARITY) == pytest.approx(3.5)
        assert effective_weight({"weight": 10}, RARITY) == 10

    def test_pick_weighted(self, scripted):
        table = [{"name": "a", "weight": 1}, {"name": "b", "weight": 3}]
        assert pick_weighted(table, RARITY, scripted([0.1]))["name"] == "a"
        assert pick_weighted(table, RARITY, scripted([0.5]))["name"] == "b"
        assert pick_weighted([], RARITY) is None

    def test_drop_chance(self):
        assert drop_chance({"weight": 10}, 2, False, RARITY) == 41
        assert drop_chance({"weight": 50}, 2, False, RARITY) == 95
        assert drop_chance({"weight": 10, "rarity": "rare"}, 2, True, RARITY) == pytest.approx(51 * 0.35)
        assert drop_chance({"base_chance": 30}, 4, False, RARITY) == 32


class TestGenerateLoot:
    def test_nothing_drawn_falls_back_to_coins(self, make_enemy, scripted):
        loot = generate_enemy_loot(make_enemy(level=4), scripted())
        assert [(i.name, i.quantity) for i in loot] == [(FALLBACK_NAME, 8)]

    def test_boss_fallback_doubles(self, make_enemy, scripted):
        loot = generate_enemy_loot(make_enemy(level=4, is_boss=True, gold_reward=15), scripted())
        assert loot[0].quantity == 30

    def test_lucky_draw_takes_first_entry(self, make_enemy, scripted):
        loot = generate_enemy_loot(make_enemy(level=1), scripted(default=0.0))
        assert [(i.name, i.quantity) for i in loot] == [("Copper Coins", 5)]

    def test_own_loot_rolls_by_drop_chance(self, make_enemy, scripted):
        sword = LootDrop(name="Iron Sword", type="weapon", damage=8, drop_chance=100)
        loot = generate_enemy_loot(make_enemy(loot=[sword]), scripted())
        assert [i.name for i in loot] == ["Iron Sword"]

    def test_never_empty(self, make_enemy, seeded_rng):
        for level in range(1, 30, 3):
            assert generate_enemy_loot(make_enemy("Draugr", type="undead", level=level))

    def test_merge_sums_quantities(self):
        merged = merge_by_name([
            InventoryItem(name="Arrow", quantity=3),
            InventoryItem(name="Arrow", quantity=4),
            InventoryItem(name="Bone Meal"),
        ])
        assert [(i.name, i.quantity) for i in merged] == [("Arrow", 7), ("Bone Meal", 1)]

    def test_fallback_floor(self, make_enemy, scripted):
        loot = generate_enemy_loot(make_enemy(level=0), scripted())
        assert loot[0].quantity == 2
