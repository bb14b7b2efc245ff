"""Tests for src/narrated_rpg/mechanics/encounters.py."""
from __future__ import annotations

import pytest

from narrated_rpg.content.loader import load_enemy_templates
from narrated_rpg.mechanics.encounters import (
    create_enemy_from_template,
    generate_enemy_group,
    get_enemy_count_for_level,
    scale_enemy_encounter,
)
from narrated_rpg.models.actor import ActorType


class TestEncounterSizing:
    @pytest.mark.parametrize("level, count", [(0, 1), (1, 1), (5, 2), (10, 3), (19, 4), (20, 5), (99, 5)])
    def test_count_for_level(self, level, count):
        assert get_enemy_count_for_level(level) == count

    def test_single_enemy_expands(self, make_enemy):
        group = scale_enemy_encounter([make_enemy("Skeever")], 10)
        assert len(group) == 3
        assert len({e.id for e in group}) == 3
        assert {e.name for e in group} == {"Skeever"}

    def test_boss_is_not_expanded(self, make_enemy):
        boss = make_enemy("Bandit Chief", is_boss=True)
        assert scale_enemy_encounter([boss], 20) == [boss]

    def test_authored_group_is_kept(self, make_enemy):
        pair = [make_enemy("Wolf", id="w1"), make_enemy("Wolf", id="w2")]
        assert scale_enemy_encounter(pair, 20) == pair


class TestTemplates:
    def test_templates_load(self):
        templates = load_enemy_templates()
        assert {"bandit", "wolf", "draugr", "bandit_chief"} <= set(templates)
        assert templates["bandit_chief"]["is_boss"] is True

    def test_unknown_template(self):
        with pytest.raises(ValueError):
            create_enemy_from_template("no_such_thing")

    def test_level_stays_near_target(self, seeded_rng):
        for _ in range(30):
            enemy = create_enemy_from_template("bandit", target_level=8)
            assert 6 <= enemy.level <= 10
            assert enemy.max_health >= 10
            assert enemy.damage >= 5
            assert enemy.type == ActorType.HUMANOID

    def test_force_unique_adds_prefix(self, scripted):
        enemy = create_enemy_from_template("wolf", force_unique=True, rng=scripted(default=0.0))
        assert enemy.name != "Wolf"
        assert enemy.name.endswith("Wolf")

    def test_elite_is_a_boss(self, seeded_rng):
        enemy = create_enemy_from_template("bandit", elite=True)
        assert enemy.is_boss
        assert enemy.name.endswith("(Elite)")

    def test_template_loot_becomes_drops(self, seeded_rng):
        enemy = create_enemy_from_template("bandit")
        assert any(drop.name == "Iron Sword" and drop.drop_chance == 20 for drop in enemy.loot)

    def test_group_names_are_unique(self, seeded_rng):
        group = generate_enemy_group("bandit", 3, target_level=5)
        assert len(group) == 3
        assert len({e.name for e in group}) == 3
