"""Shared fixtures for the combat engine test suite."""
from __future__ import annotations

import random
from typing import Any

import pytest

from narrated_rpg.engine.turns import initialize_combat
from narrated_rpg.mechanics.abilities import calculate_player_combat_stats
from narrated_rpg.models.actor import Actor
from narrated_rpg.models.character import CharacterSheet
from narrated_rpg.models.item import InventoryItem


class ScriptedRandom(random.Random):
    """Returns queued values from ``random()``, then ``default`` forever."""

    def __init__(self, values: list[float] | None = None, default: float = 0.99):
        super().__init__(0)
        self.values = list(values or [])
        self.default = default

    def random(self) -> float:
        if self.values:
            return self.values.pop(0)
        return self.default


@pytest.fixture
def scripted():
    return ScriptedRandom


@pytest.fixture
def seeded_rng():
    state = random.getstate()
    random.seed(42)
    yield
    random.setstate(state)


@pytest.fixture
def hero() -> CharacterSheet:
    return CharacterSheet(id="char-1", name="Hero", level=3)


@pytest.fixture
def sword_inventory() -> list[InventoryItem]:
    return [
        InventoryItem(id="sword", name="Iron Sword", type="weapon", damage=10, equipped=True,
                      equipped_by="player", slot="weapon"),
        InventoryItem(id="cuirass", name="Iron Armor", type="apparel", armor=20, equipped=True,
                      slot="chest"),
        InventoryItem(id="potion", name="Potion of Minor Healing", type="potion", quantity=2),
        InventoryItem(id="bread", name="Bread", type="food", quantity=1),
    ]


@pytest.fixture
def bow_inventory() -> list[InventoryItem]:
    return [
        InventoryItem(id="bow", name="Hunting Bow", type="weapon", damage=8, equipped=True, slot="weapon"),
        InventoryItem(id="fire_arrows", name="Fire Arrows", type="ammunition", quantity=5),
        InventoryItem(id="plain_arrows", name="Iron Arrows", type="ammunition", quantity=20),
    ]


@pytest.fixture
def player_stats(hero, sword_inventory):
    return calculate_player_combat_stats(hero, sword_inventory)


@pytest.fixture
def make_enemy():
    def _make(name: str = "Bandit", **overrides: Any) -> Actor:
        fields = {
            "id": overrides.pop("id", f"{name.lower().replace(' ', '_')}_1"),
            "name": name,
            "level": 1,
            "max_health": 50,
            "current_health": 50,
            "damage": 6,
        }
        fields.update(overrides)
        return Actor(**fields)
    return _make


@pytest.fixture
def duel_state(make_enemy):
    """Player against a single unarmored bandit, player to act."""
    return initialize_combat([make_enemy()], location="Riverwood Road")
