"""Uniform read/write view over the player and actors in a combat.

The player's vitals live in ``PlayerCombatStats`` and its effects on the
``CombatState``; everyone else is an ``Actor``. The resolver works through
``Combatant`` so one code path serves every side.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from narrated_rpg.mechanics.conditions import stat_modifier
from narrated_rpg.models.ability import ActiveEffect, Resource
from narrated_rpg.models.actor import Actor
from narrated_rpg.models.character import PlayerCombatStats
from narrated_rpg.models.combat import PLAYER_ID, CombatState


@dataclass
class Combatant:
    state: CombatState
    actor: Optional[Actor] = None
    stats: Optional[PlayerCombatStats] = None

    @property
    def is_player(self) -> bool:
        return self.actor is None

    @property
    def id(self) -> str:
        return PLAYER_ID if self.actor is None else self.actor.id

    @property
    def name(self) -> str:
        return self.state.player_name if self.actor is None else self.actor.name

    @property
    def level(self) -> int:
        return self.state.player_level if self.actor is None else self.actor.level

    @property
    def on_enemy_side(self) -> bool:
        return self.actor is not None and self.state.is_enemy(self.actor.id)

    # -- vitals ------------------------------------------------------------

    @property
    def health(self) -> int:
        if self.actor is None:
            return self.stats.current_health if self.stats else 0
        return self.actor.current_health

    @property
    def max_health(self) -> int:
        if self.actor is None:
            return self.stats.max_health if self.stats else 0
        return self.actor.max_health

    @property
    def is_alive(self) -> bool:
        return self.health > 0

    def take_damage(self, amount: int) -> int:
        """Lower health, never below zero. Returns damage actually dealt."""
        dealt = max(0, min(int(amount), self.health))
        if self.actor is None:
            if self.stats is not None:
                self.stats.current_health -= dealt
        else:
            self.actor.current_health -= dealt
        return dealt

    def restore_health(self, amount: int) -> int:
        """Raise health, clamped to the maximum. Returns the gain."""
        gain = max(0, min(int(amount), self.max_health - self.health))
        if self.actor is None:
            if self.stats is not None:
                self.stats.current_health += gain
        else:
            self.actor.current_health += gain
        return gain

    def pool(self, resource: Resource) -> Optional[int]:
        """Current magicka/stamina; ``None`` when the pool is untracked."""
        if self.actor is None:
            if self.stats is None:
                return None
            return getattr(self.stats, f"current_{resource.value}")
        return getattr(self.actor, f"current_{resource.value}")

    def spend(self, resource: Resource, amount: int) -> int:
        current = self.pool(resource)
        if current is None:
            return 0
        spent = max(0, min(int(amount), current))
        target = self.stats if self.actor is None else self.actor
        setattr(target, f"current_{resource.value}", current - spent)
        return spent

    # -- combat numbers ----------------------------------------------------

    @property
    def base_damage(self) -> int:
        if self.actor is None:
            return self.stats.weapon_damage if self.stats else 0
        return self.actor.damage

    @property
    def armor(self) -> float:
        base = (self.stats.armor if self.stats else 0) if self.actor is None else self.actor.armor
        flat, percent = stat_modifier(self.effects, "armor")
        return max(0.0, (base + flat) * (1 + percent / 100))

    @property
    def dodge_chance(self) -> float:
        if self.actor is None:
            return self.stats.dodge_chance if self.stats else 0
        return self.actor.dodge_chance

    @property
    def magic_resist(self) -> float:
        return (self.stats.magic_resist if self.stats else 0) if self.actor is None else 0

    @property
    def weaknesses(self) -> list[str]:
        return [] if self.actor is None else self.actor.weaknesses

    @property
    def resistances(self) -> list[str]:
        return [] if self.actor is None else self.actor.resistances

    @property
    def effects(self) -> list[ActiveEffect]:
        if self.actor is None:
            return self.state.player_active_effects
        return self.actor.active_effects

    @effects.setter
    def effects(self, value: list[ActiveEffect]) -> None:
        if self.actor is None:
            self.state.player_active_effects = value
        else:
            self.actor.active_effects = value

    @property
    def cooldowns(self) -> dict[str, int]:
        if self.actor is None:
            return self.state.ability_cooldowns
        return self.state.actor_cooldowns.setdefault(self.actor.id, {})


def player_view(state: CombatState, stats: PlayerCombatStats | None) -> Combatant:
    return Combatant(state=state, stats=stats)


def get_combatant(state: CombatState, combatant_id: str | None,
                  stats: PlayerCombatStats | None = None) -> Optional[Combatant]:
    if combatant_id == PLAYER_ID:
        return player_view(state, stats)
    if combatant_id is None:
        return None
    actor = state.find_actor(combatant_id)
    return Combatant(state=state, actor=actor, stats=stats) if actor else None


def friends_of(state: CombatState, combatant: Combatant,
               stats: PlayerCombatStats | None = None) -> list[Combatant]:
    """Living members of ``combatant``'s side, the combatant included."""
    if combatant.on_enemy_side:
        return [Combatant(state=state, actor=e, stats=stats) for e in state.living_enemies()]
    out = []
    if stats is None or stats.current_health > 0:
        out.append(player_view(state, stats))
    out += [Combatant(state=state, actor=a, stats=stats) for a in state.living_allies()]
    return out


def opponents_of(state: CombatState, combatant: Combatant,
                 stats: PlayerCombatStats | None = None) -> list[Combatant]:
    """Living members of the other side."""
    if combatant.on_enemy_side:
        out = []
        if stats is None or stats.current_health > 0:
            out.append(player_view(state, stats))
        out += [Combatant(state=state, actor=a, stats=stats) for a in state.living_allies()]
        return out
    return [Combatant(state=state, actor=e, stats=stats) for e in state.living_enemies()]
