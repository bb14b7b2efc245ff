"""Combat context block handed to the narration layer."""
from __future__ import annotations

from typing import Any

from jinja2 import Environment, FileSystemLoader

from narrated_rpg.content.loader import TEMPLATES_DIR
from narrated_rpg.mechanics.conditions import describe_effect
from narrated_rpg.models.ability import ActiveEffect
from narrated_rpg.models.actor import Actor
from narrated_rpg.models.character import PlayerCombatStats
from narrated_rpg.models.combat import PLAYER_ID, CombatState

RECENT_LOG_ENTRIES = 6

_jinja_env: Environment | None = None


def _get_jinja() -> Environment:
    global _jinja_env
    if _jinja_env is None:
        _jinja_env = Environment(loader=FileSystemLoader(str(TEMPLATES_DIR)), autoescape=False)
    return _jinja_env


def _effects(effects: list[ActiveEffect]) -> list[str]:
    return [f"{describe_effect(e.effect)}, {e.turns_remaining} turns" for e in effects]


def _actor_view(actor: Actor) -> dict[str, Any]:
    meta = actor.companion_meta
    return {
        "name": actor.name,
        "level": actor.level,
        "type": actor.type.value,
        "boss": actor.is_boss,
        "health": actor.current_health,
        "max_health": actor.max_health,
        "summon": actor.is_summon,
        "decaying": bool(meta and meta.decay_active),
        "effects": _effects(actor.active_effects),
    }


def render_combat_context(state: CombatState, player_stats: PlayerCombatStats | None = None) -> str:
    stats = player_stats or PlayerCombatStats()
    if state.current_turn_actor == PLAYER_ID:
        current = state.player_name
    else:
        actor = state.find_actor(state.current_turn_actor)
        current = actor.name if actor else state.current_turn_actor

    template = _get_jinja().get_template("combat_context.j2")
    return template.render(
        location=state.location,
        turn=state.turn,
        result=state.result.value,
        current_actor=current,
        player={
            "name": state.player_name,
            "health": stats.current_health,
            "max_health": stats.max_health,
            "magicka": stats.current_magicka,
            "max_magicka": stats.max_magicka,
            "stamina": stats.current_stamina,
            "max_stamina": stats.max_stamina,
            "defending": state.player_defending,
            "effects": _effects(state.player_active_effects),
        },
        allies=[_actor_view(a) for a in state.allies],
        enemies=[_actor_view(e) for e in state.enemies],
        log=[entry.narrative for entry in state.combat_log[-RECENT_LOG_ENTRIES:] if entry.narrative],
    )
