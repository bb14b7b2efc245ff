"""Active status effects on combatants; pure functions, no I/O.

Effects live in ``ActiveEffect`` wrappers with a ``turns_remaining`` counter.
Stuns are spent when the stunned actor's turn is skipped; guards tick at the
player's turn start; everything else ticks at its bearer's turn start.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from narrated_rpg.models.ability import (
    ActiveEffect,
    BuffEffect,
    DebuffEffect,
    DotEffect,
    Effect,
    GuardEffect,
    StunEffect,
)


@dataclass
class EffectTick:
    remaining: list[ActiveEffect] = field(default_factory=list)
    dot_damage: int = 0
    expired: list[str] = field(default_factory=list)


def add_effect(effects: list[ActiveEffect], effect: Effect, source: str = "",
               turns: int | None = None) -> list[ActiveEffect]:
    """Attach an effect; a same-named effect of the same kind is refreshed, not stacked."""
    duration = turns if turns is not None else max(1, effect.duration)
    kept = [
        ae for ae in effects
        if not (ae.effect.type == effect.type and ae.effect.name == effect.name)
    ]
    kept.append(ActiveEffect(effect=effect, turns_remaining=duration, source=source))
    return kept


def is_stunned(effects: list[ActiveEffect]) -> bool:
    return any(isinstance(ae.effect, StunEffect) and ae.turns_remaining > 0 for ae in effects)


def consume_stun(effects: list[ActiveEffect]) -> list[ActiveEffect]:
    """Spend one turn of every stun; drop the ones that run out."""
    out = []
    for ae in effects:
        if isinstance(ae.effect, StunEffect):
            left = ae.turns_remaining - 1
            if left > 0:
                out.append(ae.model_copy(update={"turns_remaining": left}))
        else:
            out.append(ae)
    return out


def tick_effects(effects: list[ActiveEffect]) -> EffectTick:
    """Apply DOT damage and count down everything except stuns and guards."""
    tick = EffectTick()
    for ae in effects:
        if isinstance(ae.effect, (StunEffect, GuardEffect)):
            tick.remaining.append(ae)
            continue
        if isinstance(ae.effect, DotEffect) and ae.effect.stat == "health":
            tick.dot_damage += max(0, ae.effect.value)
        left = ae.turns_remaining - 1
        if left > 0:
            tick.remaining.append(ae.model_copy(update={"turns_remaining": left}))
        else:
            tick.expired.append(ae.effect.name or ae.effect.type)
    return tick


def tick_guard(effects: list[ActiveEffect]) -> list[ActiveEffect]:
    out = []
    for ae in effects:
        if isinstance(ae.effect, GuardEffect):
            left = ae.turns_remaining - 1
            if left > 0:
                out.append(ae.model_copy(update={"turns_remaining": left}))
        else:
            out.append(ae)
    return out


def guard_reduction(effects: list[ActiveEffect]) -> float:
    """Strongest active guard reduction (guards do not stack)."""
    values = [ae.effect.value for ae in effects
              if isinstance(ae.effect, GuardEffect) and ae.turns_remaining > 0]
    return max(values, default=0.0)


def stat_modifier(effects: list[ActiveEffect], stat: str) -> tuple[float, float]:
    """Sum buff/debuff modifiers on ``stat``. Returns (flat, percent)."""
    flat = 0.0
    percent = 0.0
    for ae in effects:
        eff = ae.effect
        if isinstance(eff, (BuffEffect, DebuffEffect)) and eff.stat == stat:
            value = eff.value
            if isinstance(eff, DebuffEffect) and value > 0:
                value = -value
            if eff.percent:
                percent += value
            else:
                flat += value
    return flat, percent


def describe_effect(effect: Effect) -> str:
    label = effect.name or effect.type
    if isinstance(effect, StunEffect):
        return f"{label} (stunned)"
    if isinstance(effect, DotEffect):
        return f"{label} ({effect.value}/turn)"
    return label
