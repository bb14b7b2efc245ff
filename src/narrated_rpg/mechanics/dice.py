"""Dice rolling engine: pure math, no I/O.

Every function takes an optional ``rng``; anything with a ``random()`` method
works, so tests can pin outcomes. ``None`` uses the ``random`` module.
"""
from __future__ import annotations

import random


def chance(rng=None) -> float:
    """A uniform draw in [0, 1)."""
    return (rng or random).random()


def roll_die(sides: int, rng=None) -> int:
    return int(chance(rng) * sides) + 1


def roll_range(lo: int, hi: int, rng=None) -> int:
    """Uniform integer in [lo, hi]."""
    return lo + int(chance(rng) * (hi - lo + 1))


def pick(options: list, rng=None):
    return options[int(chance(rng) * len(options))]


def roll_d20(rng=None) -> int:
    """A natural d20."""
    return roll_die(20, rng)


def resolve_outcome_roll(outcome_roll: int | None, rng=None) -> int:
    """Use a supplied roll when it is a valid d20 face, otherwise roll one."""
    if isinstance(outcome_roll, int) and not isinstance(outcome_roll, bool) and 1 <= outcome_roll <= 20:
        return outcome_roll
    return roll_d20(rng)
