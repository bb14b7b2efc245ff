"""Combat tunables and their loader.

The module-level constants are the defaults. A ``config.toml`` at the project
root may override any of them under ``[combat]`` / ``[ledger]``.
"""
from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

CONFIG_PATH = Path(__file__).parent.parent.parent / "config.toml"

CRIT_STUN_CHANCE = 0.5
GUARD_DAMAGE_REDUCTION = 0.40
GUARD_BASE_ROUNDS = 1
GUARD_MAX_ROUNDS = 3
SECONDS_PER_TURN = 4
BASE_SUMMON_CAP = 1
MAX_SUMMON_CAP = 3
SUMMON_BASE_TURNS = 3
LOW_STAMINA_FLOOR = 0.25
BOSS_SUMMON_THRESHOLD = 0.5
UNARMED_SKILL_THRESHOLD = 5
SHIELD_BLOCK_SKILL_THRESHOLD = 20
FOOD_HEAL = 15
LEDGER_RETENTION_SECONDS = 30 * 60


class CombatSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    crit_stun_chance: float = CRIT_STUN_CHANCE
    guard_damage_reduction: float = GUARD_DAMAGE_REDUCTION
    guard_base_rounds: int = GUARD_BASE_ROUNDS
    guard_max_rounds: int = GUARD_MAX_ROUNDS
    seconds_per_turn: int = SECONDS_PER_TURN
    base_summon_cap: int = BASE_SUMMON_CAP
    max_summon_cap: int = MAX_SUMMON_CAP
    summon_base_turns: int = SUMMON_BASE_TURNS
    low_stamina_floor: float = LOW_STAMINA_FLOOR
    boss_summon_threshold: float = BOSS_SUMMON_THRESHOLD
    unarmed_skill_threshold: int = UNARMED_SKILL_THRESHOLD
    shield_block_skill_threshold: int = SHIELD_BLOCK_SKILL_THRESHOLD
    food_heal: int = FOOD_HEAL
    ledger_retention_seconds: int = LEDGER_RETENTION_SECONDS


def _load_config(path: Path) -> dict[str, Any]:
    if path.exists():
        with open(path, "rb") as f:
            return tomllib.load(f)
    return {}


def load_settings(path: Path | None = None) -> CombatSettings:
    """Build settings from a TOML file, falling back to defaults for missing keys."""
    try:
        data = _load_config(path or CONFIG_PATH)
    except tomllib.TOMLDecodeError as e:
        logger.warning(f"Ignoring malformed combat config: {e}")
        data = {}
    values = dict(data.get("combat", {}))
    ledger = data.get("ledger", {})
    if "retention_seconds" in ledger:
        values["ledger_retention_seconds"] = ledger["retention_seconds"]
    return CombatSettings(**values)


_settings: CombatSettings | None = None


def get_settings() -> CombatSettings:
    """Process-wide settings, loaded once on first use."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings
