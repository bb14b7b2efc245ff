from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from narrated_rpg.models.character import PlayerCombatStats
from narrated_rpg.models.combat import CombatState
from narrated_rpg.models.item import InventoryItem


class ActionKind(str, Enum):
    ATTACK = "attack"
    DEFEND = "defend"
    MAGIC = "magic"
    ITEM = "item"
    SKIP = "skip"
    FLEE = "flee"
    SURRENDER = "surrender"


class ConsumedAction(str, Enum):
    MAIN = "main"
    BONUS = "bonus"
    NONE = "none"


@dataclass
class AoeHit:
    id: str
    name: str
    amount: int


@dataclass
class AoeSummary:
    damaged: list[AoeHit] = field(default_factory=list)
    healed: list[AoeHit] = field(default_factory=list)


@dataclass
class ActionOutcome:
    new_state: CombatState
    new_actor_stats: Optional[PlayerCombatStats] = None
    narrative: str = ""
    used_item: Optional[InventoryItem] = None
    aoe_summary: Optional[AoeSummary] = None
    consumed_action: ConsumedAction = ConsumedAction.MAIN
    bonus_consumed: bool = False  # special ammunition rides on a main attack
    turn_forfeited: bool = False  # a stun ate the whole turn
    rejected: bool = False
