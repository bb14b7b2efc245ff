from __future__ import annotations

import uuid
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from narrated_rpg.models.ability import ActiveEffect
from narrated_rpg.models.actor import Actor
from narrated_rpg.models.item import InventoryItem
from narrated_rpg.utils import safe_json

PLAYER_ID = "player"


class CombatResult(str, Enum):
    ACTIVE = "active"
    VICTORY = "victory"
    DEFEAT = "defeat"
    FLED = "fled"
    SURRENDERED = "surrendered"


class LogEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    turn: int
    actor: str
    actor_id: str = ""
    action: str
    target: Optional[str] = None
    target_id: Optional[str] = None
    damage: int = 0
    healing: int = 0
    nat: Optional[int] = None
    roll_tier: Optional[str] = None
    is_crit: bool = False
    effect: Optional[str] = None
    narrative: str = ""
    auto: bool = False


class PendingSummon(BaseModel):
    companion_id: str
    player_turns_remaining: int
    scale: float = 1.0
    roll: Optional[int] = None


class RewardBundle(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    transaction_id: Optional[str] = None
    xp: int = 0
    gold: int = 0
    items: list[InventoryItem] = Field(default_factory=list)
    preview: bool = False


class CombatState(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    location: str = ""
    turn: int = 1
    current_turn_actor: str = PLAYER_ID
    turn_order: list[str] = Field(default_factory=list)
    enemies: list[Actor] = Field(default_factory=list)
    allies: list[Actor] = Field(default_factory=list)
    combat_log: list[LogEntry] = Field(default_factory=list)
    ability_cooldowns: dict[str, int] = Field(default_factory=dict)
    actor_cooldowns: dict[str, dict[str, int]] = Field(default_factory=dict)
    pending_summons: list[PendingSummon] = Field(default_factory=list)
    pending_loot: list[InventoryItem] = Field(default_factory=list)
    pending_rewards: Optional[RewardBundle] = None
    rewards: Optional[RewardBundle] = None
    player_active_effects: list[ActiveEffect] = Field(default_factory=list)
    player_defending: bool = False
    player_guard_used: bool = False
    player_name: str = "You"
    player_level: int = 1
    flee_allowed: bool = True
    surrender_allowed: bool = False
    last_actor_actions: dict[str, str] = Field(default_factory=dict)
    boss_summons: dict[str, str] = Field(default_factory=dict)
    result: CombatResult = CombatResult.ACTIVE

    def find_actor(self, actor_id: str) -> Optional[Actor]:
        for actor in self.enemies + self.allies:
            if actor.id == actor_id:
                return actor
        return None

    def is_enemy(self, actor_id: str) -> bool:
        return any(e.id == actor_id for e in self.enemies)

    def living_enemies(self) -> list[Actor]:
        return [e for e in self.enemies if e.is_alive]

    def living_allies(self) -> list[Actor]:
        return [a for a in self.allies if a.is_alive]

    @property
    def is_over(self) -> bool:
        return self.result != CombatResult.ACTIVE

    def to_dict(self) -> dict[str, Any]:
        """Plain structural form for the save layer."""
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: dict[str, Any] | str) -> CombatState:
        return cls.model_validate(safe_json(data))
