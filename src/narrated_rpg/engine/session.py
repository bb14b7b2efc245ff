"""One combat for one character: action economy, the turn loop and payout."""
from __future__ import annotations

import logging

from narrated_rpg.config import CombatSettings, get_settings
from narrated_rpg.engine.resolver import (
    execute_companion_action,
    execute_enemy_turn,
    execute_player_action,
    skip_actor_turn,
)
from narrated_rpg.engine.rewards import RewardGrant, finalize_loot, populate_pending_rewards
from narrated_rpg.engine.turns import advance_turn, check_combat_end
from narrated_rpg.models.action import ActionKind, ActionOutcome, ConsumedAction
from narrated_rpg.models.character import CharacterSheet, PlayerCombatStats
from narrated_rpg.models.combat import PLAYER_ID, CombatResult, CombatState
from narrated_rpg.models.item import InventoryItem
from narrated_rpg.storage.transaction_ledger import TransactionLedger

logger = logging.getLogger(__name__)


class CombatSession:
    """Drives a combat from the player's seat.

    Each player turn allows one main and one bonus action. ``end_player_turn``
    hands control to allies and enemies until the player is up again.
    """

    def __init__(
        self,
        state: CombatState,
        player_stats: PlayerCombatStats,
        character: CharacterSheet | None = None,
        inventory: list[InventoryItem] | None = None,
        ledger: TransactionLedger | None = None,
        rng=None,
        settings: CombatSettings | None = None,
    ) -> None:
        self.state = state
        self.player_stats = player_stats
        self.character = character
        self.inventory = list(inventory or [])
        self.ledger = ledger or TransactionLedger(character.id if character else None)
        self.rng = rng
        self.settings = settings or get_settings()
        self.main_used = False
        self.bonus_used = False
        self.grant: RewardGrant | None = None

    @property
    def is_over(self) -> bool:
        return self.state.is_over

    @property
    def is_player_turn(self) -> bool:
        return self.state.current_turn_actor == PLAYER_ID and not self.state.is_over

    def _refuse(self, narrative: str) -> ActionOutcome:
        logger.info(f"Session refused action: {narrative}")
        return ActionOutcome(new_state=self.state, new_actor_stats=self.player_stats,
                             narrative=narrative, consumed_action=ConsumedAction.NONE, rejected=True)

    def _slot_taken(self, outcome: ActionOutcome) -> str | None:
        if outcome.consumed_action == ConsumedAction.MAIN and self.main_used:
            return "You have already used your main action this turn."
        if outcome.consumed_action == ConsumedAction.BONUS and self.bonus_used:
            return "You have already used your bonus action this turn."
        if outcome.bonus_consumed and self.bonus_used:
            return "You have no bonus action left for special ammunition."
        return None

    def _take_item(self, used: InventoryItem) -> None:
        for i, held in enumerate(self.inventory):
            if held.id == used.id:
                if used.quantity > 0:
                    self.inventory[i] = used
                else:
                    del self.inventory[i]
                return

    def perform(
        self,
        kind: ActionKind | str,
        target_id: str | None = None,
        ability_id: str | None = None,
        item_id: str | None = None,
        outcome_roll: int | None = None,
    ) -> ActionOutcome:
        """Resolve a player action if this turn still has the slot it needs."""
        if not self.is_player_turn:
            return self._refuse("It is not your turn.")
        if self.main_used and self.bonus_used:
            return self._refuse("You have nothing left to do this turn.")

        outcome = execute_player_action(
            self.state, self.player_stats, kind,
            target_id=target_id, ability_id=ability_id, item_id=item_id,
            inventory=self.inventory, outcome_roll=outcome_roll,
            character=self.character, rng=self.rng, settings=self.settings,
        )
        if outcome.rejected:
            return outcome
        if outcome.turn_forfeited:
            self.main_used = self.bonus_used = True
            self.state = outcome.new_state
            self.player_stats = outcome.new_actor_stats or self.player_stats
            return outcome
        taken = self._slot_taken(outcome)
        if taken:
            return self._refuse(taken)

        if outcome.consumed_action == ConsumedAction.MAIN:
            self.main_used = True
        elif outcome.consumed_action == ConsumedAction.BONUS:
            self.bonus_used = True
        if outcome.bonus_consumed:
            self.bonus_used = True
        if outcome.used_item is not None:
            self._take_item(outcome.used_item)

        self.state = outcome.new_state
        if outcome.new_actor_stats is not None:
            self.player_stats = outcome.new_actor_stats
        self.state = check_combat_end(self.state, self.player_stats)
        return outcome

    def _act_for(self, actor_id: str) -> ActionOutcome:
        actor = self.state.find_actor(actor_id)
        if self.state.is_enemy(actor_id):
            return execute_enemy_turn(self.state, actor_id, self.player_stats,
                                      rng=self.rng, settings=self.settings)
        meta = actor.companion_meta
        if meta is not None and not meta.auto_control:
            return skip_actor_turn(self.state, actor_id, self.player_stats,
                                   reason=f"{actor.name} awaits your command.")
        return execute_companion_action(self.state, actor_id, self.player_stats,
                                        rng=self.rng, settings=self.settings)

    def end_player_turn(self) -> list[str]:
        """Run everyone else's turns. Returns their narrative lines in order."""
        lines: list[str] = []
        self.main_used = False
        self.bonus_used = False
        # every living combatant gets at most one turn before the player is back
        for _ in range(len(self.state.turn_order) + 1):
            if self.state.is_over:
                break
            adv = advance_turn(self.state, self.player_stats, self.settings)
            self.state = adv.state
            if adv.player_stats is not None:
                self.player_stats = adv.player_stats
            lines += adv.narrative
            if self.state.is_over or adv.actor_id == PLAYER_ID:
                break
            if self.state.find_actor(adv.actor_id) is None:
                continue
            outcome = self._act_for(adv.actor_id)
            self.state = outcome.new_state
            if outcome.new_actor_stats is not None:
                self.player_stats = outcome.new_actor_stats
            if outcome.narrative:
                lines.append(outcome.narrative)
            self.state = check_combat_end(self.state, self.player_stats)
        return lines

    def finish(self, selected: list[str] | None = None) -> RewardGrant | None:
        """Pay out a victory. Calling it again returns the same grant."""
        if self.grant is not None:
            return self.grant
        if self.state.result != CombatResult.VICTORY:
            return None
        if self.state.pending_rewards is None and self.state.rewards is None:
            populate_pending_rewards(self.state, self.rng)
        character_id = self.character.id if self.character else (self.ledger.character_id or "")
        self.state, self.grant = finalize_loot(self.state, selected, self.inventory, character_id, self.ledger)
        self.inventory = self.grant.inventory
        return self.grant
