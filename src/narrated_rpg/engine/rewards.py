"""Victory rewards: score the fallen, roll their loot, and grant it once."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from narrated_rpg.mechanics.item_stats import enrich_item
from narrated_rpg.mechanics.loot import FALLBACK_NAME, compute_enemy_xp, generate_enemy_loot, merge_by_name
from narrated_rpg.models.combat import CombatResult, CombatState, RewardBundle
from narrated_rpg.models.item import InventoryItem
from narrated_rpg.storage.transaction_ledger import FilterResult, TransactionLedger, filter_duplicate_transactions

logger = logging.getLogger(__name__)


@dataclass
class RewardGrant:
    """What actually reached the character after ledger filtering."""
    inventory: list[InventoryItem]
    gold: int = 0
    xp: int = 0
    items: list[InventoryItem] = field(default_factory=list)
    transaction_id: str | None = None
    filtered: FilterResult | None = None

    @property
    def applied(self) -> bool:
        return bool(self.gold or self.xp or self.items)


def defeated_enemies(state: CombatState) -> list:
    """Fallen enemies that pay out; conjured minions leave nothing behind."""
    return [e for e in state.enemies if not e.is_alive and not e.is_summon]


def populate_pending_rewards(state: CombatState, rng=None) -> CombatState:
    """Score XP and roll loot for every defeated enemy. Mutates and returns ``state``.

    Coin pouches become gold; everything else waits in ``pending_loot`` for
    the player to pick from. The bundle is a preview until finalized.
    """
    xp = 0
    gold = 0
    drops: list[InventoryItem] = []
    for enemy in defeated_enemies(state):
        xp += compute_enemy_xp(enemy)
        for item in generate_enemy_loot(enemy, rng):
            if item.name == FALLBACK_NAME:
                gold += item.quantity
            else:
                drops.append(item)

    state.pending_loot = merge_by_name(drops)
    state.pending_rewards = RewardBundle(xp=xp, gold=gold, items=list(state.pending_loot), preview=True)
    logger.info(f"Pending rewards for combat {state.id}: {xp} xp, {gold} gold, {len(state.pending_loot)} items")
    return state


def _stack_into(inventory: list[InventoryItem], item: InventoryItem, character_id: str) -> None:
    for held in inventory:
        if held.name.lower() == item.name.lower() and not held.equipped:
            held.quantity += item.quantity
            return
    inventory.append(item.model_copy(update={"character_id": character_id, "equipped": False}))


def apply_rewards(
    bundle: RewardBundle,
    inventory: list[InventoryItem],
    ledger: TransactionLedger,
    character_id: str = "",
) -> RewardGrant:
    """Grant a finalized bundle through the ledger.

    Replaying a bundle whose transaction id the ledger has seen grants nothing;
    preview bundles are never granted.
    """
    update = {
        "transaction_id": bundle.transaction_id,
        "gold_change": bundle.gold,
        "xp_change": bundle.xp,
        "new_items": list(bundle.items),
        "is_preview": bundle.preview,
    }
    result = filter_duplicate_transactions(update, ledger)
    granted = result.update

    new_inventory = [i.model_copy() for i in inventory]
    items = list(granted.get("new_items") or [])
    for item in items:
        _stack_into(new_inventory, item, character_id)
    return RewardGrant(
        inventory=new_inventory,
        gold=granted.get("gold_change") or 0,
        xp=granted.get("xp_change") or 0,
        items=items,
        transaction_id=bundle.transaction_id,
        filtered=result,
    )


def finalize_loot(
    state: CombatState,
    selected: list[str] | None,
    inventory: list[InventoryItem],
    character_id: str,
    ledger: TransactionLedger,
) -> tuple[CombatState, RewardGrant]:
    """Close out a won combat with the loot the player chose to keep.

    ``selected`` holds item ids or names from ``pending_loot``; ``None`` keeps
    everything. Returns the settled state and the grant.

    A state that was already settled is not scored again: its stamped bundle
    is replayed through the ledger, which refuses the duplicate.
    """
    work = state.model_copy(deep=True)
    if work.rewards is not None:
        logger.info(f"Combat {work.id} already settled as {work.rewards.transaction_id}")
        return work, apply_rewards(work.rewards, inventory, ledger, character_id)
    if work.pending_rewards is None:
        populate_pending_rewards(work)
    pending = work.pending_rewards

    wanted = None if selected is None else {s.lower() for s in selected}
    kept = [
        enrich_item(item) for item in work.pending_loot
        if wanted is None or item.id.lower() in wanted or item.name.lower() in wanted
    ]

    ledger.set_character(character_id)
    bundle = RewardBundle(
        transaction_id=ledger.generate_transaction_id(),
        xp=pending.xp,
        gold=pending.gold,
        items=kept,
        preview=False,
    )
    grant = apply_rewards(bundle, inventory, ledger, character_id)

    work.result = CombatResult.VICTORY
    work.pending_loot = []
    work.pending_rewards = None
    work.rewards = bundle
    logger.info(f"Finalized combat {work.id} as {bundle.transaction_id}: {len(kept)} items kept")
    return work, grant
