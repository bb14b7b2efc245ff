"""Reward transaction ledger.

Tracks which reward bundles have already been applied for the active
character so a replayed or duplicated update never grants twice. Entries
expire after a retention window; one ledger lives per session/character.
"""
from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Any, Callable

from narrated_rpg.config import get_settings

logger = logging.getLogger(__name__)


@dataclass
class Transaction:
    id: str
    kind: str  # gold | xp | items | mixed
    gold_amount: int = 0
    xp_amount: int = 0
    items: list[dict[str, Any]] = field(default_factory=list)
    timestamp: float = 0.0
    character_id: str | None = None


@dataclass
class LedgerDecision:
    apply: bool
    reason: str  # valid | no_change | preview_only | duplicate_transaction


@dataclass
class FilterResult:
    update: dict[str, Any]
    was_filtered: bool
    reason: str


def _kind(gold: int, xp: int, items: list) -> str:
    if gold and not xp and not items:
        return "gold"
    if items and not gold and not xp:
        return "items"
    if xp and not gold and not items:
        return "xp"
    return "mixed"


class TransactionLedger:
    """Applied-transaction table scoped to one character."""

    def __init__(
        self,
        character_id: str | None = None,
        retention_seconds: float | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.character_id = character_id
        self.retention_seconds = (
            retention_seconds if retention_seconds is not None
            else get_settings().ledger_retention_seconds
        )
        self._clock = clock
        self._transactions: dict[str, Transaction] = {}

    def set_character(self, character_id: str | None) -> None:
        """Switch the active character; switching clears the table."""
        if character_id != self.character_id:
            self._transactions.clear()
            self.character_id = character_id

    def _evict_expired(self) -> None:
        cutoff = self._clock() - self.retention_seconds
        expired = [tid for tid, txn in self._transactions.items() if txn.timestamp < cutoff]
        for tid in expired:
            del self._transactions[tid]
        if expired:
            logger.debug(f"Evicted {len(expired)} expired transactions")

    def has_transaction(self, transaction_id: str) -> bool:
        self._evict_expired()
        return transaction_id in self._transactions

    def record_transaction(
        self,
        transaction_id: str,
        gold_amount: int = 0,
        xp_amount: int = 0,
        items: list[dict[str, Any]] | None = None,
    ) -> Transaction:
        self._evict_expired()
        items = list(items or [])
        txn = Transaction(
            id=transaction_id,
            kind=_kind(gold_amount, xp_amount, items),
            gold_amount=gold_amount,
            xp_amount=xp_amount,
            items=items,
            timestamp=self._clock(),
            character_id=self.character_id,
        )
        self._transactions[transaction_id] = txn
        return txn

    def generate_transaction_id(self) -> str:
        millis = int(self._clock() * 1000)
        return f"txn_{millis}_{random.getrandbits(40):010x}"

    def _decide(self, amount_present: bool, transaction_id: str | None, is_preview: bool) -> LedgerDecision:
        if not amount_present:
            return LedgerDecision(False, "no_change")
        if is_preview:
            return LedgerDecision(False, "preview_only")
        if transaction_id and self.has_transaction(transaction_id):
            return LedgerDecision(False, "duplicate_transaction")
        return LedgerDecision(True, "valid")

    def should_apply_gold(self, gold: int | None, transaction_id: str | None = None,
                          is_preview: bool = False) -> LedgerDecision:
        return self._decide(bool(gold), transaction_id, is_preview)

    def should_apply_xp(self, xp: int | None, transaction_id: str | None = None,
                        is_preview: bool = False) -> LedgerDecision:
        return self._decide(bool(xp), transaction_id, is_preview)

    def should_apply_items(self, items: list | None, transaction_id: str | None = None,
                           is_preview: bool = False) -> LedgerDecision:
        return self._decide(bool(items), transaction_id, is_preview)

    def recent_transactions(self, limit: int = 10) -> list[Transaction]:
        self._evict_expired()
        return sorted(self._transactions.values(), key=lambda t: t.timestamp, reverse=True)[:limit]

    def reset(self) -> None:
        self._transactions.clear()

    def __len__(self) -> int:
        return len(self._transactions)


def _item_summary(item: Any) -> dict[str, Any]:
    if isinstance(item, dict):
        return {"name": item.get("name"), "quantity": item.get("quantity", 1)}
    return {"name": getattr(item, "name", None), "quantity": getattr(item, "quantity", 1)}


def filter_duplicate_transactions(update: dict[str, Any], ledger: TransactionLedger) -> FilterResult:
    """Strip gold/xp/items a ledger has already applied (or that are preview-only).

    ``update`` keys: ``gold_change``, ``xp_change``, ``new_items``,
    ``transaction_id``, ``is_preview``. A fresh, non-preview update with a
    transaction id is recorded so its replay is filtered next time.
    """
    txn_id = update.get("transaction_id")
    preview = bool(update.get("is_preview"))
    checks = {
        "gold_change": ledger.should_apply_gold(update.get("gold_change"), txn_id, preview),
        "xp_change": ledger.should_apply_xp(update.get("xp_change"), txn_id, preview),
        "new_items": ledger.should_apply_items(update.get("new_items"), txn_id, preview),
    }

    filtered = dict(update)
    reasons: list[str] = []
    for key, decision in checks.items():
        if update.get(key) and not decision.apply:
            filtered.pop(key, None)
            reasons.append(decision.reason)

    if reasons:
        logger.info(f"Filtered reward update {txn_id}: {','.join(reasons)}")
    elif txn_id:
        ledger.record_transaction(
            txn_id,
            gold_amount=update.get("gold_change") or 0,
            xp_amount=update.get("xp_change") or 0,
            items=[_item_summary(i) for i in update.get("new_items") or []],
        )
    return FilterResult(update=filtered, was_filtered=bool(reasons), reason=",".join(reasons) or "applied")
