# Overview: Per-shop inventory rows keyed by (shop_id, product_id).

from __future__ import annotations

import copy
from typing import Callable, Optional

from ..models import DEFAULT_MIN_STOCK_LEVEL, InventoryEntry
from ..validation import NotFoundError, ValidationError, coerce_quantity
from .persistence_service import INVENTORY
from .result import result_boundary

"""
Inventory invariants (authoritative)

- At most one row per (shop_id, product_id).
- quantity >= 0. upsert REPLACES quantity (last write wins); it never adds.
- A row is created lazily by the first upsert for its key, with
  min_stock_level = 5 and last_updated = now.
- upsert does not check that the shop or product exists; callers do.
- Sales do not touch these rows: sales deplete the global Product.stock.
"""


class InventoryLedger:
    def __init__(self, ledger):
        self.ledger = ledger

    def _rows(self) -> list[InventoryEntry]:
        return self.ledger.state.inventory

    def _find(self, shop_id: str, product_id: str) -> Optional[InventoryEntry]:
        for entry in self._rows():
            if entry.shop_id == shop_id and entry.product_id == product_id:
                return entry
        return None

    def _remove_where(self, predicate: Callable[[InventoryEntry], bool]) -> int:
        """Drop matching rows in place. Caller must hold an inventory transaction."""
        rows = self._rows()
        kept = [entry for entry in rows if not predicate(entry)]
        removed = len(rows) - len(kept)
        rows[:] = kept
        return removed

    @staticmethod
    def _check_key(shop_id: str, product_id: str) -> None:
        if not shop_id:
            raise ValidationError("shopId is required")
        if not product_id:
            raise ValidationError("productId is required")

    def get(self, shop_id: str, product_id: str) -> Optional[InventoryEntry]:
        with self.ledger.lock:
            return copy.deepcopy(self._find(shop_id, product_id))

    @result_boundary
    def upsert(self, shop_id: str, product_id: str, quantity) -> InventoryEntry:
        self._check_key(shop_id, product_id)
        quantity = coerce_quantity(quantity, "quantity")

        with self.ledger.transaction(INVENTORY):
            now = self.ledger.now()
            entry = self._find(shop_id, product_id)
            if entry is None:
                entry = InventoryEntry(
                    shop_id=shop_id,
                    product_id=product_id,
                    quantity=quantity,
                    min_stock_level=DEFAULT_MIN_STOCK_LEVEL,
                    last_updated=now,
                )
                self._rows().append(entry)
            else:
                entry.quantity = quantity
                entry.last_updated = now
        return copy.deepcopy(entry)

    @result_boundary
    def set_min_stock_level(self, shop_id: str, product_id: str, level) -> InventoryEntry:
        self._check_key(shop_id, product_id)
        level = coerce_quantity(level, "minStockLevel")

        with self.ledger.transaction(INVENTORY):
            entry = self._find(shop_id, product_id)
            if entry is None:
                raise NotFoundError("Inventory entry not found")
            entry.min_stock_level = level
            entry.last_updated = self.ledger.now()
        return copy.deepcopy(entry)

    @result_boundary
    def remove(self, shop_id: str, product_id: str) -> bool:
        with self.ledger.lock:
            if self._find(shop_id, product_id) is None:
                return False
            with self.ledger.transaction(INVENTORY):
                self._remove_where(lambda e: e.shop_id == shop_id and e.product_id == product_id)
            return True

    def list(self) -> list[InventoryEntry]:
        with self.ledger.lock:
            return copy.deepcopy(self._rows())

    def list_for_shop(self, shop_id: str) -> list[InventoryEntry]:
        with self.ledger.lock:
            return copy.deepcopy([e for e in self._rows() if e.shop_id == shop_id])

    def list_for_product(self, product_id: str) -> list[InventoryEntry]:
        with self.ledger.lock:
            return copy.deepcopy([e for e in self._rows() if e.product_id == product_id])

    def status_for_shop(self, shop_id: str) -> dict:
        """
        Stock health counters for one shop.

        outOfStock: quantity == 0
        lowStock:   0 < quantity <= min_stock_level
        """
        low = out = 0
        with self.ledger.lock:
            for entry in self._rows():
                if entry.shop_id != shop_id:
                    continue
                if entry.quantity == 0:
                    out += 1
                elif entry.quantity <= entry.min_stock_level:
                    low += 1
        return {"shopId": shop_id, "lowStock": low, "outOfStock": out}
