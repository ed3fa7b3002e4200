# Overview: The Store Ledger repository object: owns state, the writer lock and the flush protocol.

from __future__ import annotations

import copy
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from decimal import InvalidOperation
from typing import Any, Callable, Optional

from ..models import Actor, InventoryEntry, LedgerState, Product, Sale, Shop
from ..validation import StorageIOError, ValidationError
from shopsavvy.time_utils import utcnow
from .active_shop_service import ActiveShopSelector
from .entity_store import ProductStore, ShopStore
from .inventory_service import InventoryLedger
from .persistence_service import (
    ACTIVE_SHOP,
    ALL_KEYS,
    COLLECTION_KEYS,
    CURRENT_SCHEMA_VERSION,
    INVENTORY,
    LEGACY_SCHEMA_VERSION,
    PRODUCTS,
    SALES,
    SHOPS,
    PersistenceAdapter,
    upgrade_payload,
)
from .result import Result, result_boundary
from .sales_service import SaleProcessor
from .seed_data import build_demo_state
from .user_directory import UserDirectory

"""
Store Ledger invariants (authoritative)

Single writer:
- One re-entrant lock guards all state. Every mutation runs its
  read-check-write sequence and its flush while holding it, so uniqueness
  checks and sale sequence numbers cannot interleave.

Transactions:
- transaction(*keys) snapshots the named collections, runs the mutation,
  then flushes exactly those keys in one DB commit.
- If the mutation raises or the flush fails, the snapshot is restored:
  in-memory state never runs ahead of durable state.

Loading:
- Nothing stored yet -> seed the demo dataset and flush it.
- Load failure -> log and fall back to the demo dataset in memory (no flush).
  While on the fallback dataset every transaction is refused, so stored
  rows are never overwritten with demo data. reset() or import_snapshot()
  replaces storage and lifts the block.
- After load, expired products are deactivated.
"""

logger = logging.getLogger(__name__)

_STATE_ATTRS = {
    SHOPS: "shops",
    PRODUCTS: "products",
    INVENTORY: "inventory",
    SALES: "sales",
    ACTIVE_SHOP: "active_shop_id",
}


@dataclass(frozen=True)
class LoadReport:
    seeded: bool = False
    fallback: bool = False
    deactivated: int = 0

    def to_dict(self) -> dict:
        return {"seeded": self.seeded, "fallback": self.fallback, "deactivated": self.deactivated}


def serialize_state(state: LedgerState, keys=ALL_KEYS) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key in keys:
        value = getattr(state, _STATE_ATTRS[key])
        if key == ACTIVE_SHOP:
            out[key] = value
        else:
            out[key] = [item.to_dict() for item in value]
    return out


def state_from_payloads(payloads: dict[str, Any]) -> LedgerState:
    """Build entities from upgraded payloads. Corrupt rows raise StorageIOError."""
    try:
        return LedgerState(
            shops=[Shop.from_dict(d) for d in payloads.get(SHOPS) or []],
            products=[Product.from_dict(d) for d in payloads.get(PRODUCTS) or []],
            inventory=[InventoryEntry.from_dict(d) for d in payloads.get(INVENTORY) or []],
            sales=[Sale.from_dict(d) for d in payloads.get(SALES) or []],
            active_shop_id=payloads.get(ACTIVE_SHOP) or None,
        )
    except (AttributeError, KeyError, TypeError, ValueError, InvalidOperation) as exc:
        raise StorageIOError("Stored ledger data is corrupt") from exc


class StoreLedger:
    """
    Construct once per process with an injected PersistenceAdapter and pass the
    instance to callers. Tests build isolated instances.
    """

    def __init__(
        self,
        adapter: PersistenceAdapter,
        *,
        users: Optional[UserDirectory] = None,
        clock: Callable = utcnow,
        seed_demo_data: bool = True,
        low_stock_threshold: int = 20,
        expiry_warning_days: int = 7,
    ):
        self.adapter = adapter
        self.clock = clock
        self.seed_demo_data = seed_demo_data
        self.low_stock_threshold = low_stock_threshold
        self.expiry_warning_days = expiry_warning_days

        self.lock = threading.RLock()
        self.state = LedgerState()
        self.loaded = False
        self.fallback = False

        self.shops = ShopStore(self, users)
        self.products = ProductStore(self)
        self.inventory = InventoryLedger(self)
        self.sales = SaleProcessor(self)
        self.active_shop = ActiveShopSelector(self)

    def now(self):
        return self.clock()

    # -- transaction protocol ------------------------------------------------

    @contextmanager
    def transaction(self, *keys: str):
        with self.lock:
            if self.fallback:
                raise StorageIOError(
                    "Stored data could not be read; changes are disabled until it is reset or re-imported"
                )
            snapshot = {key: copy.deepcopy(getattr(self.state, _STATE_ATTRS[key])) for key in keys}
            try:
                yield self.state
                self.adapter.save_many(serialize_state(self.state, keys))
            except BaseException:
                for key, value in snapshot.items():
                    setattr(self.state, _STATE_ATTRS[key], value)
                raise

    # -- load / seed ---------------------------------------------------------

    def _initial_state(self) -> LedgerState:
        return build_demo_state() if self.seed_demo_data else LedgerState()

    def load(self) -> Result:
        """Restore state from storage, seeding the demo dataset on first run."""
        with self.lock:
            seeded = fallback = False
            try:
                if self.adapter.exists(COLLECTION_KEYS):
                    self.state = state_from_payloads(self.adapter.load_all())
                else:
                    self.state = self._initial_state()
                    self.adapter.save_many(serialize_state(self.state))
                    seeded = self.seed_demo_data
                    if seeded:
                        logger.info("No stored ledger found; seeded demo dataset")
            except StorageIOError:
                logger.exception("Could not load ledger; continuing with demo dataset in memory")
                self.state = self._initial_state()
                fallback = True
            self.loaded = True
            self.fallback = fallback

            deactivated = 0
            if not fallback:
                expired = self.products.deactivate_expired()
                if expired.success:
                    deactivated = len(expired.data)

            return Result.ok(LoadReport(seeded=seeded, fallback=fallback, deactivated=deactivated))

    def ensure_loaded(self) -> "StoreLedger":
        with self.lock:
            if not self.loaded:
                self.load()
        return self

    # -- snapshots -----------------------------------------------------------

    def export_snapshot(self) -> dict:
        with self.lock:
            doc = serialize_state(self.state)
        doc["schemaVersion"] = CURRENT_SCHEMA_VERSION
        return doc

    @result_boundary
    def import_snapshot(self, doc: dict) -> LoadReport:
        """
        Replace all state with a snapshot document.

        Documents without `schemaVersion` are treated as a raw browser-storage
        dump (schema version 1) and upgraded on the way in.
        """
        if not isinstance(doc, dict):
            raise ValidationError("Snapshot must be a JSON object")
        version = doc.get("schemaVersion", LEGACY_SCHEMA_VERSION)
        if not isinstance(version, int):
            raise ValidationError("schemaVersion must be an integer")

        payloads = {}
        try:
            for key in ALL_KEYS:
                raw = doc.get(key)
                if key == ACTIVE_SHOP:
                    if raw is not None and not isinstance(raw, str):
                        raise ValidationError("Snapshot field 'activeShop' must be a string")
                    payloads[key] = raw or None
                    continue
                if raw is not None and not isinstance(raw, list):
                    raise ValidationError(f"Snapshot field '{key}' must be a list")
                payloads[key] = upgrade_payload(key, version, raw or [])
            new_state = state_from_payloads(payloads)
        except StorageIOError as exc:
            raise ValidationError(f"Snapshot rejected: {exc}") from exc

        with self.lock:
            self.adapter.save_many(serialize_state(new_state))
            self.state = new_state
            self.loaded = True
            self.fallback = False
        logger.info(
            "Imported snapshot: %d shops, %d products, %d inventory rows, %d sales",
            len(new_state.shops), len(new_state.products),
            len(new_state.inventory), len(new_state.sales),
        )
        return LoadReport()

    @result_boundary
    def reset(self) -> LoadReport:
        """Wipe storage and start again from the initial dataset."""
        with self.lock:
            self.adapter.clear()
            self.loaded = False
        report = self.load()
        return report.data

    # -- scoped reads --------------------------------------------------------

    def scope_for(self, actor: Actor) -> Optional[str]:
        """
        Shop id an actor's reads are limited to.

        Admins follow the active shop (None = every shop); managers and staff
        are pinned to their own shop.
        """
        if actor.is_admin:
            return self.active_shop.get()
        return actor.shop_id

    def _visible(self, actor: Actor, shop_id: str) -> bool:
        if actor.is_admin:
            scope = self.active_shop.get()
            return scope is None or scope == shop_id
        return actor.shop_id is not None and actor.shop_id == shop_id

    def shops_for(self, actor: Actor) -> list[Shop]:
        return [shop for shop in self.shops.list() if self._visible(actor, shop.id)]

    def sales_for(self, actor: Actor) -> list[Sale]:
        return [sale for sale in self.sales.list() if self._visible(actor, sale.shop_id)]

    def inventory_for(self, actor: Actor) -> list[InventoryEntry]:
        return [entry for entry in self.inventory.list() if self._visible(actor, entry.shop_id)]

    def counts(self) -> dict:
        with self.lock:
            return {
                SHOPS: len(self.state.shops),
                PRODUCTS: len(self.state.products),
                INVENTORY: len(self.state.inventory),
                SALES: len(self.state.sales),
            }
