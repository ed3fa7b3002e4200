# Overview: Durable key-value persistence for the ledger collections, with versioned payloads.

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import LedgerCollection, DEFAULT_MIN_STOCK_LEVEL
from ..validation import StorageIOError
from .concurrency import apply_statement_timeout, run_with_retry

"""
Storage layout (authoritative)

- Five keys: shops, products, inventory, sales (JSON arrays of entity dicts)
  and activeShop (a JSON string; the row is absent when no shop is active).
- Every row carries schema_version. Rows are always written at
  CURRENT_SCHEMA_VERSION; older rows are upgraded in memory on load and
  rewritten at the current version on the next flush of that key.
- Version 1 is the unversioned browser-storage shape: shops carry `shopNo`
  instead of `storeNumber`, inventory rows may lack `minStockLevel`, money
  values are JSON numbers.
"""

logger = logging.getLogger(__name__)

SHOPS = "shops"
PRODUCTS = "products"
INVENTORY = "inventory"
SALES = "sales"
ACTIVE_SHOP = "activeShop"

COLLECTION_KEYS = (SHOPS, PRODUCTS, INVENTORY, SALES)
ALL_KEYS = COLLECTION_KEYS + (ACTIVE_SHOP,)

LEGACY_SCHEMA_VERSION = 1
CURRENT_SCHEMA_VERSION = 2


def _require_rows(key: str, payload: Any) -> list[dict]:
    if not isinstance(payload, list) or not all(isinstance(row, dict) for row in payload):
        raise StorageIOError(f"Stored {key} data is corrupt")
    return payload


def _upgrade_v1_to_v2(key: str, payload: Any) -> Any:
    if key in (SHOPS, INVENTORY):
        payload = _require_rows(key, payload)
    if key == SHOPS:
        upgraded = []
        for shop in payload:
            shop = dict(shop)
            if "storeNumber" not in shop and "shopNo" in shop:
                shop["storeNumber"] = shop.pop("shopNo")
            upgraded.append(shop)
        return upgraded
    if key == INVENTORY:
        upgraded = []
        for entry in payload:
            entry = dict(entry)
            entry.setdefault("minStockLevel", DEFAULT_MIN_STOCK_LEVEL)
            upgraded.append(entry)
        return upgraded
    return payload


# from_version -> step that returns the payload at from_version + 1
UPGRADES: dict[int, Callable[[str, Any], Any]] = {
    1: _upgrade_v1_to_v2,
}


def upgrade_payload(key: str, version: int, payload: Any) -> Any:
    """Run every upgrade step from `version` up to CURRENT_SCHEMA_VERSION."""
    if version > CURRENT_SCHEMA_VERSION:
        raise StorageIOError(
            f"Stored {key} data uses schema version {version}, newer than supported {CURRENT_SCHEMA_VERSION}"
        )
    while version < CURRENT_SCHEMA_VERSION:
        step = UPGRADES.get(version)
        if step is None:
            raise StorageIOError(f"No upgrade path for {key} from schema version {version}")
        payload = step(key, payload)
        version += 1
    return payload


def _check_key(key: str) -> None:
    if key not in ALL_KEYS:
        raise ValueError(f"Unknown ledger collection: {key}")


class PersistenceAdapter:
    """
    Load/save the five ledger keys in the ledger_collections table.

    Writes are synchronous: save/save_many return only after the commit
    succeeded, and raise StorageIOError otherwise. Transient lock errors are
    retried with backoff; each attempt is bounded by `flush_timeout` seconds.
    """

    def __init__(
        self,
        session=None,
        *,
        flush_timeout: Optional[float] = 5.0,
        retry_attempts: int = 3,
        retry_backoff: float = 0.1,
    ):
        self._session = session
        self.flush_timeout = flush_timeout
        self.retry_attempts = retry_attempts
        self.retry_backoff = retry_backoff

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def load(self, key: str) -> Any | None:
        """Return the upgraded payload for `key`, or None when it was never stored."""
        _check_key(key)
        try:
            row = self.session.get(LedgerCollection, key)
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StorageIOError(f"Could not load {key}") from exc

        if row is None:
            return None

        try:
            payload = json.loads(row.payload)
        except ValueError as exc:
            raise StorageIOError(f"Stored {key} data is corrupt") from exc

        try:
            return upgrade_payload(key, row.schema_version, payload)
        except (TypeError, ValueError) as exc:
            raise StorageIOError(f"Stored {key} data is corrupt") from exc

    def load_all(self) -> dict[str, Any]:
        return {key: self.load(key) for key in ALL_KEYS}

    def exists(self, keys: Iterable[str] = COLLECTION_KEYS) -> bool:
        """True if any of `keys` has ever been stored."""
        keys = list(keys)
        for key in keys:
            _check_key(key)
        try:
            count = (
                self.session.query(LedgerCollection)
                .filter(LedgerCollection.key.in_(keys))
                .count()
            )
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StorageIOError("Could not inspect stored collections") from exc
        return count > 0

    def save(self, key: str, data: Any) -> None:
        self.save_many({key: data})

    def save_many(self, entries: dict[str, Any], *, schema_version: int = CURRENT_SCHEMA_VERSION) -> None:
        """
        Write several keys in one DB transaction.

        A value of None removes the row (used for a cleared activeShop).
        """
        for key in entries:
            _check_key(key)
        encoded = {
            key: (json.dumps(value) if value is not None else None)
            for key, value in entries.items()
        }
        session = self.session

        def _op():
            apply_statement_timeout(session, self.flush_timeout)
            for key, payload in encoded.items():
                row = session.get(LedgerCollection, key)
                if payload is None:
                    if row is not None:
                        session.delete(row)
                    continue
                if row is None:
                    row = LedgerCollection(key=key)
                    session.add(row)
                row.payload = payload
                row.schema_version = schema_version
            session.commit()

        try:
            run_with_retry(
                _op,
                session=session,
                attempts=self.retry_attempts,
                backoff_base=self.retry_backoff,
            )
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("Ledger flush failed for %s", ", ".join(encoded))
            raise StorageIOError("Changes could not be saved and may not persist") from exc

    def clear(self) -> None:
        """Remove every stored key (used by reset and snapshot import)."""
        try:
            self.session.query(LedgerCollection).delete()
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StorageIOError("Could not clear stored collections") from exc
