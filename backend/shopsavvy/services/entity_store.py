# Overview: Shop and Product collections: CRUD with uniqueness and cascade rules.

from __future__ import annotations

import copy
import logging
import uuid
from datetime import timedelta
from typing import Generic, Optional, TypeVar

from ..models import Product, Shop
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    coerce_bool,
    coerce_email,
    coerce_money,
    coerce_optional_datetime,
    coerce_quantity,
    optional_text,
    require_text,
)
from .persistence_service import INVENTORY, PRODUCTS, SHOPS
from .result import result_boundary
from .user_directory import NullUserDirectory, UserDirectory

"""
Entity store invariants (authoritative)

- list() is insertion order; get()/list() hand out copies, never live state.
- create/update validate the whole candidate before touching the collection;
  a failure leaves nothing written.
- Shop names are unique case-insensitively; store numbers are unique.
- A shop with sales cannot be deleted. Deleting a shop removes its inventory
  rows and purges the users attached to it.
- Deleting a product removes its inventory rows and never blocks on sales;
  historical sales keep the dangling productId.
"""

logger = logging.getLogger(__name__)

E = TypeVar("E")


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


class EntityStore(Generic[E]):
    collection: str = ""
    label: str = "Entity"
    id_prefix: str = "ent"
    # camelCase wire field -> accepted in create drafts and update patches
    mutable_fields: frozenset[str] = frozenset()

    def __init__(self, ledger):
        self.ledger = ledger

    # -- internal helpers (caller holds the ledger lock) ---------------------

    def _items(self) -> list[E]:
        return getattr(self.ledger.state, self.collection)

    def _index_of(self, entity_id: str) -> Optional[int]:
        for i, item in enumerate(self._items()):
            if item.id == entity_id:
                return i
        return None

    def _require(self, entity_id: str) -> tuple[int, E]:
        index = self._index_of(entity_id)
        if index is None:
            raise NotFoundError(f"{self.label} not found")
        return index, self._items()[index]

    def _coerce(self, data: dict, *, entity_id: str, existing: Optional[E]) -> E:
        raise NotImplementedError

    def _validate(self, entity: E, *, exclude_id: Optional[str]) -> None:
        """Cross-entity checks against the rest of the collection."""

    # -- reads ---------------------------------------------------------------

    def get(self, entity_id: str) -> Optional[E]:
        with self.ledger.lock:
            index = self._index_of(entity_id)
            if index is None:
                return None
            return copy.deepcopy(self._items()[index])

    def list(self) -> list[E]:
        with self.ledger.lock:
            return copy.deepcopy(self._items())

    # -- writes --------------------------------------------------------------

    @result_boundary
    def create(self, draft: dict) -> E:
        if not isinstance(draft, dict):
            raise ValidationError(f"{self.label} data must be an object")
        fields = {k: v for k, v in draft.items() if k in self.mutable_fields}
        with self.ledger.transaction(self.collection):
            entity = self._coerce(fields, entity_id=_new_id(self.id_prefix), existing=None)
            self._validate(entity, exclude_id=None)
            self._items().append(entity)
        logger.info("%s created: %s", self.label, entity.id)
        return copy.deepcopy(entity)

    @result_boundary
    def update(self, entity_id: str, patch: dict) -> E:
        if not isinstance(patch, dict):
            raise ValidationError(f"{self.label} data must be an object")
        with self.ledger.transaction(self.collection):
            index, current = self._require(entity_id)
            merged = current.to_dict()
            merged.update({k: v for k, v in patch.items() if k in self.mutable_fields})
            updated = self._coerce(merged, entity_id=entity_id, existing=current)
            self._validate(updated, exclude_id=entity_id)
            self._items()[index] = updated
        return copy.deepcopy(updated)


class ShopStore(EntityStore[Shop]):
    collection = SHOPS
    label = "Store"
    id_prefix = "shop"
    mutable_fields = frozenset({
        "name", "storeNumber", "address", "managerId", "superAdminId", "phone", "email",
    })

    def __init__(self, ledger, users: UserDirectory | None = None):
        super().__init__(ledger)
        self.users = users or NullUserDirectory()

    def _coerce(self, data: dict, *, entity_id: str, existing: Optional[Shop]) -> Shop:
        return Shop(
            id=entity_id,
            name=require_text(data, "name", "Store name"),
            store_number=require_text(data, "storeNumber", "Store number"),
            address=require_text(data, "address", "Address"),
            manager_id=optional_text(data, "managerId"),
            super_admin_id=optional_text(data, "superAdminId"),
            phone=optional_text(data, "phone"),
            email=coerce_email(optional_text(data, "email")),
            created_at=existing.created_at if existing else self.ledger.now(),
        )

    def _validate(self, shop: Shop, *, exclude_id: Optional[str]) -> None:
        name_key = shop.name.casefold()
        for other in self._items():
            if other.id == exclude_id:
                continue
            if other.name.casefold() == name_key:
                raise ValidationError(f"A store named '{shop.name}' already exists")
            if other.store_number == shop.store_number:
                raise ValidationError(f"Store number '{shop.store_number}' is already in use")

    @result_boundary
    def delete(self, shop_id: str) -> bool:
        with self.ledger.transaction(SHOPS, INVENTORY):
            index, _ = self._require(shop_id)
            if any(sale.shop_id == shop_id for sale in self.ledger.state.sales):
                raise ConflictError("This store has sales records and cannot be deleted")
            removed = self.ledger.inventory._remove_where(lambda e: e.shop_id == shop_id)
            del self._items()[index]

        # External collaborator; only purged once the deletion is durable.
        users_removed = self.users.remove_users_by_shop(shop_id)
        logger.info(
            "Store %s deleted (%d inventory rows, %d users removed)",
            shop_id, removed, users_removed,
        )
        return True

    def search(self, term: str) -> list[Shop]:
        """Case-insensitive substring match on name, store number or address."""
        needle = (term or "").strip().casefold()
        with self.ledger.lock:
            matches = [
                shop for shop in self._items()
                if not needle
                or needle in shop.name.casefold()
                or needle in shop.store_number.casefold()
                or needle in shop.address.casefold()
            ]
            return copy.deepcopy(matches)


class ProductStore(EntityStore[Product]):
    collection = PRODUCTS
    label = "Product"
    id_prefix = "prod"
    mutable_fields = frozenset({
        "name", "sku", "category", "price", "cost", "description", "image",
        "isActive", "expiryDate", "stock",
    })

    def _coerce(self, data: dict, *, entity_id: str, existing: Optional[Product]) -> Product:
        product = Product(
            id=entity_id,
            name=require_text(data, "name", "Product name"),
            sku=require_text(data, "sku", "SKU"),
            category=optional_text(data, "category") or "",
            price=coerce_money(data.get("price", 0), "price"),
            cost=coerce_money(data.get("cost", 0), "cost"),
            description=optional_text(data, "description"),
            image=optional_text(data, "image"),
            is_active=coerce_bool(data.get("isActive", True), "isActive"),
            expiry_date=coerce_optional_datetime(data.get("expiryDate"), "expiryDate"),
            stock=coerce_quantity(data.get("stock", 0), "stock"),
        )
        if product.is_active and product.is_expired(self.ledger.now()):
            product.is_active = False
        return product

    @result_boundary
    def delete(self, product_id: str) -> bool:
        with self.ledger.transaction(PRODUCTS, INVENTORY):
            index, _ = self._require(product_id)
            removed = self.ledger.inventory._remove_where(lambda e: e.product_id == product_id)
            del self._items()[index]
            referencing = sum(
                1 for sale in self.ledger.state.sales
                if any(item.product_id == product_id for item in sale.items)
            )

        if referencing:
            logger.warning(
                "Product %s deleted while referenced by %d sale(s); sale items keep the id",
                product_id, referencing,
            )
        logger.info("Product %s deleted (%d inventory rows removed)", product_id, removed)
        return True

    @result_boundary
    def deactivate_expired(self, now=None) -> list[Product]:
        """Flip isActive off for every active product whose expiry date has passed."""
        with self.ledger.lock:
            now = now or self.ledger.now()
            expired = [p for p in self._items() if p.is_active and p.is_expired(now)]
            if not expired:
                return []
            with self.ledger.transaction(PRODUCTS):
                for product in expired:
                    product.is_active = False
            logger.info("Deactivated %d expired product(s)", len(expired))
            return copy.deepcopy(expired)

    def low_stock(self, threshold: Optional[int] = None) -> list[Product]:
        threshold = self.ledger.low_stock_threshold if threshold is None else threshold
        with self.ledger.lock:
            return copy.deepcopy([p for p in self._items() if p.stock < threshold])

    def expiring_soon(self, days: Optional[int] = None, now=None) -> list[Product]:
        """Products expiring within (0, days] whole days from now."""
        days = self.ledger.expiry_warning_days if days is None else days
        with self.ledger.lock:
            now = now or self.ledger.now()
            soon = []
            for product in self._items():
                if product.expiry_date is None:
                    continue
                remaining = product.expiry_date - now
                if timedelta(days=1) <= remaining and remaining.days <= days:
                    soon.append(product)
            return copy.deepcopy(soon)
