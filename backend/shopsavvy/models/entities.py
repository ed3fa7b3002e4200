"""
Ledger entities.

These are plain dataclasses held in memory by the StoreLedger and flushed as
JSON arrays into the ledger_collections key-value table. Python attributes are
snake_case; the stored/wire shape is camelCase.

Sale and SaleItem are frozen: a sale is never edited after it is recorded.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from shopsavvy.time_utils import coerce_datetime, to_utc_z

DEFAULT_MIN_STOCK_LEVEL = 5

SALE_TYPES = ("cash", "online")
SALE_STATUSES = ("completed", "pending", "cancelled")
USER_ROLES = ("admin", "manager", "staff")


def _money(value) -> Decimal:
    if value is None:
        return Decimal("0.00")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value)).quantize(Decimal("0.01"))


def _money_out(value: Decimal) -> str:
    return str(value)


@dataclass
class Shop:
    id: str
    name: str
    store_number: str
    address: str
    created_at: datetime
    manager_id: Optional[str] = None
    super_admin_id: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "storeNumber": self.store_number,
            "address": self.address,
            "managerId": self.manager_id,
            "superAdminId": self.super_admin_id,
            "phone": self.phone,
            "email": self.email,
            "createdAt": to_utc_z(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Shop":
        return cls(
            id=data["id"],
            name=data["name"],
            store_number=data["storeNumber"],
            address=data.get("address") or "",
            created_at=coerce_datetime(data["createdAt"]),
            manager_id=data.get("managerId") or None,
            super_admin_id=data.get("superAdminId") or None,
            phone=data.get("phone") or None,
            email=data.get("email") or None,
        )

    def __repr__(self) -> str:
        return f"<Shop id={self.id} name={self.name!r} store_number={self.store_number!r}>"


@dataclass
class Product:
    id: str
    name: str
    sku: str
    category: str = ""
    price: Decimal = Decimal("0.00")
    cost: Decimal = Decimal("0.00")
    description: Optional[str] = None
    image: Optional[str] = None
    is_active: bool = True
    expiry_date: Optional[datetime] = None
    stock: int = 0

    def is_expired(self, now: datetime) -> bool:
        return self.expiry_date is not None and self.expiry_date < now

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "sku": self.sku,
            "category": self.category,
            "price": _money_out(self.price),
            "cost": _money_out(self.cost),
            "description": self.description,
            "image": self.image,
            "isActive": self.is_active,
            "expiryDate": to_utc_z(self.expiry_date),
            "stock": self.stock,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Product":
        return cls(
            id=data["id"],
            name=data["name"],
            sku=data["sku"],
            category=data.get("category") or "",
            price=_money(data.get("price")),
            cost=_money(data.get("cost")),
            description=data.get("description") or None,
            image=data.get("image") or None,
            is_active=bool(data.get("isActive", True)),
            expiry_date=coerce_datetime(data.get("expiryDate") or None),
            stock=int(data.get("stock") or 0),
        )

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} stock={self.stock}>"


@dataclass
class InventoryEntry:
    shop_id: str
    product_id: str
    quantity: int
    last_updated: datetime
    min_stock_level: int = DEFAULT_MIN_STOCK_LEVEL

    @property
    def key(self) -> tuple[str, str]:
        return (self.shop_id, self.product_id)

    def to_dict(self) -> dict:
        return {
            "shopId": self.shop_id,
            "productId": self.product_id,
            "quantity": self.quantity,
            "minStockLevel": self.min_stock_level,
            "lastUpdated": to_utc_z(self.last_updated),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "InventoryEntry":
        return cls(
            shop_id=data["shopId"],
            product_id=data["productId"],
            quantity=int(data.get("quantity") or 0),
            min_stock_level=int(data.get("minStockLevel", DEFAULT_MIN_STOCK_LEVEL)),
            last_updated=coerce_datetime(data["lastUpdated"]),
        )


@dataclass(frozen=True)
class SaleItem:
    product_id: str
    quantity: int
    price: Decimal
    total: Decimal

    def to_dict(self) -> dict:
        return {
            "productId": self.product_id,
            "quantity": self.quantity,
            "price": _money_out(self.price),
            "total": _money_out(self.total),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SaleItem":
        return cls(
            product_id=data["productId"],
            quantity=int(data["quantity"]),
            price=_money(data.get("price")),
            total=_money(data.get("total")),
        )


@dataclass(frozen=True)
class Sale:
    id: str
    shop_id: str
    sale_type: str
    items: tuple[SaleItem, ...]
    total: Decimal
    paid: Decimal
    balance: Decimal
    created_by: str
    created_at: datetime
    status: str = "completed"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shopId": self.shop_id,
            "saleType": self.sale_type,
            "items": [item.to_dict() for item in self.items],
            "total": _money_out(self.total),
            "paid": _money_out(self.paid),
            "balance": _money_out(self.balance),
            "createdBy": self.created_by,
            "createdAt": to_utc_z(self.created_at),
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Sale":
        return cls(
            id=data["id"],
            shop_id=data["shopId"],
            sale_type=data["saleType"],
            items=tuple(SaleItem.from_dict(item) for item in data.get("items") or ()),
            total=_money(data.get("total")),
            paid=_money(data.get("paid")),
            balance=_money(data.get("balance")),
            created_by=str(data.get("createdBy") or ""),
            created_at=coerce_datetime(data["createdAt"]),
            status=data.get("status") or "completed",
        )

    def __repr__(self) -> str:
        return f"<Sale id={self.id} shop_id={self.shop_id} total={self.total}>"


@dataclass(frozen=True)
class Actor:
    """The acting caller as supplied by the auth collaborator."""
    id: str
    role: str
    shop_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @classmethod
    def from_dict(cls, data: dict) -> "Actor":
        return cls(id=str(data["id"]), role=data["role"], shop_id=data.get("shopId") or None)


@dataclass
class LedgerState:
    """Everything the ledger owns; the unit that gets snapshotted and flushed."""
    shops: list[Shop] = field(default_factory=list)
    products: list[Product] = field(default_factory=list)
    inventory: list[InventoryEntry] = field(default_factory=list)
    sales: list[Sale] = field(default_factory=list)
    active_shop_id: Optional[str] = None
