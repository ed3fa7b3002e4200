# Overview: Fixed demo dataset written on first run (no collection stored yet).

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from ..models import InventoryEntry, LedgerState, Product, Sale, SaleItem, Shop

# Every seeded timestamp is fixed so two fresh ledgers are byte-identical.
SEED_TIMESTAMP = datetime(2023, 6, 30, 12, 0, 0)


def _shops() -> list[Shop]:
    return [
        Shop(
            id="shop1",
            name="Downtown Grocery",
            store_number="DT001",
            address="123 Main St, Downtown",
            manager_id="2",
            phone="555-123-4567",
            email="downtown@shopsavvy.com",
            created_at=datetime(2023, 1, 15),
        ),
        Shop(
            id="shop2",
            name="Uptown Market",
            store_number="UT002",
            address="456 High St, Uptown",
            phone="555-987-6543",
            email="uptown@shopsavvy.com",
            created_at=datetime(2023, 4, 10),
        ),
        Shop(
            id="shop3",
            name="Westside Mart",
            store_number="WS003",
            address="789 West Ave, Westside",
            phone="555-456-7890",
            email="westside@shopsavvy.com",
            created_at=datetime(2023, 6, 22),
        ),
    ]


def _products() -> list[Product]:
    rows = [
        ("prod1", "Organic Milk", "OM001", "Dairy", "4.99", "3.50", "Fresh organic whole milk, 1 gallon", "Milk", 100),
        ("prod2", "Whole Wheat Bread", "WB002", "Bakery", "3.99", "2.25", "Artisan whole wheat bread, 1 loaf", "Bread", 75),
        ("prod3", "Organic Eggs", "OE003", "Dairy", "5.99", "4.25", "Free-range organic eggs, dozen", "Eggs", 120),
        ("prod4", "Avocados", "AV004", "Produce", "2.50", "1.75", "Ripe Hass avocados, each", "Avocado", 200),
        ("prod5", "Ground Coffee", "GC005", "Beverages", "11.99", "8.50", "Premium ground coffee, 12 oz bag", "Coffee", 85),
    ]
    return [
        Product(
            id=pid,
            name=name,
            sku=sku,
            category=category,
            price=Decimal(price),
            cost=Decimal(cost),
            description=description,
            image=f"https://placehold.co/200x200?text={label}",
            is_active=True,
            stock=stock,
        )
        for pid, name, sku, category, price, cost, description, label, stock in rows
    ]


# (productId, minStockLevel) in catalogue order; quantities per shop below
_MIN_LEVELS = (("prod1", 10), ("prod2", 5), ("prod3", 8), ("prod4", 10), ("prod5", 5))
_QUANTITIES = {
    "shop1": (50, 35, 28, 40, 12),
    "shop2": (35, 20, 15, 25, 8),
    "shop3": (25, 15, 22, 35, 10),
}


def _inventory() -> list[InventoryEntry]:
    entries = []
    for shop_id, quantities in _QUANTITIES.items():
        for (product_id, min_level), quantity in zip(_MIN_LEVELS, quantities):
            entries.append(
                InventoryEntry(
                    shop_id=shop_id,
                    product_id=product_id,
                    quantity=quantity,
                    min_stock_level=min_level,
                    last_updated=SEED_TIMESTAMP,
                )
            )
    return entries


# (shopId, saleType, createdAt, [(productId, quantity)], createdBy)
_SALES = (
    ("shop1", "cash", datetime(2023, 6, 1, 9, 15), [("prod1", 2), ("prod2", 1)], "2"),
    ("shop2", "online", datetime(2023, 6, 2, 14, 40), [("prod5", 1)], "3"),
    ("shop3", "cash", datetime(2023, 6, 4, 11, 5), [("prod4", 5), ("prod3", 2)], "2"),
    ("shop1", "online", datetime(2023, 6, 6, 16, 30), [("prod3", 3)], "3"),
    ("shop2", "cash", datetime(2023, 6, 8, 10, 0), [("prod2", 4), ("prod1", 1), ("prod5", 2)], "2"),
    ("shop3", "online", datetime(2023, 6, 10, 13, 20), [("prod1", 3)], "3"),
    ("shop1", "cash", datetime(2023, 6, 12, 8, 45), [("prod4", 2), ("prod5", 1)], "3"),
    ("shop2", "online", datetime(2023, 6, 14, 17, 10), [("prod3", 1), ("prod2", 2)], "2"),
    ("shop3", "cash", datetime(2023, 6, 16, 12, 25), [("prod5", 3)], "2"),
    ("shop1", "online", datetime(2023, 6, 18, 15, 55), [("prod1", 5), ("prod4", 1), ("prod2", 1)], "3"),
    ("shop2", "cash", datetime(2023, 6, 20, 9, 35), [("prod4", 4)], "3"),
    ("shop3", "online", datetime(2023, 6, 22, 18, 5), [("prod2", 2), ("prod3", 4)], "2"),
    ("shop1", "cash", datetime(2023, 6, 24, 11, 50), [("prod5", 2)], "2"),
    ("shop2", "online", datetime(2023, 6, 26, 14, 15), [("prod1", 1), ("prod3", 1)], "3"),
    ("shop3", "cash", datetime(2023, 6, 28, 10, 40), [("prod4", 3), ("prod1", 2)], "3"),
)


def _sales(products: list[Product]) -> list[Sale]:
    prices = {p.id: p.price for p in products}
    sales = []
    for index, (shop_id, sale_type, created_at, lines, created_by) in enumerate(_SALES, start=1):
        items = tuple(
            SaleItem(
                product_id=product_id,
                quantity=quantity,
                price=prices[product_id],
                total=prices[product_id] * quantity,
            )
            for product_id, quantity in lines
        )
        total = sum((item.total for item in items), Decimal("0.00"))
        sales.append(
            Sale(
                id=f"sale{index}",
                shop_id=shop_id,
                sale_type=sale_type,
                items=items,
                total=total,
                paid=total,
                balance=Decimal("0.00"),
                created_by=created_by,
                created_at=created_at,
                status="completed",
            )
        )
    return sales


def build_demo_state() -> LedgerState:
    """Fresh copy of the demo dataset: 3 shops, 5 products, 15 inventory rows, 15 sales."""
    products = _products()
    return LedgerState(
        shops=_shops(),
        products=products,
        inventory=_inventory(),
        sales=_sales(products),
        active_shop_id=None,
    )
