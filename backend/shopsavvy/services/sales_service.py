"""
Sales Service - immutable sale records with monthly sequential ids

WHY: A sale is recorded once, in one step, and never edited. Recording it
depletes the global product stock and flushes sales + products together so a
crash right after success cannot lose either half.
"""
from __future__ import annotations

import copy
import logging
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from ..models import Actor, Sale, SaleItem, SALE_STATUSES, SALE_TYPES
from ..validation import (
    NotFoundError,
    ValidationError,
    coerce_choice,
    coerce_money,
    coerce_quantity,
    require_text,
)
from shopsavvy.time_utils import same_calendar_month
from .persistence_service import PRODUCTS, SALES
from .result import result_boundary

logger = logging.getLogger(__name__)


def generate_sale_id(existing_sales: Iterable[Sale], now: datetime) -> str:
    """
    INV-<YYYY><MM>-<NNN>, NNN = 1 + number of sales created in now's calendar month.

    One counter is shared by every shop. If the computed id is already taken
    (e.g. imported history), the sequence skips forward to the next free number.
    """
    sales = list(existing_sales)
    month_count = sum(1 for sale in sales if same_calendar_month(sale.created_at, now))
    taken = {sale.id for sale in sales}
    sequence = month_count + 1
    while True:
        candidate = f"INV-{now.year:04d}{now.month:02d}-{sequence:03d}"
        if candidate not in taken:
            return candidate
        sequence += 1


class SaleProcessor:
    def __init__(self, ledger):
        self.ledger = ledger

    def _sales(self) -> list[Sale]:
        return self.ledger.state.sales

    def _coerce_items(self, raw_items) -> tuple[SaleItem, ...]:
        if not isinstance(raw_items, (list, tuple)) or not raw_items:
            raise ValidationError("A sale needs at least one item")

        known_products = {p.id for p in self.ledger.state.products}
        items = []
        for position, raw in enumerate(raw_items, start=1):
            if not isinstance(raw, dict):
                raise ValidationError(f"Item {position} must be an object")
            product_id = require_text(raw, "productId", f"Item {position} productId")
            if product_id not in known_products:
                raise NotFoundError(f"Product {product_id} not found")
            quantity = coerce_quantity(raw.get("quantity"), f"Item {position} quantity", minimum=1)
            price = coerce_money(raw.get("price"), f"Item {position} price")
            if raw.get("total") is None:
                total = price * quantity
            else:
                total = coerce_money(raw.get("total"), f"Item {position} total")
            items.append(SaleItem(product_id=product_id, quantity=quantity, price=price, total=total))
        return tuple(items)

    @result_boundary
    def add_sale(self, draft: dict, actor: Optional[Actor] = None) -> Sale:
        """
        Record a sale.

        total/paid/balance are taken as supplied and are not reconciled with
        the items. Missing values default to: total = sum of item totals,
        paid = total, balance = max(total - paid, 0).
        """
        if not isinstance(draft, dict):
            raise ValidationError("Sale data must be an object")

        with self.ledger.transaction(SALES, PRODUCTS):
            state = self.ledger.state

            shop_id = require_text(draft, "shopId", "shopId")
            if not any(shop.id == shop_id for shop in state.shops):
                raise NotFoundError("Store not found")

            sale_type = coerce_choice(draft.get("saleType"), "saleType", SALE_TYPES)
            status = coerce_choice(draft.get("status", "completed"), "status", SALE_STATUSES)
            items = self._coerce_items(draft.get("items"))

            items_total = sum((item.total for item in items), Decimal("0.00"))
            total = coerce_money(draft["total"], "total") if draft.get("total") is not None else items_total
            paid = coerce_money(draft["paid"], "paid") if draft.get("paid") is not None else total
            if draft.get("balance") is not None:
                balance = coerce_money(draft["balance"], "balance")
            else:
                balance = max(total - paid, Decimal("0.00"))

            created_by = actor.id if actor is not None else require_text(draft, "createdBy", "createdBy")

            now = self.ledger.now()
            sale = Sale(
                id=generate_sale_id(state.sales, now),
                shop_id=shop_id,
                sale_type=sale_type,
                items=items,
                total=total,
                paid=paid,
                balance=balance,
                created_by=created_by,
                created_at=now,
                status=status,
            )

            # Global stock, floored at zero: excess demand is truncated, not rejected.
            products = {p.id: p for p in state.products}
            for item in items:
                product = products[item.product_id]
                product.stock = max(0, product.stock - item.quantity)

            state.sales.append(sale)

        logger.info("Sale %s recorded for store %s (total %s)", sale.id, shop_id, total)
        return sale

    def get(self, sale_id: str) -> Optional[Sale]:
        with self.ledger.lock:
            for sale in self._sales():
                if sale.id == sale_id:
                    return sale
        return None

    def list(self) -> list[Sale]:
        with self.ledger.lock:
            return copy.copy(self._sales())

    def list_by_shop(self, shop_id: str) -> list[Sale]:
        with self.ledger.lock:
            return [sale for sale in self._sales() if sale.shop_id == shop_id]

    def list_by_type(self, sale_type: str) -> list[Sale]:
        with self.ledger.lock:
            return [sale for sale in self._sales() if sale.sale_type == sale_type]
