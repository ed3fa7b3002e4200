# Overview: Session-scoped "currently focused shop" pointer for cross-shop admins.

from __future__ import annotations

from typing import Optional

from ..validation import ValidationError
from .persistence_service import ACTIVE_SHOP
from .result import result_boundary


class ActiveShopSelector:
    """
    Weak pointer to a shop id.

    No existence check on set, and deleting the shop does not clear it;
    scoped reads simply find nothing for a vanished shop.
    """

    def __init__(self, ledger):
        self.ledger = ledger

    def get(self) -> Optional[str]:
        with self.ledger.lock:
            return self.ledger.state.active_shop_id

    @result_boundary
    def set(self, shop_id: str) -> str:
        if not shop_id or not isinstance(shop_id, str):
            raise ValidationError("shopId is required")
        with self.ledger.transaction(ACTIVE_SHOP):
            self.ledger.state.active_shop_id = shop_id
        return shop_id

    @result_boundary
    def clear(self) -> bool:
        with self.ledger.transaction(ACTIVE_SHOP):
            self.ledger.state.active_shop_id = None
        return True
