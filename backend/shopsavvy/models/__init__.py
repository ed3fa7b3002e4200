from .storage import LedgerCollection
from .auth import UserProfile
from .entities import (
    Actor,
    InventoryEntry,
    LedgerState,
    Product,
    Sale,
    SaleItem,
    Shop,
    DEFAULT_MIN_STOCK_LEVEL,
    SALE_STATUSES,
    SALE_TYPES,
    USER_ROLES,
)

__all__ = [
    'LedgerCollection', 'UserProfile',
    'Actor', 'InventoryEntry', 'LedgerState', 'Product', 'Sale', 'SaleItem', 'Shop',
    'DEFAULT_MIN_STOCK_LEVEL', 'SALE_STATUSES', 'SALE_TYPES', 'USER_ROLES',
]
