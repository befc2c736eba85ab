"""
Repository Layer - Clean Architecture pattern for data access.

This module provides:
- Base repository protocols
- Concrete implementations over the Supabase table/view API
"""

from .base import ReadOnlyRepository, SupabaseRepository
from .users import AppUser, UserRepository, SupabaseUserRepository
from .warehouses import Warehouse, WarehouseRepository, SupabaseWarehouseRepository
from .products import Product, ProductRepository, SupabaseProductRepository
from .stock import (
    ALL_WAREHOUSES,
    STOCK_COLUMNS,
    StockRow,
    StockRepository,
    SupabaseStockRepository,
)
from .stock_movements import (
    StockMovement,
    StockMovementRepository,
    SupabaseStockMovementRepository,
)

__all__ = [
    # Base
    "ReadOnlyRepository",
    "SupabaseRepository",
    # Users
    "AppUser",
    "UserRepository",
    "SupabaseUserRepository",
    # Warehouses
    "Warehouse",
    "WarehouseRepository",
    "SupabaseWarehouseRepository",
    # Products
    "Product",
    "ProductRepository",
    "SupabaseProductRepository",
    # Stock
    "ALL_WAREHOUSES",
    "STOCK_COLUMNS",
    "StockRow",
    "StockRepository",
    "SupabaseStockRepository",
    "StockMovement",
    "StockMovementRepository",
    "SupabaseStockMovementRepository",
]
