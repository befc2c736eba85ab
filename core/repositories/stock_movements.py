"""
Stock Movement Repository - Inserts into the inventory_movements ledger.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from core.catalog import MovementType
from core.data_repository import insert_row

from .base import SupabaseRepository


@dataclass
class StockMovement:
    """Inventory movement entity, quantity in signed millilitres."""

    warehouse_id: str
    product_id: str
    movement: MovementType
    quantity_ml: int
    note: str = ""
    user_id: str | None = None
    inserted: list[dict[str, Any]] = field(default_factory=list)


class StockMovementRepository(Protocol):
    """Stock movement repository interface."""

    def add(self, movement: StockMovement) -> StockMovement:
        ...


class SupabaseStockMovementRepository(SupabaseRepository):
    """Supabase implementation of StockMovementRepository."""

    table_name = "inventory_movements"

    def add(self, movement: StockMovement) -> StockMovement:
        row: dict[str, Any] = {
            "warehouse_id": movement.warehouse_id,
            "product_id": movement.product_id,
            "movement": MovementType(movement.movement).value,
            "quantity_ml": int(movement.quantity_ml),
            "note": movement.note,
        }
        # Senza utente noto la colonna resta al default del database.
        if movement.user_id:
            row["user_id"] = movement.user_id
        movement.inserted = insert_row(self.client, self.table_name, row)
        return movement
