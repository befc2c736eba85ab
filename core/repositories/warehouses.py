"""
Warehouse Repository - Data access for the warehouses table.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence

from core.data_repository import fetch_rows

from .base import ReadOnlyRepository, SupabaseRepository


@dataclass(frozen=True)
class Warehouse:
    """Warehouse entity."""

    id: str
    name: str


class WarehouseRepository(ReadOnlyRepository[Warehouse], Protocol):
    def list_all(self) -> Sequence[Warehouse]:
        ...


class SupabaseWarehouseRepository(SupabaseRepository):
    """Supabase implementation of WarehouseRepository."""

    table_name = "warehouses"

    def list_all(self) -> Sequence[Warehouse]:
        rows = fetch_rows(self._table().select("id,name").order("name"))
        return [Warehouse(id=str(row["id"]), name=str(row["name"])) for row in rows]
