"""
Product Repository - Lookup of a product by vintage, lot and package size.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from core.catalog import Lot, PackageSize
from core.data_repository import query_one

from .base import SupabaseRepository


@dataclass(frozen=True)
class Product:
    """Product entity: one (year, lot, size) combination."""

    id: str
    year: int
    lot: Lot
    size: PackageSize


class ProductRepository(Protocol):
    def find(self, year: int, lot: Lot | str, size: PackageSize | str) -> Product | None:
        ...


class SupabaseProductRepository(SupabaseRepository):
    """Supabase implementation of ProductRepository."""

    table_name = "products"

    def find(self, year: int, lot: Lot | str, size: PackageSize | str) -> Product | None:
        lot = Lot(lot)
        size = PackageSize(size)
        row = query_one(
            self._table()
            .select("id")
            .eq("year", int(year))
            .eq("lot", lot.value)
            .eq("size", size.value)
            .maybe_single()
        )
        if not row or not row.get("id"):
            return None
        return Product(id=str(row["id"]), year=int(year), lot=lot, size=size)
