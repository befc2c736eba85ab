"""
Stock Repository - Read-only access to the v_stock_detailed view.

Stock levels are computed by the database view from the movement ledger;
this repository only filters and reshapes the rows it returns.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, Sequence

import pandas as pd

from core.data_repository import fetch_rows, query_df

from .base import SupabaseRepository

ALL_WAREHOUSES = "all"

STOCK_COLUMNS: tuple[str, ...] = (
    "warehouse",
    "year",
    "lot",
    "size",
    "qty_ml",
    "approx_units",
)


@dataclass(frozen=True)
class StockRow:
    """One line of the detailed stock view."""

    warehouse: str
    year: int
    lot: str
    size: str
    qty_ml: float
    approx_units: float


class StockRepository(Protocol):
    def list_rows(self, warehouse_name: str | None = None) -> Sequence[StockRow]:
        ...

    def list_df(self, warehouse_name: str | None = None) -> pd.DataFrame:
        ...


class SupabaseStockRepository(SupabaseRepository):
    """Supabase implementation of StockRepository."""

    table_name = "v_stock_detailed"

    def _query(self, warehouse_name: str | None) -> Any:
        query = self._table().select("*")
        if warehouse_name and warehouse_name != ALL_WAREHOUSES:
            query = query.eq("warehouse", warehouse_name)
        return query

    def list_rows(self, warehouse_name: str | None = None) -> Sequence[StockRow]:
        return [self._row_to_stock(row) for row in fetch_rows(self._query(warehouse_name))]

    def list_df(self, warehouse_name: str | None = None) -> pd.DataFrame:
        df = query_df(self._query(warehouse_name), columns=STOCK_COLUMNS)
        if df.empty:
            return df
        for column in ("qty_ml", "approx_units"):
            df[column] = pd.to_numeric(df[column], errors="coerce").fillna(0.0)
        return df

    def _row_to_stock(self, row: dict) -> StockRow:
        return StockRow(
            warehouse=str(row.get("warehouse") or ""),
            year=int(row.get("year") or 0),
            lot=str(row.get("lot") or ""),
            size=str(row.get("size") or ""),
            qty_ml=float(row.get("qty_ml") or 0),
            approx_units=float(row.get("approx_units") or 0),
        )
