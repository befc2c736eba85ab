"""Servizi di magazzino: giacenze dalla vista aggregata e registrazione dei movimenti."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Sequence

import pandas as pd
from pydantic import BaseModel, Field, ValidationError, field_validator
from supabase import Client

from .auth_service import current_user_id
from .catalog import (
    DEFAULT_LOT,
    DEFAULT_MOVEMENT,
    DEFAULT_SIZE,
    DEFAULT_UNITS,
    DEFAULT_YEAR,
    Lot,
    MovementType,
    PackageSize,
    compute_quantity_ml,
)
from .repositories import (
    ALL_WAREHOUSES,
    STOCK_COLUMNS,
    StockMovement,
    SupabaseProductRepository,
    SupabaseStockMovementRepository,
    SupabaseStockRepository,
    SupabaseWarehouseRepository,
    Warehouse,
)

logger = logging.getLogger(__name__)

MISSING_SELECTION_MESSAGE = "Seleziona magazzino e prodotto."
EMPTY_STOCK_MESSAGE = "Nessuna giacenza (registra un carico per iniziare)."


class InventoryServiceError(Exception):
    """Eccezione di base per le operazioni di magazzino."""


class MovementValidationError(InventoryServiceError):
    """Sollevata quando il modulo movimento è incompleto o non valido."""


class MovementDraft(BaseModel):
    """Stato del modulo movimento, prima della ricerca del prodotto."""

    warehouse_id: str = ""
    year: int = DEFAULT_YEAR
    lot: Lot = DEFAULT_LOT
    size: PackageSize = DEFAULT_SIZE
    movement: MovementType = DEFAULT_MOVEMENT
    units: int = Field(default=DEFAULT_UNITS, ge=1, description="Quantità in unità del formato")
    note: str = ""

    @field_validator("warehouse_id", "note", mode="before")
    def _none_to_empty(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value)

    @property
    def quantity_ml(self) -> int:
        return compute_quantity_ml(self.size, self.units, self.movement)


@dataclass
class MovementResult:
    product_id: str
    warehouse_id: str
    movement: MovementType
    quantity_ml: int
    inserted: list[dict[str, Any]] = field(default_factory=list)


def build_draft(**values: Any) -> MovementDraft:
    """Costruisce il draft dal modulo, traducendo gli errori pydantic."""

    try:
        return MovementDraft(**values)
    except ValidationError as exc:
        fields = sorted({str(err["loc"][0]) for err in exc.errors() if err.get("loc")})
        raise MovementValidationError(
            f"Valori non validi nel modulo movimento: {', '.join(fields) or 'sconosciuto'}."
        ) from exc


def load_warehouses(client: Client) -> list[Warehouse]:
    return list(SupabaseWarehouseRepository(client).list_all())


def load_stock(client: Client, warehouse_name: str | None = ALL_WAREHOUSES) -> pd.DataFrame:
    """Giacenze dettagliate, filtrate per nome magazzino salvo 'all'."""

    return SupabaseStockRepository(client).list_df(warehouse_name or ALL_WAREHOUSES)


def summarize_stock(df: pd.DataFrame) -> dict[str, float]:
    if df is None or df.empty:
        return {"total_ml": 0.0, "total_units": 0.0, "rows": 0}
    return {
        "total_ml": float(pd.to_numeric(df["qty_ml"], errors="coerce").fillna(0).sum()),
        "total_units": float(pd.to_numeric(df["approx_units"], errors="coerce").fillna(0).sum()),
        "rows": int(len(df)),
    }


def stock_by_size(df: pd.DataFrame) -> pd.DataFrame:
    """Totale in ml per magazzino e formato, per il grafico di riepilogo."""

    columns = ["warehouse", "size", "qty_ml"]
    if df is None or df.empty:
        return pd.DataFrame(columns=columns)
    grouped = (
        df.assign(qty_ml=pd.to_numeric(df["qty_ml"], errors="coerce").fillna(0))
        .groupby(["warehouse", "size"], as_index=False)["qty_ml"]
        .sum()
    )
    return grouped.sort_values(["warehouse", "size"]).reset_index(drop=True)[columns]


def format_quantity(value: Any, decimals: int = 2) -> str:
    """Formatta un numero all'italiana: punto per le migliaia, virgola per i decimali."""

    try:
        number = float(value)
    except (TypeError, ValueError):
        return "–"
    if not math.isfinite(number):
        return "–"

    # Metà arrotondata lontano da zero, come Intl.NumberFormat('it-IT').
    rounded = Decimal(number).quantize(Decimal(1).scaleb(-decimals), rounding=ROUND_HALF_UP)
    if rounded == 0:
        rounded = Decimal(0).scaleb(-decimals)
    integer, _, fraction = f"{rounded:,.{decimals}f}".partition(".")
    integer = integer.replace(",", ".")
    fraction = fraction.rstrip("0")
    return f"{integer},{fraction}" if fraction else integer


def record_movement(client: Client, draft: MovementDraft) -> MovementResult:
    """Registra un movimento: ricerca prodotto, utente corrente, un solo insert."""

    if not draft.warehouse_id.strip():
        raise MovementValidationError(MISSING_SELECTION_MESSAGE)

    product = SupabaseProductRepository(client).find(draft.year, draft.lot, draft.size)
    if product is None:
        logger.info(
            "Nessun prodotto per annata %s, lotto %s, formato %s",
            draft.year,
            draft.lot.value,
            draft.size.value,
        )
        raise MovementValidationError(MISSING_SELECTION_MESSAGE)

    movement = StockMovement(
        warehouse_id=draft.warehouse_id,
        product_id=product.id,
        movement=draft.movement,
        quantity_ml=draft.quantity_ml,
        note=draft.note,
        user_id=current_user_id(client),
    )
    SupabaseStockMovementRepository(client).add(movement)
    logger.info(
        "Movimento %s registrato: %s ml, prodotto %s, magazzino %s",
        movement.movement.value,
        movement.quantity_ml,
        movement.product_id,
        movement.warehouse_id,
    )
    return MovementResult(
        product_id=movement.product_id,
        warehouse_id=movement.warehouse_id,
        movement=movement.movement,
        quantity_ml=movement.quantity_ml,
        inserted=movement.inserted,
    )


def warehouse_names(warehouses: Sequence[Warehouse]) -> list[str]:
    return [warehouse.name for warehouse in warehouses]


__all__ = [
    "EMPTY_STOCK_MESSAGE",
    "MISSING_SELECTION_MESSAGE",
    "InventoryServiceError",
    "MovementDraft",
    "MovementResult",
    "MovementValidationError",
    "STOCK_COLUMNS",
    "build_draft",
    "format_quantity",
    "load_stock",
    "load_warehouses",
    "record_movement",
    "stock_by_size",
    "summarize_stock",
    "warehouse_names",
]
