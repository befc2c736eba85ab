"""Lotti, formati e tipi di movimento gestiti dal magazzino olio."""

from __future__ import annotations

from enum import Enum


class Lot(str, Enum):
    A = "A"
    B = "B"
    C = "C"


class PackageSize(str, Enum):
    ML_250 = "ml_250"
    ML_500 = "ml_500"
    LT_5 = "lt_5"

    @property
    def ml_per_unit(self) -> int:
        return _ML_PER_UNIT[self]

    @property
    def label(self) -> str:
        return _SIZE_LABELS[self]


class MovementType(str, Enum):
    IN = "in"
    OUT = "out"
    ADJUSTMENT = "adjustment"

    @property
    def label(self) -> str:
        return _MOVEMENT_LABELS[self]

    @property
    def sign(self) -> int:
        # Solo l'uscita scarica: ingresso e rettifica sono registrati come positivi.
        return -1 if self is MovementType.OUT else 1


_ML_PER_UNIT = {
    PackageSize.ML_250: 250,
    PackageSize.ML_500: 500,
    PackageSize.LT_5: 5000,
}
_SIZE_LABELS = {
    PackageSize.ML_250: "250ml",
    PackageSize.ML_500: "500ml",
    PackageSize.LT_5: "5LT",
}
_MOVEMENT_LABELS = {
    MovementType.IN: "Ingresso",
    MovementType.OUT: "Uscita",
    MovementType.ADJUSTMENT: "Rettifica",
}

DEFAULT_YEAR = 2024
DEFAULT_LOT = Lot.A
DEFAULT_SIZE = PackageSize.ML_500
DEFAULT_MOVEMENT = MovementType.IN
DEFAULT_UNITS = 1


def compute_quantity_ml(
    size: PackageSize | str,
    units: int,
    movement: MovementType | str,
) -> int:
    """Quantità firmata in ml di un movimento espresso in unità di un formato."""

    size = PackageSize(size)
    movement = MovementType(movement)
    return movement.sign * int(units) * size.ml_per_unit


def size_label(value: PackageSize | str) -> str:
    try:
        return PackageSize(value).label
    except ValueError:
        return str(value)


def movement_label(value: MovementType | str) -> str:
    try:
        return MovementType(value).label
    except ValueError:
        return str(value)


__all__ = [
    "Lot",
    "PackageSize",
    "MovementType",
    "DEFAULT_YEAR",
    "DEFAULT_LOT",
    "DEFAULT_SIZE",
    "DEFAULT_MOVEMENT",
    "DEFAULT_UNITS",
    "compute_quantity_ml",
    "size_label",
    "movement_label",
]
