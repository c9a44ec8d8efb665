# error and result types shared by the storage layer
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from db.models import Sale


class StorageError(Exception):
    """The underlying store could not be read or written."""


class CorruptRecordError(StorageError):
    """A stored collection exists but its records have the wrong shape."""


class StockUpdate(Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    INSUFFICIENT_STOCK = "insufficient_stock"
    INVALID_QUANTITY = "invalid_quantity"

    def __bool__(self) -> bool:
        return self is StockUpdate.OK


@dataclass(frozen=True)
class Shortage:
    product_id: str
    variant_id: Optional[str]
    name: str
    requested: int
    available: int


@dataclass(frozen=True)
class SaleResult:
    """
    Outcome of recording a sale.

    ok is False when nothing was written; reason says why and shortages lists
    every line that could not be filled.
    """

    ok: bool
    sale: Optional["Sale"] = None
    reason: str = ""
    shortages: List[Shortage] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.ok
