from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from ...utils.helpers import parse_datetime, to_decimal
from ..client import ApiClient
from ..tasks import CancelToken
from ._records import as_list, record_id, to_int


@dataclass(frozen=True)
class StockLot:
    """Read-only snapshot of one batch, as seen at search time."""
    lot_id: str
    medicine_id: str
    medicine_name: str
    lot_number: str
    quantity: int
    selling_price: Decimal
    mrp: Decimal
    expiry_date: Optional[datetime] = None

    @property
    def in_stock(self) -> bool:
        return self.quantity > 0


@dataclass(frozen=True)
class Medicine:
    medicine_id: str
    name: str
    generic_name: str = ""
    manufacturer: str = ""
    strength: str = ""
    total_stock: int = 0
    lots: tuple[StockLot, ...] = field(default_factory=tuple)

    @property
    def selectable_lots(self) -> list[StockLot]:
        return [lot for lot in self.lots if lot.in_stock]


def rank_lots(lots) -> tuple[StockLot, ...]:
    """In-stock lots first; stable otherwise (keeps the server's FEFO order)."""
    return tuple(sorted(lots, key=lambda lot: 0 if lot.in_stock else 1))


def parse_medicine(row: dict) -> Medicine:
    mid = record_id(row) or ""
    name = row.get("name") or ""
    lots = []
    for b in row.get("batches") or []:
        lots.append(
            StockLot(
                lot_id=record_id(b) or "",
                medicine_id=mid,
                medicine_name=name,
                lot_number=str(b.get("batchNumber") or ""),
                quantity=to_int(b.get("quantity")),
                selling_price=to_decimal(b.get("sellingPrice")),
                mrp=to_decimal(b.get("mrp")),
                expiry_date=parse_datetime(b.get("expiryDate")),
            )
        )
    total = row.get("totalStock")
    return Medicine(
        medicine_id=mid,
        name=name,
        generic_name=row.get("genericName") or "",
        manufacturer=row.get("manufacturer") or "",
        strength=row.get("strength") or "",
        total_stock=to_int(total) if total is not None else sum(lot.quantity for lot in lots),
        lots=rank_lots(lots),
    )


class CatalogRepo:
    def __init__(self, api: ApiClient):
        self.api = api

    def search(self, query: str, limit: int, token: Optional[CancelToken] = None) -> list[Medicine]:
        """Medicines matching name / generic name / barcode, with their batches."""
        data = self.api.get(
            "/inventory/medicines/search",
            params={"q": query, "limit": limit},
            token=token,
        )
        return [parse_medicine(r) for r in as_list(data) if isinstance(r, dict)]
