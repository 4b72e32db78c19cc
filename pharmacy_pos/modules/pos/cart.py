"""
modules/pos/cart.py

The in-progress transaction.

Invariants (hold after every public call):
  - at most one CartLine per lot_id, in insertion order;
  - 1 <= line.quantity <= line.available_stock for every line;
  - subtotal is always summed from the lines, never stored.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterator, Optional

from ...api.errors import DomainError
from ...api.repositories.catalog_repo import Medicine, StockLot


@dataclass
class CartLine:
    lot_id: str
    medicine_id: str
    medicine_name: str
    lot_number: str
    quantity: int
    available_stock: int      # snapshot taken when the lot was first added
    unit_price: Decimal
    mrp: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    @property
    def can_increment(self) -> bool:
        return self.quantity < self.available_stock

    @property
    def can_decrement(self) -> bool:
        return self.quantity > 1

    def clamp(self, n: int) -> int:
        return max(1, min(int(n), self.available_stock))


class Cart:
    def __init__(self) -> None:
        self._lines: list[CartLine] = []

    # ---- reads ------------------------------------------------------------

    @property
    def lines(self) -> tuple[CartLine, ...]:
        return tuple(self._lines)

    def __iter__(self) -> Iterator[CartLine]:
        return iter(tuple(self._lines))

    def __len__(self) -> int:
        return len(self._lines)

    @property
    def is_empty(self) -> bool:
        return not self._lines

    @property
    def subtotal(self) -> Decimal:
        return sum((line.line_total for line in self._lines), Decimal("0"))

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self._lines)

    def line_for(self, lot_id: str) -> Optional[CartLine]:
        for line in self._lines:
            if line.lot_id == lot_id:
                return line
        return None

    # ---- mutations --------------------------------------------------------

    def add_lot(self, medicine: Medicine, lot: StockLot) -> CartLine:
        """
        Add one unit of `lot`. An existing line for the same lot is
        incremented (clamped to its snapshot) instead of duplicated.
        """
        existing = self.line_for(lot.lot_id)
        if existing is not None:
            existing.quantity = existing.clamp(existing.quantity + 1)
            return existing

        if not lot.in_stock:
            raise DomainError(f"{medicine.name} (batch {lot.lot_number}) is out of stock.")

        line = CartLine(
            lot_id=lot.lot_id,
            medicine_id=medicine.medicine_id or lot.medicine_id,
            medicine_name=medicine.name or lot.medicine_name,
            lot_number=lot.lot_number,
            quantity=1,
            available_stock=lot.quantity,
            unit_price=lot.selling_price,
            mrp=lot.mrp,
        )
        self._lines.append(line)
        return line

    def set_quantity(self, lot_id: str, n: int) -> CartLine:
        """Clamp `n` to [1, snapshot]. Never removes the line."""
        line = self.line_for(lot_id)
        if line is None:
            raise KeyError(lot_id)
        line.quantity = line.clamp(n)
        return line

    def remove(self, lot_id: str) -> None:
        self._lines = [line for line in self._lines if line.lot_id != lot_id]

    def clear(self) -> None:
        self._lines = []
