# modules/pos/checkout.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    MOBILE_BANKING = "mobile_banking"
    CREDIT = "credit"

    @property
    def label(self) -> str:
        return _LABELS[self]

    @property
    def takes_tender(self) -> bool:
        return self is not PaymentMethod.CREDIT


_LABELS = {
    PaymentMethod.CASH: "Cash",
    PaymentMethod.CARD: "Card",
    PaymentMethod.MOBILE_BANKING: "bKash/Nagad",
    PaymentMethod.CREDIT: "Credit",
}

ZERO = Decimal("0")


@dataclass(frozen=True)
class CheckoutTotals:
    subtotal: Decimal
    grand_total: Decimal
    payment_method: PaymentMethod
    amount_tendered: Optional[Decimal]
    change: Decimal
    due: Decimal                      # outstanding on a credit sale
    insufficient_payment: bool

    @property
    def shortfall(self) -> Decimal:
        if not self.insufficient_payment:
            return ZERO
        return self.grand_total - (self.amount_tendered or ZERO)


def compute_totals(subtotal: Decimal, method: PaymentMethod,
                   amount_tendered: Optional[Decimal]) -> CheckoutTotals:
    """
    Pure derivation of the totals panel.

    Discounts and tax are never guessed here; they only ever come back on
    the committed Sale. For credit, tender is ignored: change is 0 and the
    whole total is due.
    """
    grand_total = subtotal
    if not method.takes_tender:
        return CheckoutTotals(subtotal, grand_total, method, None, ZERO, grand_total, False)

    tendered = amount_tendered if amount_tendered is not None else ZERO
    change = max(ZERO, tendered - grand_total)
    return CheckoutTotals(
        subtotal=subtotal,
        grand_total=grand_total,
        payment_method=method,
        amount_tendered=amount_tendered,
        change=change,
        due=ZERO,
        insufficient_payment=tendered < grand_total,
    )
