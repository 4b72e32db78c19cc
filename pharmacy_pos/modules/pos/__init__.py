# modules/pos/__init__.py
from .cart import Cart, CartLine
from .checkout import CheckoutTotals, PaymentMethod, compute_totals
from .controller import PosController
from .counters import CounterSelector, CounterState
from .customers import CustomerResolver
from .search import CatalogSearch, DebouncedSearch, SearchState
from .submitter import BlockReason, Blocker, CheckoutSession, CheckoutState, Invoice

__all__ = [
    "BlockReason",
    "Blocker",
    "Cart",
    "CartLine",
    "CatalogSearch",
    "CheckoutSession",
    "CheckoutState",
    "CheckoutTotals",
    "CounterSelector",
    "CounterState",
    "CustomerResolver",
    "DebouncedSearch",
    "Invoice",
    "PaymentMethod",
    "PosController",
    "SearchState",
    "compute_totals",
]
