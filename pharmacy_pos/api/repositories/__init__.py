# api/repositories/__init__.py
"""
Repository layer public API.

Usage:
    from pharmacy_pos.api.repositories import (
        CatalogRepo, Medicine, StockLot,
        CustomersRepo, Customer,
        CountersRepo, Counter,
        SalesRepo, Sale, SaleLine, SalesSummary,
    )
"""

# ---------------- Catalog ------------------
from .catalog_repo import CatalogRepo, Medicine, StockLot, rank_lots

# ---------------- Counters -----------------
from .counters_repo import CountersRepo, Counter, STATUS_ACTIVE, STATUS_INACTIVE

# ---------------- Customers ----------------
from .customers_repo import CustomersRepo, Customer

# ------------------ Sales ------------------
from .sales_repo import SalesRepo, Sale, SaleLine, SalesSummary

__all__ = [
    "CatalogRepo",
    "Medicine",
    "StockLot",
    "rank_lots",
    "CountersRepo",
    "Counter",
    "STATUS_ACTIVE",
    "STATUS_INACTIVE",
    "CustomersRepo",
    "Customer",
    "SalesRepo",
    "Sale",
    "SaleLine",
    "SalesSummary",
]
