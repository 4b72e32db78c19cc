"""Pharmacy point-of-sale console (PySide6)."""

__version__ = "0.3.0"
