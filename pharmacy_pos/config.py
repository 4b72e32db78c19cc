import os
from pathlib import Path

from .constants import TEMPLATES_DIR

BASE_DIR = Path(__file__).resolve().parent
TEMPLATES_PATH = BASE_DIR / TEMPLATES_DIR


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, default))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name, default))
    except ValueError:
        return default


# Remote API
API_URL = os.environ.get("PHARMACY_API_URL", "http://localhost:5000/api/v1").rstrip("/")
API_TOKEN = os.environ.get("PHARMACY_API_TOKEN")      # bearer token for the session
API_TIMEOUT = _env_float("POS_API_TIMEOUT", 30.0)     # seconds

# Search behaviour
DEBOUNCE_MS = _env_int("POS_DEBOUNCE_MS", 300)
MIN_QUERY_LENGTH = _env_int("POS_MIN_QUERY_LENGTH", 2)
CATALOG_LIMIT = _env_int("POS_CATALOG_LIMIT", 10)
CUSTOMER_LIMIT = _env_int("POS_CUSTOMER_LIMIT", 5)

# Receipt
PHARMACY_NAME = os.environ.get("PHARMACY_NAME", "Pharma360")
CURRENCY_SYMBOL = os.environ.get("POS_CURRENCY_SYMBOL", "৳")

# Logging
LOG_LEVEL = os.environ.get("POS_LOG_LEVEL", "INFO").upper()
