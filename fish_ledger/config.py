# fish_ledger/config.py
import logging
import os
from pathlib import Path

from .constants import DATA_DIR, DB_FILE_NAME

BASE_DIR = Path(__file__).resolve().parent
DATA_PATH = BASE_DIR / DATA_DIR

# FISH_LEDGER_DB overrides the default on-disk location (":memory:" is accepted)
DB_PATH = Path(os.environ.get("FISH_LEDGER_DB", str(DATA_PATH / DB_FILE_NAME)))

# --- Logging ---
LOG_LEVEL = getattr(logging, os.environ.get("FISH_LEDGER_LOG_LEVEL", "INFO").upper(), logging.INFO)
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


# --- Billing defaults (per kg) ---
DEFAULT_COMMISSION_PER_KG = _env_float("FISH_LEDGER_COMMISSION_PER_KG", 0.5)
DEFAULT_WEIGHT_DEDUCTION_PCT = _env_float("FISH_LEDGER_WEIGHT_DEDUCTION_PCT", 5.0)
DEFAULT_CRATE_WEIGHT_KG = _env_float("FISH_LEDGER_CRATE_WEIGHT_KG", 35.0)

# --- Bill header (share text) ---
COMPANY_NAME = os.environ.get("FISH_LEDGER_COMPANY_NAME", "Fish Ledger Traders")
COMPANY_TAGLINE = os.environ.get("FISH_LEDGER_COMPANY_TAGLINE", "Wholesale Fish & Prawn Trading")
CURRENCY_SYMBOL = os.environ.get("FISH_LEDGER_CURRENCY_SYMBOL", "₹")
