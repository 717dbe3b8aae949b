"""Configuration for the budget tracker.

Paths, the advisor model and the starting budget, each overridable
through an environment variable.
"""

from __future__ import annotations

import os
from decimal import Decimal
from pathlib import Path
from typing import Optional

# Base project root - assumes this file is in budget_core/
_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

DATA_DIR = Path(os.getenv("BUDGET_DATA_DIR", _PROJECT_ROOT / "data"))

# Key-value store holding transactions, budget and settings
STORE_PATH = Path(
    os.getenv("BUDGET_STORE_PATH", DATA_DIR / "store.json")
).resolve()

# Advisor
GEMINI_MODEL = os.getenv("BUDGET_GEMINI_MODEL", "gemini-2.5-flash")

# Defaults used when nothing is stored yet
DEFAULT_BUDGET_LIMIT = Decimal(os.getenv("BUDGET_DEFAULT_LIMIT", "2000"))
DEFAULT_ALERT_THRESHOLD = Decimal(os.getenv("BUDGET_DEFAULT_ALERT_THRESHOLD", "80"))
DEFAULT_EMAIL = os.getenv("BUDGET_DEFAULT_EMAIL", "user@example.com")
DEFAULT_CURRENCY = os.getenv("BUDGET_DEFAULT_CURRENCY", "USD")


def get_api_key() -> Optional[str]:
    """Read the Gemini key at call time so it can be set after import."""
    key = os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY") or ""
    return key.strip() or None


def ensure_data_directories() -> None:
    """Create the data directory if it doesn't exist."""
    STORE_PATH.parent.mkdir(parents=True, exist_ok=True)
