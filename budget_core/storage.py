"""Key-value persistence for the ledger, the budget and user settings.

Every value is stored as JSON text under a string key in a single file,
and the whole transaction list is rewritten on every change.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional, Tuple

from budget_core import config
from budget_core.domain import BudgetConfig, Transaction, UserSettings, validate_budget
from budget_core.errors import InvalidBudgetConfig
from budget_core.functional import validate_transaction_data

logger = logging.getLogger(__name__)

TRANSACTIONS_KEY = 'transactions'
BUDGET_KEY = 'budget'
SETTINGS_KEY = 'settings'


class KeyValueStore:
    """String keys mapped to text values, kept in one JSON file."""

    def __init__(self, path: Path | str | None = None):
        self.path = Path(path) if path is not None else config.STORE_PATH

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open('r', encoding='utf-8') as handle:
                data = json.load(handle)
        except json.JSONDecodeError as e:
            backup = self.path.with_name(self.path.name + '.corrupt')
            logger.warning("Store %s is not valid JSON (%s), moved to %s", self.path, e, backup)
            os.replace(self.path, backup)
            return {}
        except OSError as e:
            logger.warning("Ignoring unreadable store %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write(self, data: Dict[str, str]) -> None:
        # write a sibling temp file, then swap it in so a failed write keeps the old store
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=self.path.name + '.', suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as handle:
                json.dump(data, handle, indent=2, sort_keys=True)
            os.replace(tmp, self.path)
        except BaseException:
            os.unlink(tmp)
            raise

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._read().get(key, default)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._read()
        if data.pop(key, None) is not None:
            self._write(data)


def _load_json(store: KeyValueStore, key: str):
    raw = store.get(key)
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Stored value for %r is not valid JSON, using defaults", key)
        return None


def load_transactions(store: KeyValueStore) -> Tuple[Transaction, ...]:
    records = _load_json(store, TRANSACTIONS_KEY)
    if not isinstance(records, list):
        return ()

    loaded = []
    for record in records:
        if not isinstance(record, dict):
            logger.warning("Skipping stored transaction that is not a record: %r", record)
            continue
        result = validate_transaction_data(record)
        if result.is_left():
            error = result.get_error()
            logger.warning("Skipping stored transaction %s: %s", error["id"], error["message"])
            continue
        loaded.append(result.get_or_else(None))
    return tuple(loaded)


def save_transactions(store: KeyValueStore, transactions: Tuple[Transaction, ...]) -> None:
    store.set(TRANSACTIONS_KEY, json.dumps([t.to_dict() for t in transactions]))


def default_budget() -> BudgetConfig:
    return BudgetConfig(
        limit=config.DEFAULT_BUDGET_LIMIT,
        alert_threshold_percent=config.DEFAULT_ALERT_THRESHOLD,
    )


def load_budget(store: KeyValueStore) -> BudgetConfig:
    data = _load_json(store, BUDGET_KEY)
    if not isinstance(data, dict):
        return default_budget()
    try:
        return validate_budget(BudgetConfig.from_dict(data))
    except InvalidBudgetConfig as e:
        logger.warning("Stored budget is unreadable, using defaults: %s", e)
        return default_budget()


def save_budget(store: KeyValueStore, budget: BudgetConfig) -> None:
    store.set(BUDGET_KEY, json.dumps(budget.to_dict()))


def load_settings(store: KeyValueStore) -> UserSettings:
    data = _load_json(store, SETTINGS_KEY)
    if not isinstance(data, dict):
        return UserSettings(email=config.DEFAULT_EMAIL, currency=config.DEFAULT_CURRENCY)
    return UserSettings.from_dict(data)


def save_settings(store: KeyValueStore, settings: UserSettings) -> None:
    store.set(SETTINGS_KEY, json.dumps(settings.to_dict()))
