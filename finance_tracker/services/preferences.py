"""
Locally Persisted Settings

A small JSON-file key-value store standing in for the browser's local
storage. It holds two keys:

- ``defaultCurrency``: the user's preferred currency
- ``conversionHistory``: the converter panel's last conversions

DESIGN DECISION: A missing or unreadable file is treated as empty.
Losing a preference is an inconvenience; refusing to start is worse.
"""

import json
from pathlib import Path
from typing import Any, Optional

import structlog
from pydantic import ValidationError

from finance_tracker.config import get_settings
from finance_tracker.models.currency import ConversionRecord


DEFAULT_CURRENCY_KEY = "defaultCurrency"
CONVERSION_HISTORY_KEY = "conversionHistory"


class LocalKeyValueStore:
    """JSON-file backed key-value store."""

    def __init__(self, path: Optional[str] = None):
        self._path = Path(path or get_settings().local_store.path)
        self._logger = structlog.get_logger(__name__)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            self._logger.warning("local_store_unreadable", path=str(self._path), error=str(e))
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")

    def get(self, key: str, default: Any = None) -> Any:
        return self._read().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._read()
        if data.pop(key, None) is not None:
            self._write(data)


class Preferences:
    """User preferences that survive across sessions."""

    def __init__(
        self,
        store: LocalKeyValueStore,
        fallback_currency: Optional[str] = None,
    ):
        self._store = store
        self._fallback = (fallback_currency or get_settings().app.default_currency).upper()

    @property
    def default_currency(self) -> str:
        value = self._store.get(DEFAULT_CURRENCY_KEY)
        return value.upper() if isinstance(value, str) and value else self._fallback

    def set_default_currency(self, code: str) -> str:
        """
        Persist a new default currency.

        Raises:
            ValueError: If the code is not three letters
        """
        code = code.strip().upper()
        if len(code) != 3 or not code.isalpha():
            raise ValueError(f"Invalid currency code: {code!r}")
        self._store.set(DEFAULT_CURRENCY_KEY, code)
        return code


class ConversionHistory:
    """
    The converter panel's recent conversions, newest first.

    Only the last ``limit`` entries are kept.
    """

    def __init__(
        self,
        store: LocalKeyValueStore,
        limit: Optional[int] = None,
    ):
        self._store = store
        self._limit = limit or get_settings().local_store.history_limit

    def entries(self) -> list[ConversionRecord]:
        records = []
        for raw in self._store.get(CONVERSION_HISTORY_KEY, []) or []:
            try:
                records.append(ConversionRecord.model_validate(raw))
            except ValidationError:
                continue  # Skip entries written by an older format
        return records[:self._limit]

    def add(self, record: ConversionRecord) -> list[ConversionRecord]:
        records = [record, *self.entries()][:self._limit]
        self._store.set(
            CONVERSION_HISTORY_KEY,
            [r.model_dump(mode="json") for r in records],
        )
        return records

    def clear(self) -> None:
        self._store.delete(CONVERSION_HISTORY_KEY)
