# src/silverrate/adapters/persistence/history_store.py
"""
History Store - Daily Closing Prices

Persists one record per IST calendar day in a JSON file keyed by
``YYYY-MM-DD``, with a ``_metadata`` block:

    {
      "_metadata": {"description": "...", "source": "...", "createdAt": "2025-01-01",
                    "format": "YYYY-MM-DD as keys", "lastUpdated": "..."},
      "2025-01-01": {"date": "2025-01-01", "pricePerGram": 93.88, "pricePerKg": 93880.0,
                     "comexUsdOz": 30.5, "usdInrRate": 84.5, "source": "yahoo+frankfurter",
                     "timestamp": "2025-01-01T18:15:00+00:00"}
    }

Files that USE this module:
- silverrate.application.history_service (HistoryService)
- silverrate.application.price_service (yesterday's close for the 24h change)
- silverrate.application.health (record count)
- tests.test_history_store (unit tests)

Files that this module USES:
- silverrate.adapters.persistence.json_file (atomic write, corrupt-file recovery)
- silverrate.config (settings.history_file)
"""
from __future__ import annotations

import logging
import re
from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional

from silverrate.adapters.persistence.json_file import read_json_object, write_json_atomic
from silverrate.config import settings
from silverrate.domain.models import HistoricalPricePoint, StoredDailyPrice

log = logging.getLogger(__name__)

_DATE_KEY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _record_to_json(rec: StoredDailyPrice) -> Dict[str, Any]:
    return {
        "date": rec.date.isoformat(),
        "pricePerGram": float(rec.price_per_gram),
        "pricePerKg": float(rec.price_per_kg),
        "comexUsdOz": float(rec.comex_usd_oz),
        "usdInrRate": float(rec.usd_inr_rate),
        "source": rec.source,
        "timestamp": rec.timestamp.isoformat(),
    }


def _record_from_json(key: str, data: Dict[str, Any]) -> StoredDailyPrice:
    ts_raw = data.get("timestamp")
    if isinstance(ts_raw, str):
        ts = datetime.fromisoformat(ts_raw.replace("Z", "+00:00")).astimezone(timezone.utc)
    else:
        ts = datetime.now(timezone.utc)
    per_gram = Decimal(str(data["pricePerGram"]))
    return StoredDailyPrice(
        date=date.fromisoformat(key),
        price_per_gram=per_gram,
        price_per_kg=Decimal(str(data.get("pricePerKg", per_gram * 1000))),
        comex_usd_oz=Decimal(str(data.get("comexUsdOz", 0))),
        usd_inr_rate=Decimal(str(data.get("usdInrRate", 0))),
        source=str(data.get("source", "")),
        timestamp=ts,
    )


class HistoryStore:
    """JSON-backed store of daily closes. Reads the file on every call."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else settings.history_file

    def _load(self) -> Dict[str, Any]:
        return read_json_object(self.path) or {}

    def _records(self) -> Dict[date, StoredDailyPrice]:
        out: Dict[date, StoredDailyPrice] = {}
        for key, value in self._load().items():
            if not _DATE_KEY.match(key) or not isinstance(value, dict):
                continue
            try:
                out[date.fromisoformat(key)] = _record_from_json(key, value)
            except (KeyError, ValueError, ArithmeticError) as e:
                log.warning("Skipping malformed history record %s: %s", key, e)
        return out

    def save(self, record: StoredDailyPrice) -> None:
        """
        Insert or overwrite the record for ``record.date``.

        Raises:
            PersistenceError: If the file cannot be written
        """
        data = self._load()
        now = datetime.now(timezone.utc)
        meta = data.get("_metadata")
        if not isinstance(meta, dict):
            meta = {
                "description": "Daily silver prices stored for historical reference",
                "source": "COMEX Silver Futures (SI=F) + USD/INR conversion",
                "createdAt": now.date().isoformat(),
                "format": "YYYY-MM-DD as keys",
            }
        meta["lastUpdated"] = now.isoformat()
        data["_metadata"] = meta
        data[record.date.isoformat()] = _record_to_json(record)
        write_json_atomic(self.path, data)
        log.info("Stored daily price for %s: %s/g", record.date, record.price_per_gram)

    def get(self, day: date) -> Optional[StoredDailyPrice]:
        return self._records().get(day)

    def has(self, day: date) -> bool:
        return day in self._records()

    def previous_close(self, today: date) -> Optional[StoredDailyPrice]:
        """The most recent stored record strictly before ``today``."""
        records = self._records()
        earlier = [d for d in records if d < today]
        if not earlier:
            return None
        return records[max(earlier)]

    def points(self, since: Optional[date] = None, until: Optional[date] = None) -> List[HistoricalPricePoint]:
        """Stored closes in date order, optionally bounded (inclusive)."""
        out = []
        for day, rec in sorted(self._records().items()):
            if since is not None and day < since:
                continue
            if until is not None and day > until:
                continue
            out.append(HistoricalPricePoint(date=day, price=rec.price_per_gram, source="stored"))
        return out

    def count(self) -> int:
        return len(self._records())
