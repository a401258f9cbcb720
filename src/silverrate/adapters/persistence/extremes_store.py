"""
Extremes Store - Today's Intraday High/Low

Holds today's DailyExtremes in memory and mirrors it to a small JSON file
so a restart during the day keeps the high/low seen so far. A file from an
earlier IST day is ignored.

Files that USE this module:
- silverrate.application.price_service (PriceService keeps extremes current)

Files that this module USES:
- silverrate.adapters.persistence.json_file (atomic write, corrupt-file recovery)
- silverrate.config (settings.extremes_file)
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Optional

from silverrate.adapters.persistence.json_file import read_json_object, write_json_atomic
from silverrate.config import settings
from silverrate.domain.errors import PersistenceError
from silverrate.domain.models import DailyExtremes

log = logging.getLogger(__name__)


def _to_json(ext: DailyExtremes) -> Dict[str, Any]:
    return {
        "date": ext.date.isoformat(),
        "high": float(ext.high),
        "highTime": ext.high_time.isoformat(),
        "low": float(ext.low),
        "lowTime": ext.low_time.isoformat(),
        "openPrice": float(ext.open_price),
        "lastUpdated": ext.last_updated.isoformat(),
    }


def _from_json(data: Dict[str, Any]) -> DailyExtremes:
    return DailyExtremes(
        date=date.fromisoformat(data["date"]),
        high=Decimal(str(data["high"])),
        high_time=datetime.fromisoformat(data["highTime"]),
        low=Decimal(str(data["low"])),
        low_time=datetime.fromisoformat(data["lowTime"]),
        open_price=Decimal(str(data["openPrice"])),
        last_updated=datetime.fromisoformat(data["lastUpdated"]),
    )


class ExtremesStore:
    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else settings.extremes_file
        self._current: Optional[DailyExtremes] = None
        self._loaded = False

    def get(self, today: date) -> Optional[DailyExtremes]:
        """Today's extremes, or None if nothing has been recorded for ``today``."""
        if not self._loaded:
            self._loaded = True
            data = read_json_object(self.path)
            if data:
                try:
                    self._current = _from_json(data)
                except (KeyError, ValueError, ArithmeticError) as e:
                    log.warning("Ignoring malformed extremes file %s: %s", self.path, e)
        if self._current is not None and self._current.date == today:
            return self._current
        return None

    def put(self, extremes: DailyExtremes) -> None:
        """Replace today's extremes. A failed file write keeps the in-memory value."""
        changed = self._current != extremes
        self._current = extremes
        self._loaded = True
        if not changed:
            return
        try:
            write_json_atomic(self.path, _to_json(extremes))
        except PersistenceError as e:
            log.error("Could not persist daily extremes: %s", e)
