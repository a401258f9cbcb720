"""
Persistence Adapters

JSON-file storage for daily closing prices and today's intraday extremes.
"""

from silverrate.adapters.persistence.extremes_store import ExtremesStore
from silverrate.adapters.persistence.history_store import HistoryStore

__all__ = ["ExtremesStore", "HistoryStore"]
