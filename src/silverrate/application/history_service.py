"""
History Service - Historical Prices, Window Stats and Weekly Summary

Combines the stored daily closes with Yahoo Finance history:

- If stored closes cover at least 80% of the requested window they are used
  as-is.
- Otherwise Yahoo daily COMEX closes are converted with the current USD/INR
  rate and merged in; a stored close always wins over a converted one.
- If both are unavailable the result is whatever was stored (possibly
  empty). A series is never synthesised.

Files that USE this module:
- silverrate.app (wires HistoryService)
- silverrate.adapters.telegram.handlers (/week)
- silverrate.adapters.telegram.jobs (daily close save, weekly summary)
- tests.test_history_service (unit tests)

Files that this module USES:
- silverrate.adapters.persistence.history_store (HistoryStore)
- silverrate.application.price_service (FxChain, PriceService.convert_close)
- silverrate.domain.analytics (window_stats, weekly_summary)
"""
from __future__ import annotations

import asyncio
import logging
import math
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional

from silverrate.adapters.persistence import HistoryStore
from silverrate.application.price_service import PriceService
from silverrate.domain import analytics
from silverrate.domain.errors import PersistenceError
from silverrate.domain.models import (
    CurrencyPair,
    DerivedPrice,
    HistoricalPricePoint,
    PriceResult,
    StoredDailyPrice,
    WeeklySummary,
    WindowStats,
)
from silverrate.shared.clock import ist_today, utcnow

log = logging.getLogger(__name__)

STORED_COVERAGE = 0.8


class HistoryService:
    def __init__(self, prices: PriceService, store: Optional[HistoryStore] = None, window_days: int = 7):
        self.prices = prices
        self.store = store or prices.history
        self.window_days = window_days

    async def historical_prices(self, days: int, now: Optional[datetime] = None) -> List[HistoricalPricePoint]:
        """Daily prices per gram for the last ``days`` IST days (inclusive of today), oldest first."""
        today = ist_today(now)
        since = today - timedelta(days=days - 1)
        stored = self.store.points(since=since, until=today)
        if len(stored) >= math.ceil(days * STORED_COVERAGE):
            return stored

        log.info("Stored history covers %d/%d days, fetching Yahoo closes", len(stored), days)
        try:
            closes, rate = await asyncio.gather(
                asyncio.to_thread(self.prices.spot_provider.daily_closes, days),
                asyncio.to_thread(self.prices.inr_chain.rate, CurrencyPair.USD_INR),
            )
        except Exception as e:
            log.warning("Historical fetch failed, using %d stored points: %s", len(stored), e)
            return stored

        merged: Dict = {}
        for day, close in closes:
            if not since <= day <= today:
                continue
            price = self.prices.convert_close(close, rate)
            if price is not None:
                merged[day] = HistoricalPricePoint(date=day, price=price, source="yahoo")
        for point in stored:
            merged[point.date] = point
        return [merged[d] for d in sorted(merged)]

    async def window_stats(
        self,
        days: Optional[int] = None,
        today_high: Optional[Decimal] = None,
        today_low: Optional[Decimal] = None,
        now: Optional[datetime] = None,
    ) -> Optional[WindowStats]:
        days = days or self.window_days
        points = await self.historical_prices(days, now)
        return analytics.window_stats(points, days, today_high, today_low)

    async def weekly_summary(
        self,
        closing_price: Optional[Decimal] = None,
        now: Optional[datetime] = None,
    ) -> Optional[WeeklySummary]:
        today = ist_today(now)
        week_start = today - timedelta(days=6)
        points = await self.historical_prices(7, now)
        return analytics.weekly_summary(points, week_start, today, closing_price)

    def save_daily_close(self, result: PriceResult, now: Optional[datetime] = None) -> bool:
        """
        Store today's closing price once per IST day.

        Returns:
            True if a record was written; False if today was already stored,
            the price was unavailable, or the write failed
        """
        now = now or utcnow()
        today = ist_today(now)
        if self.store.has(today):
            log.info("Daily price for %s already stored, skipping", today)
            return False
        if not isinstance(result, DerivedPrice):
            log.warning("Not storing daily price for %s: %s", today, getattr(result, "reason", result))
            return False

        record = StoredDailyPrice(
            date=today,
            price_per_gram=result.price_per_gram,
            price_per_kg=result.price_per_kg,
            comex_usd_oz=result.spot_usd,
            usd_inr_rate=result.exchange_rate,
            source=result.source,
            timestamp=now,
        )
        try:
            self.store.save(record)
        except PersistenceError as e:
            log.error("Failed to store daily price for %s: %s", today, e)
            return False
        return True
