"""
Yahoo Finance Chart API Provider

Fetches the COMEX silver futures price (``SI=F``), daily closes for history,
and the ``INR=X`` / ``CNY=X`` exchange rates from the public v8 chart
endpoint. Responses are cached per (symbol, range) with a short TTL.

Response shape used here:
  {"chart": {"result": [{"meta": {"regularMarketPrice": 30.5,
                                  "previousClose": 30.1,
                                  "regularMarketTime": 1735689600},
                         "timestamp": [...],
                         "indicators": {"quote": [{"close": [...]}]}}],
             "error": null}}

Files that USE this module:
- silverrate.application.price_service (spot price and FX fallback)
- silverrate.application.history_service (daily closes)
- silverrate.application.health (connectivity check)
- tests.test_providers (unit tests)

Files that this module USES:
- silverrate.adapters.providers.http (session and JSON fetch)
- silverrate.config (settings for timeouts and cache TTLs)
"""
import logging
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

import requests

from silverrate.adapters.providers.base import ExchangeRateProvider, SpotPriceProvider
from silverrate.adapters.providers.http import build_session, get_json
from silverrate.config import settings
from silverrate.domain.errors import ProviderUnavailableError
from silverrate.domain.models import CurrencyPair, ExchangeRate, SpotPrice
from silverrate.domain.pricing import to_positive_decimal

log = logging.getLogger(__name__)

CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart/{symbol}"
SILVER_SYMBOL = "SI=F"
FX_SYMBOLS = {
    CurrencyPair.USD_INR: "INR=X",
    CurrencyPair.USD_CNY: "CNY=X",
}


def history_range(days: int) -> str:
    """Smallest Yahoo range string covering ``days`` calendar days."""
    if days <= 7:
        return "7d"
    if days <= 31:
        return "1mo"
    if days <= 93:
        return "3mo"
    if days <= 186:
        return "6mo"
    return "1y"


class YahooFinanceProvider(SpotPriceProvider, ExchangeRateProvider):
    """
    Lightweight client for the Yahoo Finance chart endpoint.

    Cache is class-level so every instance shares it; key is (symbol, range).
    """

    name = "yahoo"

    _cache_data: Dict[Tuple[str, str], Dict[str, Any]] = {}
    _cache_ts: Dict[Tuple[str, str], datetime] = {}

    def __init__(self, timeout: Optional[int] = None, session: Optional[requests.Session] = None):
        """
        Initialize Yahoo Finance provider.

        Args:
            timeout: Optional HTTP timeout in seconds (defaults to settings.http_timeout_seconds)
            session: Optional requests session (defaults to a retrying session)
        """
        self.timeout = timeout or settings.http_timeout_seconds
        self.session = session or build_session()
        self.spot_ttl = timedelta(seconds=settings.spot_cache_seconds)
        self.fx_ttl = timedelta(seconds=settings.fx_cache_seconds)

    @classmethod
    def clear_cache(cls) -> None:
        cls._cache_data.clear()
        cls._cache_ts.clear()

    def _cache_valid(self, key: Tuple[str, str], ttl: timedelta) -> bool:
        ts = self._cache_ts.get(key)
        if ts is None or key not in self._cache_data:
            return False
        return datetime.now(timezone.utc) - ts < ttl

    def _chart(self, symbol: str, range_: str, ttl: timedelta) -> Dict[str, Any]:
        """Return ``chart.result[0]`` for a symbol, using the TTL cache."""
        key = (symbol, range_)
        if self._cache_valid(key, ttl):
            log.debug("Using cached Yahoo data for %s (%s)", symbol, range_)
            return self._cache_data[key]

        log.info("Fetching Yahoo chart %s range=%s", symbol, range_)
        data = get_json(
            self.session,
            self.name,
            CHART_URL.format(symbol=symbol),
            self.timeout,
            params={"interval": "1d", "range": range_},
        )
        chart = data.get("chart") or {}
        results = chart.get("result") or []
        if not results or not isinstance(results[0], dict):
            err = chart.get("error")
            raise ProviderUnavailableError(self.name, f"no chart result for {symbol}: {err}")

        result = results[0]
        YahooFinanceProvider._cache_data[key] = result
        YahooFinanceProvider._cache_ts[key] = datetime.now(timezone.utc)
        return result

    @staticmethod
    def _market_time(meta: Dict[str, Any]) -> datetime:
        ts = meta.get("regularMarketTime")
        if isinstance(ts, (int, float)) and ts > 0:
            return datetime.fromtimestamp(ts, tz=timezone.utc)
        return datetime.now(timezone.utc)

    def spot_price(self) -> SpotPrice:
        result = self._chart(SILVER_SYMBOL, "2d", self.spot_ttl)
        meta = result.get("meta") or {}
        price = to_positive_decimal(meta.get("regularMarketPrice"))
        if price is None:
            raise ProviderUnavailableError(
                self.name, f"invalid regularMarketPrice: {meta.get('regularMarketPrice')!r}"
            )
        previous = to_positive_decimal(meta.get("previousClose") or meta.get("chartPreviousClose"))
        return SpotPrice(
            value_usd=price,
            as_of=self._market_time(meta),
            previous_close_usd=previous,
            source=self.name,
        )

    def rate(self, pair: CurrencyPair) -> ExchangeRate:
        symbol = FX_SYMBOLS.get(pair)
        if symbol is None:
            raise ProviderUnavailableError(self.name, f"unsupported pair {pair.value}")
        result = self._chart(symbol, "1d", self.fx_ttl)
        meta = result.get("meta") or {}
        value = to_positive_decimal(meta.get("regularMarketPrice"))
        if value is None:
            raise ProviderUnavailableError(self.name, f"invalid {symbol} rate: {meta.get('regularMarketPrice')!r}")
        return ExchangeRate(pair=pair, rate=value, as_of=self._market_time(meta), source=self.name)

    def daily_closes(self, days: int) -> List[Tuple[date, Decimal]]:
        """
        Daily COMEX closes in USD/oz, oldest first.

        Null closes (holidays, partial sessions) are skipped. When Yahoo
        reports two bars for the same date the later one wins.
        """
        result = self._chart(SILVER_SYMBOL, history_range(days), self.fx_ttl)
        timestamps = result.get("timestamp") or []
        try:
            closes = result["indicators"]["quote"][0]["close"] or []
        except (KeyError, IndexError, TypeError):
            raise ProviderUnavailableError(self.name, "history response missing close prices")

        by_date: Dict[date, Decimal] = {}
        for ts, close in zip(timestamps, closes):
            price = to_positive_decimal(close)
            if price is None or not isinstance(ts, (int, float)):
                continue
            by_date[datetime.fromtimestamp(ts, tz=timezone.utc).date()] = price
        return sorted(by_date.items())
