"""
Frankfurter API Provider for USD/INR and USD/CNY

Frankfurter publishes European Central Bank reference rates (updated once
per working day), so a long cache TTL is appropriate.

Files that USE this module:
- silverrate.application.price_service (FX fallback chain)
- tests.test_providers (unit tests)

Files that this module USES:
- silverrate.adapters.providers.http (session and JSON fetch)
- silverrate.config (settings for timeout and cache TTL)
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import requests

from silverrate.adapters.providers.base import ExchangeRateProvider
from silverrate.adapters.providers.http import build_session, get_json
from silverrate.config import settings
from silverrate.domain.errors import ProviderUnavailableError
from silverrate.domain.models import CurrencyPair, ExchangeRate
from silverrate.domain.pricing import to_positive_decimal

log = logging.getLogger(__name__)

FRANKFURTER_URL = "https://api.frankfurter.app/latest"


class FrankfurterProvider(ExchangeRateProvider):
    """Fetches both pairs in one request and serves them from a shared cache."""

    name = "frankfurter"

    _cache_data: Optional[Dict[str, Any]] = None
    _cache_ts: Optional[datetime] = None

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ):
        self.url = base_url or FRANKFURTER_URL
        self.timeout = timeout or settings.http_timeout_seconds
        self.session = session or build_session()
        self.ttl = timedelta(seconds=settings.fx_cache_seconds)

    @classmethod
    def clear_cache(cls) -> None:
        cls._cache_data = None
        cls._cache_ts = None

    def _cache_valid(self) -> bool:
        if self._cache_data is None or self._cache_ts is None:
            return False
        return datetime.now(timezone.utc) - self._cache_ts < self.ttl

    def get_latest_raw(self) -> Dict[str, Any]:
        if self._cache_valid():
            log.debug("Using cached Frankfurter data")
            return self._cache_data  # type: ignore[return-value]

        quotes = ",".join(p.quote for p in CurrencyPair)
        log.info("Fetching fresh data from Frankfurter API")
        data = get_json(self.session, self.name, self.url, self.timeout, params={"from": "USD", "to": quotes})
        if not isinstance(data.get("rates"), dict):
            raise ProviderUnavailableError(self.name, "response missing 'rates'")

        FrankfurterProvider._cache_data = data
        FrankfurterProvider._cache_ts = datetime.now(timezone.utc)
        return data

    def rate(self, pair: CurrencyPair) -> ExchangeRate:
        data = self.get_latest_raw()
        value = to_positive_decimal(data["rates"].get(pair.quote))
        if value is None:
            raise ProviderUnavailableError(self.name, f"no valid {pair.quote} rate")
        return ExchangeRate(pair=pair, rate=value, as_of=self._as_of(data), source=self.name)

    @staticmethod
    def _as_of(data: Dict[str, Any]) -> datetime:
        raw = data.get("date")
        if isinstance(raw, str):
            try:
                return datetime.fromisoformat(raw).replace(tzinfo=timezone.utc)
            except ValueError:
                log.debug("Unparseable Frankfurter date %r", raw)
        return datetime.now(timezone.utc)
