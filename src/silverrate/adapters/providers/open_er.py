"""
open.er-api.com Provider (ExchangeRate-API open access endpoint)

Free, keyless USD base rates refreshed roughly daily.

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

OPEN_ER_URL = "https://open.er-api.com/v6/latest/USD"


class OpenErProvider(ExchangeRateProvider):
    name = "open-er-api"

    _cache_data: Optional[Dict[str, Any]] = None
    _cache_ts: Optional[datetime] = None

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ):
        self.url = base_url or OPEN_ER_URL
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
            log.debug("Using cached open.er-api data")
            return self._cache_data  # type: ignore[return-value]

        log.info("Fetching fresh data from open.er-api")
        data = get_json(self.session, self.name, self.url, self.timeout)
        if data.get("result") != "success":
            raise ProviderUnavailableError(self.name, f"result={data.get('result')!r}")
        if not isinstance(data.get("rates"), dict):
            raise ProviderUnavailableError(self.name, "response missing 'rates'")

        OpenErProvider._cache_data = data
        OpenErProvider._cache_ts = datetime.now(timezone.utc)
        return data

    def rate(self, pair: CurrencyPair) -> ExchangeRate:
        data = self.get_latest_raw()
        value = to_positive_decimal(data["rates"].get(pair.quote))
        if value is None:
            raise ProviderUnavailableError(self.name, f"no valid {pair.quote} rate")
        ts = data.get("time_last_update_unix")
        if isinstance(ts, (int, float)) and ts > 0:
            as_of = datetime.fromtimestamp(ts, tz=timezone.utc)
        else:
            as_of = datetime.now(timezone.utc)
        return ExchangeRate(pair=pair, rate=value, as_of=as_of, source=self.name)
