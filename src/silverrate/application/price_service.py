"""
Price Service - Fetch, Derive and Enrich Silver Prices

This module contains the core use-cases:
- fetch_domestic: COMEX spot + USD/INR -> Indian price per gram/kg, with
  the 24h change and today's high/low/open
- fetch_shanghai: COMEX spot + USD/CNY + USD/INR -> SGE estimate

Upstream calls are blocking ``requests`` calls; they run in worker threads
via ``asyncio.to_thread`` and are gathered concurrently under one overall
timeout. Enrichment reads and writes JSON files, so it runs in a worker
thread too. Any upstream failure yields ``Unavailable``; no number is invented.

Files that USE this module:
- silverrate.app (builds PriceService and the refresh loops)
- silverrate.adapters.telegram.handlers (/price, /shanghai, /cities, /why)
- silverrate.adapters.telegram.jobs (daily close, morning post)
- silverrate.application.health (FX chain checks)
- tests.test_price_service (unit tests)

Files that this module USES:
- silverrate.adapters.providers.* (Yahoo, Frankfurter, open.er-api)
- silverrate.adapters.persistence.* (HistoryStore, ExtremesStore)
- silverrate.domain.pricing (derive_price, derive_shanghai_price, apply_change, apply_extremes)
- silverrate.domain.analytics (update_extremes)
- silverrate.domain.market_hours (sge_market_status)
"""
from __future__ import annotations  # Enable postponed evaluation of annotations

import asyncio  # Concurrent upstream fetches
import logging  # Standard library for logging messages
from datetime import datetime  # Timestamps for enrichment
from decimal import Decimal  # Plausibility bounds
from typing import Dict, List, Optional, Sequence, Tuple, Union  # Type hints

from silverrate.adapters.persistence import ExtremesStore, HistoryStore
from silverrate.adapters.providers import (
    ExchangeRateProvider,
    FrankfurterProvider,
    OpenErProvider,
    SpotPriceProvider,
    YahooFinanceProvider,
)
from silverrate.config import settings
from silverrate.domain.analytics import update_extremes
from silverrate.domain.errors import ProviderUnavailableError
from silverrate.domain.market_hours import sge_market_status
from silverrate.domain.models import (
    CurrencyPair,
    DerivedPrice,
    ExchangeRate,
    PriceResult,
    PricingConfig,
    ShanghaiPrice,
    SpotPrice,
    Unavailable,
)
from silverrate.domain.pricing import (
    apply_change,
    apply_extremes,
    derive_price,
    derive_shanghai_price,
)
from silverrate.shared.clock import ist_today, utcnow

log = logging.getLogger(__name__)

# Rates outside these bounds are treated as a bad upstream response
PLAUSIBLE_RATES: Dict[CurrencyPair, Tuple[Decimal, Decimal]] = {
    CurrencyPair.USD_INR: (Decimal("60"), Decimal("120")),
    CurrencyPair.USD_CNY: (Decimal("5"), Decimal("10")),
}


class FxChain:
    """
    Exchange-rate provider chain that tries providers in order.

    A provider that raises, or returns a rate outside PLAUSIBLE_RATES, is
    skipped. Tracks which provider was actually used.
    """

    def __init__(self, providers: Sequence[ExchangeRateProvider]):
        if not providers:
            raise ValueError("FxChain needs at least one provider")
        self.providers = list(providers)
        self.last_used_provider: Optional[str] = None

    def rate(self, pair: CurrencyPair) -> ExchangeRate:
        """
        Raises:
            ProviderUnavailableError: If every provider fails
        """
        errors: List[str] = []
        low, high = PLAUSIBLE_RATES[pair]
        for provider in self.providers:
            try:
                rate = provider.rate(pair)
            except Exception as e:
                log.warning("FX provider %s failed for %s: %s", provider.name, pair.value, e)
                errors.append(f"{provider.name}={e}")
                continue
            if not low <= rate.rate <= high:
                log.warning(
                    "FX provider %s returned implausible %s rate %s (expected %s-%s)",
                    provider.name, pair.value, rate.rate, low, high,
                )
                errors.append(f"{provider.name}=implausible {rate.rate}")
                continue
            self.last_used_provider = provider.name
            return rate

        log.error("All FX providers failed for %s: %s", pair.value, "; ".join(errors))
        raise ProviderUnavailableError("fx", f"all providers failed for {pair.value}: {'; '.join(errors)}")

    def get_last_provider(self) -> Optional[str]:
        return self.last_used_provider


class PriceService:
    """
    High-level service for fetching and composing silver prices.
    """

    def __init__(
        self,
        spot_provider: SpotPriceProvider,
        inr_chain: FxChain,
        cny_chain: FxChain,
        history: HistoryStore,
        extremes: ExtremesStore,
        config: PricingConfig,
        shanghai_config: PricingConfig,
        fetch_timeout: float = 20.0,
    ):
        self.spot_provider = spot_provider
        self.inr_chain = inr_chain
        self.cny_chain = cny_chain
        self.history = history
        self.extremes = extremes
        self.config = config
        self.shanghai_config = shanghai_config
        self.fetch_timeout = fetch_timeout

    @classmethod
    def from_settings(cls) -> "PriceService":
        """
        Wire the default providers.

        USD/INR: Frankfurter, then open.er-api, then Yahoo.
        USD/CNY: Yahoo, then Frankfurter, then open.er-api.
        """
        yahoo = YahooFinanceProvider()
        frankfurter = FrankfurterProvider()
        open_er = OpenErProvider()
        return cls(
            spot_provider=yahoo,
            inr_chain=FxChain([frankfurter, open_er, yahoo]),
            cny_chain=FxChain([yahoo, frankfurter, open_er]),
            history=HistoryStore(),
            extremes=ExtremesStore(),
            config=settings.pricing_config(),
            shanghai_config=settings.shanghai_config(),
            fetch_timeout=settings.fetch_timeout_seconds,
        )

    async def _fetch_all(self, *calls) -> Union[list, Unavailable]:
        """Run blocking callables concurrently in threads under the overall timeout."""
        try:
            return await asyncio.wait_for(
                asyncio.gather(*(asyncio.to_thread(fn, *args) for fn, *args in calls)),
                timeout=self.fetch_timeout,
            )
        except asyncio.TimeoutError:
            log.warning("Upstream fetch timed out after %ss", self.fetch_timeout)
            return Unavailable(f"upstream timeout after {self.fetch_timeout:g}s")
        except ProviderUnavailableError as e:
            return Unavailable(str(e))
        except Exception as e:
            log.exception("Unexpected error while fetching upstream data")
            return Unavailable(f"unexpected error: {e}")

    async def fetch_domestic(self) -> PriceResult:
        """
        Fetch the Indian silver price.

        Returns:
            DerivedPrice enriched with 24h change and today's extremes,
            or Unavailable if the spot price or USD/INR cannot be fetched
        """
        fetched = await self._fetch_all(
            (self.spot_provider.spot_price,),
            (self.inr_chain.rate, CurrencyPair.USD_INR),
        )
        if isinstance(fetched, Unavailable):
            log.warning("Domestic price unavailable: %s", fetched.reason)
            return fetched

        spot, usd_inr = fetched
        result = derive_price(spot, usd_inr, self.config)
        if isinstance(result, Unavailable):
            log.warning("Domestic price derivation failed: %s", result.reason)
            return result
        # store reads and the fsync'd extremes write stay off the event loop
        return await asyncio.to_thread(self.enrich, result, spot)

    def enrich(self, price: DerivedPrice, spot: Optional[SpotPrice] = None, now: Optional[datetime] = None) -> DerivedPrice:
        """
        Attach the 24h change and today's high/low/open.

        The 24h change compares against the most recent stored close before
        today. With no stored close it falls back to the feed's previous
        COMEX close converted at today's rate. Extremes failures degrade to
        the current price (PartialData).
        """
        now = now or utcnow()
        today = ist_today(now)

        try:
            previous = self.history.previous_close(today)
        except Exception as e:
            log.warning("Could not read history for 24h change: %s", e)
            previous = None

        if previous is not None:
            price = apply_change(price, previous.price_per_gram)
        elif spot is not None and spot.previous_close_usd:
            prev_spot = SpotPrice(value_usd=spot.previous_close_usd, as_of=spot.as_of, source=spot.source)
            prev_rate = ExchangeRate(pair=self.config.currency, rate=price.exchange_rate, as_of=price.as_of)
            prev = derive_price(prev_spot, prev_rate, self.config)
            if isinstance(prev, DerivedPrice):
                price = apply_change(price, prev.price_per_gram)

        try:
            extremes = update_extremes(self.extremes.get(today), price.price_per_gram, today, now)
            self.extremes.put(extremes)
        except Exception as e:
            log.warning("Could not update daily extremes: %s", e)
            extremes = None
        return apply_extremes(price, extremes)

    async def fetch_shanghai(self, now: Optional[datetime] = None) -> Union[ShanghaiPrice, Unavailable]:
        """Fetch the Shanghai (SGE) estimate alongside the Indian comparison rate."""
        fetched = await self._fetch_all(
            (self.spot_provider.spot_price,),
            (self.cny_chain.rate, CurrencyPair.USD_CNY),
            (self.inr_chain.rate, CurrencyPair.USD_INR),
        )
        if isinstance(fetched, Unavailable):
            log.warning("Shanghai price unavailable: %s", fetched.reason)
            return fetched

        spot, usd_cny, usd_inr = fetched
        return derive_shanghai_price(
            spot,
            usd_cny,
            usd_inr,
            self.shanghai_config,
            self.config,
            market=sge_market_status(now),
        )

    def convert_close(self, close_usd: Decimal, rate: ExchangeRate) -> Optional[Decimal]:
        """Convert a historical COMEX close to a local price per gram with the current config."""
        result = derive_price(SpotPrice(value_usd=close_usd, as_of=rate.as_of), rate, self.config)
        if isinstance(result, Unavailable):
            return None
        return result.price_per_gram
