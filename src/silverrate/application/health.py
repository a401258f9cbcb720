# src/silverrate/application/health.py
"""
Health Checker - System Monitoring and Diagnostics

Checks the spot price feed, both FX chains, the history file and the
refresh loops, and aggregates them into one report for the /health
command. The checks are blocking; callers run them in a worker thread.

Files that USE this module:
- silverrate.app (builds HealthChecker)
- silverrate.adapters.telegram.handlers (/health)
- tests.test_health (unit tests)

Files that this module USES:
- silverrate.application.price_service (PriceService, FxChain)
- silverrate.application.refresh_loop (RefreshLoop.view / stats)
- silverrate.adapters.ai.commentary (configured or not)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from silverrate.adapters.ai.commentary import CommentaryService
from silverrate.application.price_service import FxChain, PriceService
from silverrate.application.refresh_loop import RefreshLoop
from silverrate.domain.models import CurrencyPair

logger = logging.getLogger(__name__)


@dataclass
class HealthStatus:
    """Represents the health status of a component."""
    is_healthy: bool
    message: str
    last_check: datetime
    details: Optional[Dict[str, Any]] = None


def _now() -> datetime:
    return datetime.now(timezone.utc)


class HealthChecker:
    """Centralized health checking for all bot components."""

    def __init__(
        self,
        prices: PriceService,
        loops: Optional[Mapping[str, RefreshLoop]] = None,
        commentary: Optional[CommentaryService] = None,
    ):
        self.prices = prices
        self.loops = dict(loops or {})
        self.commentary = commentary

    def check_spot_feed(self) -> HealthStatus:
        try:
            spot = self.prices.spot_provider.spot_price()
            return HealthStatus(
                is_healthy=True,
                message=f"COMEX ${spot.value_usd}/oz via {spot.source}",
                last_check=_now(),
                details={"price": str(spot.value_usd), "as_of": spot.as_of.isoformat()},
            )
        except Exception as e:
            logger.error("Spot feed health check failed: %s", e)
            return HealthStatus(is_healthy=False, message=f"Spot feed error: {e}", last_check=_now())

    def check_fx(self, chain: FxChain, pair: CurrencyPair) -> HealthStatus:
        try:
            rate = chain.rate(pair)
            return HealthStatus(
                is_healthy=True,
                message=f"{pair.value} {rate.rate} via {rate.source}",
                last_check=_now(),
                details={"rate": str(rate.rate), "provider": chain.get_last_provider()},
            )
        except Exception as e:
            logger.error("%s health check failed: %s", pair.value, e)
            return HealthStatus(is_healthy=False, message=f"{pair.value} error: {e}", last_check=_now())

    def check_history(self) -> HealthStatus:
        try:
            count = self.prices.history.count()
            return HealthStatus(
                is_healthy=True,
                message=f"{count} stored daily closes",
                last_check=_now(),
                details={"records": count, "path": str(self.prices.history.path)},
            )
        except Exception as e:
            logger.error("History health check failed: %s", e)
            return HealthStatus(is_healthy=False, message=f"History error: {e}", last_check=_now())

    def check_loop(self, loop: RefreshLoop) -> HealthStatus:
        view = loop.view()
        stats = loop.stats()
        if not loop.running:
            return HealthStatus(False, "not running", _now(), stats)
        if loop.paused:
            return HealthStatus(True, "paused (no recent requests)", _now(), stats)
        if view.error:
            return HealthStatus(False, f"{view.error} ({view.last_error})", _now(), stats)
        if view.is_stale:
            return HealthStatus(False, f"stale since {view.as_of} ({view.last_error})", _now(), stats)
        if view.is_loading:
            return HealthStatus(True, "waiting for first fetch", _now(), stats)
        return HealthStatus(True, f"fresh, as of {view.as_of:%H:%M:%S} UTC", _now(), stats)

    def check_commentary(self) -> HealthStatus:
        configured = self.commentary is not None and self.commentary.client is not None
        return HealthStatus(
            is_healthy=True,
            message="configured" if configured else "disabled (AI_API_KEY not set)",
            last_check=_now(),
            details={"configured": configured},
        )

    def get_overall_health(self) -> Dict[str, Any]:
        """
        Get overall health status of all components.

        The commentary check never makes the bot unhealthy; it is optional.
        """
        checks = {
            "spot_feed": self.check_spot_feed(),
            "usd_inr": self.check_fx(self.prices.inr_chain, CurrencyPair.USD_INR),
            "usd_cny": self.check_fx(self.prices.cny_chain, CurrencyPair.USD_CNY),
            "history": self.check_history(),
            "commentary": self.check_commentary(),
        }
        for name, loop in self.loops.items():
            checks[f"loop_{name}"] = self.check_loop(loop)

        failed_checks = [name for name, check in checks.items() if not check.is_healthy]
        overall_healthy = not failed_checks
        if overall_healthy:
            status_message = "All systems healthy"
        else:
            status_message = f"Degraded - {len(failed_checks)} component(s) failed: {', '.join(failed_checks)}"

        return {
            "overall_healthy": overall_healthy,
            "status": "healthy" if overall_healthy else "degraded",
            "message": status_message,
            "failed_components": failed_checks,
            "timestamp": _now().isoformat(),
            "checks": {
                name: {
                    "healthy": check.is_healthy,
                    "message": check.message,
                    "last_check": check.last_check.isoformat(),
                    "details": check.details,
                }
                for name, check in checks.items()
            },
        }
