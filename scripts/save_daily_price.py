#!/usr/bin/env python3
"""
Save Daily Price - Standalone Cron Entry Point

Fetches the current Indian silver price and stores it as today's close,
the same work the bot's 23:45 IST job does. Useful when the bot is not
running, e.g. from cron:

    45 23 * * * cd /srv/silverrate && .venv/bin/python scripts/save_daily_price.py

Exit code 0 when stored or already present, 1 when no price was available.
"""

import asyncio
import logging
import sys

from silverrate.application.history_service import HistoryService
from silverrate.application.price_service import PriceService
from silverrate.config import settings
from silverrate.domain.models import Unavailable
from silverrate.shared.clock import ist_today
from silverrate.shared.logging_conf import setup_logging


async def run() -> int:
    log = logging.getLogger("save_daily_price")
    prices = PriceService.from_settings()
    history = HistoryService(prices, window_days=settings.history_window_days)

    if history.store.has(ist_today()):
        log.info("Today's price is already stored")
        return 0

    result = await prices.fetch_domestic()
    if isinstance(result, Unavailable):
        log.error("Could not fetch price: %s", result.reason)
        return 1
    return 0 if history.save_daily_close(result) else 1


if __name__ == "__main__":
    setup_logging(level=settings.log_level, log_file=settings.log_file, log_dir=settings.log_dir)
    sys.exit(asyncio.run(run()))
