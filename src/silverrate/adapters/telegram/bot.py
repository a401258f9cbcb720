# src/silverrate/adapters/telegram/bot.py
"""
Telegram Bot - Application Builder and Lifecycle

Builds the python-telegram-bot Application, stores the wired services in
``bot_data`` and ties the refresh loops to the application lifecycle:
loops start in ``post_init`` (inside the running event loop) and are
cancelled in ``post_shutdown``.

Files that USE this module:
- silverrate.app (build_application)
- silverrate.adapters.telegram.handlers (get_services)
- silverrate.adapters.telegram.jobs (get_services)

Files that this module USES:
- silverrate.application.* (services stored for handlers and jobs)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from telegram.ext import Application, ContextTypes

from silverrate.adapters.ai.commentary import CommentaryService
from silverrate.application.health import HealthChecker
from silverrate.application.history_service import HistoryService
from silverrate.application.price_service import PriceService
from silverrate.application.refresh_loop import RefreshLoop

log = logging.getLogger(__name__)

SERVICES_KEY = "services"


@dataclass
class Services:
    prices: PriceService
    history: HistoryService
    domestic: RefreshLoop
    shanghai: RefreshLoop
    health: HealthChecker
    commentary: CommentaryService
    # last /shanghai request; the idle job pauses the Shanghai loop without one
    shanghai_seen_at: Optional[datetime] = None

    @property
    def loops(self):
        return (self.domestic, self.shanghai)


def get_services(context: ContextTypes.DEFAULT_TYPE) -> Services:
    return context.application.bot_data[SERVICES_KEY]


async def _start_loops(app: Application) -> None:
    services: Services = app.bot_data[SERVICES_KEY]
    for loop in services.loops:
        loop.start()


async def _stop_loops(app: Application) -> None:
    services: Services = app.bot_data[SERVICES_KEY]
    for loop in services.loops:
        await loop.stop()
    log.info("Refresh loops stopped")


def build_application(bot_token: str, services: Services) -> Application:
    """
    Build Telegram bot application with lifecycle hooks.

    Args:
        bot_token: Telegram bot token
        services: Wired application services

    Returns:
        Configured Application instance
    """
    app = (
        Application.builder()
        .token(bot_token)
        .post_init(_start_loops)
        .post_shutdown(_stop_loops)
        .build()
    )
    app.bot_data[SERVICES_KEY] = services
    return app
