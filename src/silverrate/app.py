# src/silverrate/app.py
"""
Application Entry Point - Bot Initialization and Startup

This module serves as the composition root for the SilverRate Telegram bot.
It wires providers, stores and services, creates the two refresh loops
(domestic price and Shanghai estimate), registers handlers and scheduled
jobs, and starts polling.

Files that USE this module:
- pyproject.toml console script ``silverrate``
- python -m silverrate (module entry point)

Files that this module USES:
- silverrate.shared.logging_conf (setup_logging for logging configuration)
- silverrate.config (settings for configuration management)
- silverrate.application.* (PriceService, HistoryService, RefreshLoop, HealthChecker)
- silverrate.adapters.ai.commentary (CommentaryService)
- silverrate.adapters.telegram.* (application builder, handlers, jobs)
"""

from __future__ import annotations  # Enable postponed evaluation of annotations for forward references

import atexit  # Register cleanup functions to run when program exits
import logging  # Standard library for logging messages and errors
import os  # Operating system interface for environment variables and process management
import sys  # System-specific parameters and functions for exit codes
from datetime import time  # Times of day for scheduled jobs
from pathlib import Path  # Object-oriented filesystem paths

from telegram.error import Conflict, NetworkError, TimedOut  # Telegram API error exceptions

from silverrate.adapters.ai.commentary import CommentaryService
from silverrate.adapters.telegram.bot import Services, build_application
from silverrate.adapters.telegram.handlers import build_handlers
from silverrate.adapters.telegram.jobs import (
    daily_close_job,  # 23:45 IST closing price save
    morning_post_job,  # 09:00 IST channel post
    shanghai_idle_job,  # pauses the Shanghai loop while unused
    weekly_summary_job,  # Sunday 10:00 IST weekly report
)
from silverrate.application.health import HealthChecker
from silverrate.application.history_service import HistoryService
from silverrate.application.price_service import PriceService
from silverrate.application.refresh_loop import RefreshLoop
from silverrate.config import settings
from silverrate.shared.clock import IST
from silverrate.shared.logging_conf import setup_logging

DAILY_CLOSE_TIME = time(23, 45, tzinfo=IST)
MORNING_POST_TIME = time(9, 0, tzinfo=IST)
WEEKLY_SUMMARY_TIME = time(10, 0, tzinfo=IST)
SUNDAY = 0  # JobQueue.run_daily: 0 = Sunday ... 6 = Saturday
IDLE_CHECK_SECONDS = 60


def _get_pid_file() -> Path:
    """PID file path from SILVERRATE_PID_FILE or the data directory."""
    pid_file = os.environ.get("SILVERRATE_PID_FILE")
    if pid_file:
        return Path(pid_file)
    return settings.data_dir / "bot.pid"


def _check_existing_instance() -> None:
    """
    Check if another bot instance is already running.

    Raises RuntimeError if PID file exists and process is still running.
    """
    pid_file = _get_pid_file()
    if not pid_file.exists():
        return
    try:
        old_pid = int(pid_file.read_text().strip())
    except (ValueError, OSError):
        pid_file.unlink(missing_ok=True)
        return

    try:
        os.kill(old_pid, 0)  # Signal 0 only checks that the process exists
    except ProcessLookupError:
        pid_file.unlink(missing_ok=True)
        return
    except PermissionError:
        pass  # Exists but owned by another user
    raise RuntimeError(
        f"Another bot instance is already running (PID: {old_pid}).\n"
        f"Please stop it first with: kill {old_pid}"
    )


def _create_pid_file() -> None:
    pid_file = _get_pid_file()
    pid_file.parent.mkdir(parents=True, exist_ok=True)
    pid_file.write_text(str(os.getpid()))


def _remove_pid_file() -> None:
    try:
        _get_pid_file().unlink(missing_ok=True)
    except OSError:
        pass


def build_services() -> Services:
    """Wire providers, stores and services from settings."""
    prices = PriceService.from_settings()
    history = HistoryService(prices, window_days=settings.history_window_days)
    domestic = RefreshLoop("domestic", prices.fetch_domestic, settings.domestic_poll_seconds)
    shanghai = RefreshLoop("shanghai", prices.fetch_shanghai, settings.shanghai_poll_seconds)
    commentary = CommentaryService()
    health = HealthChecker(
        prices,
        loops={"domestic": domestic, "shanghai": shanghai},
        commentary=commentary,
    )
    return Services(
        prices=prices,
        history=history,
        domestic=domestic,
        shanghai=shanghai,
        health=health,
        commentary=commentary,
    )


def main() -> None:
    """
    Initialize and start the Telegram bot application.

    This function:
    1. Sets up logging and takes the single-instance lock
    2. Wires services and the refresh loops
    3. Registers command handlers and scheduled jobs
    4. Starts the bot polling loop (loops start/stop with the application)
    """
    setup_logging(
        level=settings.log_level,
        log_file=settings.log_file,
        log_dir=settings.log_dir,
        max_bytes=settings.log_max_bytes,
        backup_count=settings.log_backup_count,
    )
    logger = logging.getLogger(__name__)
    logger.info("Working directory: %s", os.getcwd())

    if not settings.bot_token:
        raise RuntimeError("BOT_TOKEN missing")

    try:
        _check_existing_instance()
        _create_pid_file()
        atexit.register(_remove_pid_file)
        logger.info("Bot instance lock acquired (PID: %d)", os.getpid())
    except RuntimeError as e:
        logger.error(str(e))
        sys.exit(1)

    services = build_services()
    app = build_application(settings.bot_token, services)

    for h in build_handlers():
        app.add_handler(h)

    app.job_queue.run_daily(callback=daily_close_job, time=DAILY_CLOSE_TIME, name="daily_close")
    app.job_queue.run_daily(callback=morning_post_job, time=MORNING_POST_TIME, name="morning_post")
    app.job_queue.run_daily(
        callback=weekly_summary_job,
        time=WEEKLY_SUMMARY_TIME,
        days=(SUNDAY,),
        name="weekly_summary",
    )
    app.job_queue.run_repeating(
        callback=shanghai_idle_job,
        interval=IDLE_CHECK_SECONDS,
        first=IDLE_CHECK_SECONDS,
        name="shanghai_idle",
    )

    logger.info(
        "Starting bot polling… domestic refresh=%ds, shanghai refresh=%ds",
        settings.domestic_poll_seconds,
        settings.shanghai_poll_seconds,
    )

    try:
        app.run_polling(drop_pending_updates=False)
    except Conflict as e:
        logger.error(
            "Telegram Conflict error: %s. Another bot instance is polling with this token; "
            "stop it and restart.", e,
        )
        raise
    except (TimedOut, NetworkError) as e:
        logger.error("Network error talking to the Telegram API: %s (type: %s)", e, type(e).__name__, exc_info=True)
        raise
    except KeyboardInterrupt:
        logger.info("Bot stopped by user (KeyboardInterrupt)")
    except Exception as e:
        logger.exception("Unexpected error during bot operation: %s (type: %s)", e, type(e).__name__)
        raise
    finally:
        _remove_pid_file()


if __name__ == "__main__":
    main()
