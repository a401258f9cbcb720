# src/silverrate/adapters/telegram/__init__.py
"""
Telegram Adapters - Bot Interface

This package contains Telegram bot adapters:
- Application builder and lifecycle hooks
- Command handlers
- Scheduled jobs
"""

from silverrate.adapters.telegram.bot import Services, build_application
from silverrate.adapters.telegram.handlers import build_handlers
from silverrate.adapters.telegram.jobs import (
    daily_close_job,
    morning_post_job,
    weekly_summary_job,
)

__all__ = [
    "Services",
    "build_application",
    "build_handlers",
    "daily_close_job",
    "morning_post_job",
    "weekly_summary_job",
]
