"""
Input Validation Utilities - Configuration and User Input Validation

This module validates bot tokens, channel IDs and API keys coming from the
environment, and parses numeric and date arguments of bot commands such as
/calc and /cgtax.

Files that USE this module:
- silverrate.config.settings (uses validation functions in Settings field validators)
- silverrate.adapters.telegram.handlers (command argument parsing)

Files that this module USES:
- None (pure utility functions)
"""
import re
from datetime import date
from typing import Optional


def validate_channel_id(channel_id: str) -> bool:
    """
    Validate Telegram channel/chat ID format.

    Args:
        channel_id: Channel ID to validate

    Returns:
        True if valid, False otherwise
    """
    if not channel_id:
        return False

    # @channelname, -100... private channels, or plain user IDs
    if channel_id.startswith('@'):
        return bool(re.match(r'^@[a-zA-Z0-9_]{2,}$', channel_id))
    if channel_id.startswith('-100'):
        return bool(re.match(r'^-100\d+$', channel_id))
    return bool(re.match(r'^\d+$', channel_id))


def validate_bot_token(token: str) -> bool:
    """
    Validate Telegram bot token format (``123456789:ABC...``).

    Args:
        token: Bot token to validate

    Returns:
        True if valid, False otherwise
    """
    if not token:
        return False
    return bool(re.match(r'^\d{8,10}:[A-Za-z0-9_-]{35}$', token))


def validate_api_key(api_key: str, min_length: int = 10) -> bool:
    """Validate API key format."""
    if not api_key:
        return False
    return len(api_key) >= min_length and not api_key.isspace()


def parse_positive_number(raw: str, max_value: Optional[float] = None) -> Optional[float]:
    """
    Parse a user-supplied number such as ``"10"``, ``"12.5"`` or ``"1,000"``.

    Returns:
        The parsed value, or None when it is not a positive finite number
        or exceeds max_value.
    """
    if raw is None:
        return None
    cleaned = raw.strip().replace(",", "")
    if not re.match(r'^\d+(\.\d+)?$', cleaned):
        return None
    value = float(cleaned)
    if value <= 0:
        return None
    if max_value is not None and value > max_value:
        return None
    return value


def parse_iso_date(raw: str) -> Optional[date]:
    """Parse a ``YYYY-MM-DD`` date argument; None when malformed."""
    if raw is None:
        return None
    try:
        return date.fromisoformat(raw.strip())
    except ValueError:
        return None
