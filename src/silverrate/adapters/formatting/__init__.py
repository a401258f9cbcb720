"""
Formatting Adapters

Plain-text message layouts for Telegram.
"""
