"""
SilverRate - Live Silver Price Telegram Bot

A Telegram bot that derives the Indian retail silver price from the COMEX
silver futures price and live USD/INR exchange rates, keeps it fresh with a
cancellable refresh loop, and publishes price cards, Shanghai (SGE)
comparisons, city tables and weekly summaries.
"""

__version__ = "0.4.0"
