"""
Shared Utilities

Cross-cutting helpers: logging configuration, input validation, per-user
command rate limiting and clock helpers for IST / Beijing calendars.
"""
