"""
Adapters Layer

Integrations with the outside world: HTTP price/FX providers, JSON
persistence, message formatting, Telegram, and the AI commentary client.
"""
