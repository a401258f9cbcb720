"""
Application Layer

Use-cases that orchestrate providers, persistence and domain logic: price
fetching, history, the refresh loop and health checks.
"""
