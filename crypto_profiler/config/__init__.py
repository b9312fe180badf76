"""
Configuration management for Crypto Profiler.

Loads settings from environment variables and an optional .env file, and the
reference tables (currency type seed, known threats) injected at startup.
"""

from crypto_profiler.config.reference import load_currency_types, load_known_threats
from crypto_profiler.config.settings import Settings, get_settings, load_env

__all__ = [
    "Settings",
    "get_settings",
    "load_currency_types",
    "load_env",
    "load_known_threats",
]
