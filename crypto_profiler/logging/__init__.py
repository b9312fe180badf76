"""
Structured logging for Crypto Profiler.

JSON logs with timestamp, event_type and key/value context.
Use get_logger() in all modules for aggregation-friendly output.
"""

from crypto_profiler.logging.logger import bind_address, get_logger

__all__ = ["bind_address", "get_logger"]
