"""
FastAPI/ASGI application entrypoint.

Run with: uvicorn crypto_profiler.api_server.app:app --host 0.0.0.0 --port 8080
"""

from crypto_profiler.api_server.server import app

__all__ = ["app"]
